"""Tests for epubcfi.siblings module."""
import pytest
from bs4 import NavigableString, Tag

from epubcfi.errors import ResolutionError
from epubcfi.siblings import SiblingIndex, cfi_index_of, child_at_cfi_index
from epubcfi.soup import SoupTree
from epubcfi.tree import NodeKind


def _tree(markup: str) -> tuple[SoupTree, Tag]:
    tree = SoupTree.from_markup(markup)
    return tree, tree.soup.find("div")


class TestCfiIndexOf:
    def test_elements_then_text(self) -> None:
        tree, div = _tree("<div><a></a><b></b>c</div>")
        a, b, c = div.contents
        assert cfi_index_of(tree, div.contents, a).count == 2
        assert cfi_index_of(tree, div.contents, b).count == 4
        assert cfi_index_of(tree, div.contents, c) == SiblingIndex(5, 0)

    def test_text_first(self) -> None:
        tree, div = _tree("<div>x<a></a>y</div>")
        x, a, y = div.contents
        assert cfi_index_of(tree, div.contents, x).count == 1
        assert cfi_index_of(tree, div.contents, a).count == 2
        assert cfi_index_of(tree, div.contents, y).count == 3

    def test_merged_text_run_offset(self) -> None:
        tree, div = _tree("<div>abc</div>")
        div.append(NavigableString("defg"))
        second = div.contents[1]
        assert cfi_index_of(tree, div.contents, second, 2) == SiblingIndex(1, 5)

    def test_comments_skipped(self) -> None:
        tree, div = _tree("<div><a></a><!-- note --><b></b></div>")
        b = div.find("b")
        assert cfi_index_of(tree, div.contents, b).count == 4

    def test_img_keeps_offset(self) -> None:
        tree, div = _tree('<div><img src="x.png"/></div>')
        img = div.find("img")
        assert cfi_index_of(tree, div.contents, img, 7) == SiblingIndex(2, 7)

    def test_other_elements_drop_offset(self) -> None:
        tree, div = _tree("<div><a></a></div>")
        assert cfi_index_of(tree, div.contents, div.find("a"), 7) == SiblingIndex(2, None)

    def test_missing_target(self) -> None:
        tree, div = _tree("<div><a></a></div>")
        with pytest.raises(ResolutionError, match="not found in the array of siblings"):
            cfi_index_of(tree, div.contents, tree.soup)


class TestChildAtCfiIndex:
    def test_element(self) -> None:
        tree, div = _tree("<div><a></a><b></b>c</div>")
        loc = child_at_cfi_index(tree, div, 4)
        assert loc.node is div.find("b")
        assert loc.offset == 0

    def test_text_after_elements(self) -> None:
        tree, div = _tree("<div><a></a><b></b>c</div>")
        loc = child_at_cfi_index(tree, div, 5)
        assert loc.node is div.contents[2]

    def test_implied_empty_text_between_elements(self) -> None:
        tree, div = _tree("<div><a></a><b></b></div>")
        loc = child_at_cfi_index(tree, div, 3)
        assert loc.node is div.find("b")

    def test_before_first_child(self) -> None:
        tree, div = _tree("<div>x<a></a></div>")
        loc = child_at_cfi_index(tree, div, 0)
        assert loc.node is div.contents[0]
        assert loc.offset == 0
        assert loc.relative_to_node == "before"

    def test_after_last_text_child(self) -> None:
        tree, div = _tree("<div><a></a>tail</div>")
        loc = child_at_cfi_index(tree, div, 99)
        assert loc.node is div.contents[1]
        assert loc.offset == 4
        assert loc.relative_to_node == "after"

    def test_after_last_element_child(self) -> None:
        tree, div = _tree("<div><a></a></div>")
        loc = child_at_cfi_index(tree, div, 99)
        assert loc.node is div.find("a")
        assert loc.offset == 0
        assert loc.relative_to_node == "after"

    def test_after_sentinel_uses_text_length(self) -> None:
        tree, div = _tree("<div><a></a>x</div>")
        div.contents[1].replace_with(NavigableString("&amp;"))
        loc = child_at_cfi_index(tree, div, 99)
        assert loc.offset == 5

    def test_entity_text_is_not_decoded_again(self) -> None:
        tree, div = _tree("<div>AT&amp;amp;T rocks</div>")
        text = div.contents[0]
        assert str(text) == "AT&amp;T rocks"
        loc = child_at_cfi_index(tree, div, 1, 12)
        assert loc.node is text
        assert loc.offset == 12

    def test_childless_parent(self) -> None:
        tree, div = _tree("<div></div>")
        loc = child_at_cfi_index(tree, div, 2)
        assert loc.node is div
        assert loc.offset == 0
        assert loc.relative_to_node is None

    def test_offset_walks_merged_run(self) -> None:
        tree, div = _tree("<div>abc<a></a></div>")
        div.find("a").insert_before(NavigableString("defg"))
        loc = child_at_cfi_index(tree, div, 1, 5)
        assert loc.node is div.contents[1]
        assert loc.offset == 2

    def test_offset_past_run_before_element(self) -> None:
        tree, div = _tree("<div>abc<a></a></div>")
        loc = child_at_cfi_index(tree, div, 1, 10)
        assert loc.node is div.contents[0]
        assert loc.offset == 3

    def test_offset_past_run_at_end(self) -> None:
        tree, div = _tree("<div><a></a>abc</div>")
        loc = child_at_cfi_index(tree, div, 3, 10)
        assert loc.node is div.contents[1]
        assert loc.offset == 3

    def test_img_offset_kept(self) -> None:
        tree, div = _tree('<div><img src="x.png"/></div>')
        loc = child_at_cfi_index(tree, div, 2, 1)
        assert loc.node is div.find("img")
        assert loc.offset == 1

    def test_round_trip_over_children(self) -> None:
        tree, div = _tree("<div>t<a></a><b></b>u<!-- c --><i></i></div>")
        for child in div.contents:
            if tree.kind(child) is NodeKind.OTHER:
                continue
            index = cfi_index_of(tree, div.contents, child)
            assert child_at_cfi_index(tree, div, index.count).node is child
