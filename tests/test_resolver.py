"""Tests for epubcfi.resolver and epubcfi.links against the EPUB CFI sample book."""
from pathlib import Path

import pytest

from epubcfi.errors import LinkNotFoundError, ResolutionError
from epubcfi.links import resolve_uri
from epubcfi.options import ResolveOptions
from epubcfi.parser import parse_cfi
from epubcfi.resolver import resolve_last, resolve_location, resolve_node, start_node
from epubcfi.soup import SoupTree
from epubcfi.tree import TreeRange
from epubcfi.types import ResolvedLocation, ResolvedRange, TextLocationAssertion

DATA = Path(__file__).parent / "data"


@pytest.fixture()
def opf() -> SoupTree:
    return SoupTree.from_path(DATA / "package.opf")


@pytest.fixture()
def chapter() -> SoupTree:
    return SoupTree.from_path(DATA / "chapter01.xhtml")


def _para05_text(chapter: SoupTree):  # type: ignore[no-untyped-def]
    return chapter.soup.find(id="para05").contents[2]


# ───────────────────────────── Start node ─────────────────────────────

class TestStartNode:
    def test_package_for_first_part(self, opf: SoupTree) -> None:
        assert start_node(opf, 0) is opf.soup.find("package")

    def test_root_element_for_later_parts(self, opf: SoupTree) -> None:
        assert start_node(opf, 1) is opf.soup.find("package")

    def test_root_element_without_package(self, chapter: SoupTree) -> None:
        assert start_node(chapter, 0) is chapter.soup.find("html")

    def test_no_element(self) -> None:
        tree = SoupTree.from_markup("just text")
        with pytest.raises(ResolutionError, match="Doc incompatible with CFIs"):
            start_node(tree, 0)


# ───────────────────────────── resolve_node ─────────────────────────────

class TestResolveNode:
    def test_spine_itemref(self, opf: SoupTree) -> None:
        steps = parse_cfi("epubcfi(/6/4[chap01ref])").parts[0]
        loc = resolve_node(0, steps, opf)
        assert loc.node is opf.soup.find(id="chap01ref")

    def test_spine_itemref_by_index(self, opf: SoupTree) -> None:
        steps = parse_cfi("epubcfi(/6/4[chap01ref])").parts[0]
        loc = resolve_node(0, steps, opf, {"ignoreIDs": True})
        assert loc.node is opf.soup.find(id="chap01ref")

    def test_stale_id_falls_back_to_indices(self, chapter: SoupTree) -> None:
        steps = parse_cfi("epubcfi(/4[nope]/10[gone]/3:5)").parts[0]
        loc = resolve_node(0, steps, chapter)
        assert loc.node is _para05_text(chapter)
        assert loc.offset == 5

    def test_missing_tree(self) -> None:
        steps = parse_cfi("epubcfi(/4)").parts[0]
        with pytest.raises(ResolutionError, match="Missing DOM argument"):
            resolve_node(0, steps, None)

    def test_img_offset_through_id(self, chapter: SoupTree) -> None:
        steps = parse_cfi("epubcfi(/4[body01]/16[svgimg]:1)").parts[0]
        loc = resolve_node(0, steps, chapter)
        assert loc.node is chapter.soup.find(id="svgimg")
        assert loc.offset == 1


# ───────────────────────────── URI resolution ─────────────────────────────

class TestResolveUri:
    def test_itemref_to_manifest_href(self, opf: SoupTree) -> None:
        assert resolve_uri(opf, opf.soup.find(id="chap01ref")) == "chapter01.xhtml"

    def test_iframe_src(self) -> None:
        tree = SoupTree.from_markup('<div><iframe src="inner.xhtml"></iframe></div>')
        assert resolve_uri(tree, tree.soup.find("iframe")) == "inner.xhtml"

    def test_object_data(self) -> None:
        tree = SoupTree.from_markup('<div><object data="movie.xhtml"></object></div>')
        assert resolve_uri(tree, tree.soup.find("object")) == "movie.xhtml"

    def test_svg_image_xlink(self) -> None:
        tree = SoupTree.from_markup('<svg><image xlink:href="pic.svg"></image></svg>')
        assert resolve_uri(tree, tree.soup.find("image")) == "pic.svg"

    def test_embed_missing_src(self) -> None:
        tree = SoupTree.from_markup("<div><embed></embed></div>")
        with pytest.raises(LinkNotFoundError, match="embed element is missing 'src'"):
            resolve_uri(tree, tree.soup.find("embed"))

    def test_itemref_without_idref(self) -> None:
        tree = SoupTree.from_markup('<package><spine><itemref id="x"/></spine></package>')
        with pytest.raises(LinkNotFoundError, match="had no 'idref'"):
            resolve_uri(tree, tree.soup.find("itemref"))

    def test_itemref_missing_from_manifest(self) -> None:
        tree = SoupTree.from_markup('<package><spine><itemref idref="ghost"/></spine></package>')
        with pytest.raises(LinkNotFoundError, match="missing from manifest"):
            resolve_uri(tree, tree.soup.find("itemref"))

    def test_manifest_item_without_href(self) -> None:
        tree = SoupTree.from_markup(
            '<package><manifest><item id="c1"/></manifest>'
            '<spine><itemref idref="c1"/></spine></package>'
        )
        with pytest.raises(LinkNotFoundError, match="missing href"):
            resolve_uri(tree, tree.soup.find("itemref"))

    def test_plain_element(self, chapter: SoupTree) -> None:
        with pytest.raises(LinkNotFoundError, match="No URI found"):
            resolve_uri(chapter, chapter.soup.find("p"))

    def test_text_node(self, chapter: SoupTree) -> None:
        with pytest.raises(LinkNotFoundError, match="No URI found"):
            resolve_uri(chapter, _para05_text(chapter))

    def test_link_error_is_resolution_error(self, chapter: SoupTree) -> None:
        with pytest.raises(ResolutionError):
            resolve_uri(chapter, chapter.soup.find("p"))


# ───────────────────────────── resolve_last ─────────────────────────────

class TestResolveLast:
    def test_text_offset(self, chapter: SoupTree) -> None:
        parsed = parse_cfi("epubcfi(/6/4[chap01ref]!/4[body01]/10[para05]/3:5)")
        loc = resolve_last(chapter, parsed)
        assert isinstance(loc, ResolvedLocation)
        assert loc.node is _para05_text(chapter)
        assert str(loc.node) == "0123456789"
        assert loc.offset == 5

    def test_text_offset_ignoring_ids(self, chapter: SoupTree) -> None:
        parsed = parse_cfi("epubcfi(/6/4[chap01ref]!/4[body01]/10[para05]/3:5)")
        loc = resolve_last(chapter, parsed, ResolveOptions(ignore_ids=True))
        assert loc.node is _para05_text(chapter)
        assert loc.offset == 5

    def test_before_first_child(self, chapter: SoupTree) -> None:
        loc = resolve_last(chapter, parse_cfi("epubcfi(/6/4[chap01ref]!/4/10/0)"))
        assert loc.node is chapter.soup.find(id="para05").contents[0]
        assert str(loc.node) == "xxx"
        assert loc.relative_to_node == "before"
        assert loc.offset is None

    def test_after_last_child(self, chapter: SoupTree) -> None:
        loc = resolve_last(chapter, parse_cfi("epubcfi(/6/4[chap01ref]!/4/10/999)"))
        assert loc.node is _para05_text(chapter)
        assert loc.relative_to_node == "after"
        assert loc.offset is None

    def test_assertion_corrects_offset(self, chapter: SoupTree) -> None:
        parsed = parse_cfi("epubcfi(/6/4[chap01ref]!/4[body01]/10[para05]/3:3[34,67])")
        loc = resolve_last(chapter, parsed)
        assert loc.node is _para05_text(chapter)
        assert loc.offset == 5
        assert loc.text_location_assertion == TextLocationAssertion("34", "67")

    def test_qualifiers_carried(self, chapter: SoupTree) -> None:
        parsed = parse_cfi("epubcfi(/4[body01]/10[para05]/3:2[;s=a])")
        loc = resolve_last(chapter, parsed)
        assert loc.side_bias == "after"
        assert loc.offset == 2

    def test_range(self, chapter: SoupTree) -> None:
        parsed = parse_cfi(
            "epubcfi(/6/4[chap01ref]!/4[body01],/10[para05]/3:5,/10[para05]/3:8)"
        )
        result = resolve_last(chapter, parsed)
        assert isinstance(result, ResolvedRange)
        assert result.is_range
        assert result.from_location.node is _para05_text(chapter)
        assert result.from_location.offset == 5
        assert result.to_location.node is _para05_text(chapter)
        assert result.to_location.offset == 8

    def test_native_range(self, chapter: SoupTree) -> None:
        parsed = parse_cfi(
            "epubcfi(/6/4[chap01ref]!/4[body01],/10[para05]/3:5,/10[para05]/3:8)"
        )
        rng = resolve_last(chapter, parsed, {"range": True})
        assert isinstance(rng, TreeRange)
        assert rng.start_container is _para05_text(chapter)
        assert rng.start_offset == 5
        assert rng.end_container is _para05_text(chapter)
        assert rng.end_offset == 8
        assert not rng.collapsed

    def test_native_range_with_sentinels(self, chapter: SoupTree) -> None:
        parsed = parse_cfi("epubcfi(/4/10,/0,/999)")
        rng = resolve_last(chapter, parsed, {"range": True})
        para = chapter.soup.find(id="para05")
        assert rng.start_container is para
        assert rng.start_offset == 0
        assert rng.end_container is para
        assert rng.end_offset == 3

    def test_resolve_location_empty_path(self, chapter: SoupTree) -> None:
        with pytest.raises(ResolutionError):
            resolve_location(chapter, ())
