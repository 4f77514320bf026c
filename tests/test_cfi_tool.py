"""Tests for scripts/cfi_tool.py."""
from pathlib import Path

import orjson

from epubcfi.soup import SoupTree
from scripts.cfi_tool import build_parser, describe_node, main

DATA = Path(__file__).parent / "data"

POINT = "epubcfi(/6/4[chap01ref]!/4[body01]/10[para05]/3:5)"


class TestBuildParser:
    def test_resolve_flags(self) -> None:
        args = build_parser().parse_args(
            ["resolve", POINT, "--doc", "x.xhtml", "--ignore-ids", "--part", "0"]
        )
        assert args.command == "resolve"
        assert args.doc == Path("x.xhtml")
        assert args.ignore_ids is True
        assert args.part == 0


class TestParseCommand:
    def test_outputs_structure(self, capsys) -> None:  # type: ignore[no-untyped-def]
        assert main(["parse", POINT]) == 0
        out = orjson.loads(capsys.readouterr().out)
        assert out["isRange"] is False
        assert out["parsed"][1][2] == {"nodeIndex": 3, "offset": 5}

    def test_malformed(self, capsys) -> None:  # type: ignore[no-untyped-def]
        assert main(["parse", "garbage"]) == 1
        assert "Not a valid CFI" in capsys.readouterr().err


class TestResolveCommand:
    def test_part_uri(self, capsys) -> None:  # type: ignore[no-untyped-def]
        assert main(["resolve", POINT, "--doc", str(DATA / "package.opf"), "--part", "0"]) == 0
        out = orjson.loads(capsys.readouterr().out)
        assert out["uri"] == "chapter01.xhtml"

    def test_final_location(self, capsys) -> None:  # type: ignore[no-untyped-def]
        assert main(["resolve", POINT, "--doc", str(DATA / "chapter01.xhtml")]) == 0
        out = orjson.loads(capsys.readouterr().out)
        assert out["location"]["node"] == {"kind": "text", "text": "0123456789"}
        assert out["location"]["offset"] == 5

    def test_range_object(self, capsys) -> None:  # type: ignore[no-untyped-def]
        cfi = "epubcfi(/6/4[chap01ref]!/4[body01],/10[para05]/3:5,/10[para05]/3:8)"
        doc = str(DATA / "chapter01.xhtml")
        assert main(["resolve", cfi, "--doc", doc, "--range"]) == 0
        out = orjson.loads(capsys.readouterr().out)
        assert out["location"]["startOffset"] == 5
        assert out["location"]["endOffset"] == 8

    def test_missing_document(self, tmp_path: Path, capsys) -> None:  # type: ignore[no-untyped-def]
        assert main(["resolve", POINT, "--doc", str(tmp_path / "nope.xhtml")]) == 1
        assert "document not found" in capsys.readouterr().err

    def test_unresolvable_link(self, capsys) -> None:  # type: ignore[no-untyped-def]
        doc = str(DATA / "chapter01.xhtml")
        assert main(["resolve", "epubcfi(/4/2!/4)", "--doc", doc, "--part", "0"]) == 1
        assert "No URI found" in capsys.readouterr().err


class TestCompareAndSort:
    def test_compare(self, capsys) -> None:  # type: ignore[no-untyped-def]
        assert main(["compare", "epubcfi(/6/2)", "epubcfi(/6/4)"]) == 0
        assert orjson.loads(capsys.readouterr().out)["result"] == -1

    def test_sort_args_and_file(self, tmp_path: Path, capsys) -> None:  # type: ignore[no-untyped-def]
        listing = tmp_path / "bookmarks.txt"
        listing.write_text("epubcfi(/6/6)\n\nepubcfi(/6/2)\n", encoding="utf-8")
        assert main(["sort", "epubcfi(/6/4)", "--file", str(listing)]) == 0
        captured = capsys.readouterr()
        assert orjson.loads(captured.out) == ["epubcfi(/6/2)", "epubcfi(/6/4)", "epubcfi(/6/6)"]
        assert "Sorted 3 CFIs" in captured.err

    def test_sort_nothing(self, capsys) -> None:  # type: ignore[no-untyped-def]
        assert main(["sort"]) == 1


class TestEscapeCommand:
    def test_escape(self, capsys) -> None:  # type: ignore[no-untyped-def]
        assert main(["escape", "a[b]"]) == 0
        assert orjson.loads(capsys.readouterr().out)["output"] == "a^[b^]"

    def test_unescape(self, capsys) -> None:  # type: ignore[no-untyped-def]
        assert main(["escape", "--reverse", "a^[b^]"]) == 0
        assert orjson.loads(capsys.readouterr().out)["output"] == "a[b]"


class TestDescribeNode:
    def test_element(self) -> None:
        tree = SoupTree.from_path(DATA / "chapter01.xhtml")
        assert describe_node(tree, tree.soup.find(id="para05")) == {
            "kind": "element",
            "tag": "p",
            "id": "para05",
        }
