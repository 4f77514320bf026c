#!/usr/bin/env python3
"""Inspect, resolve, order and escape EPUB CFIs from the command line.

Structured JSON goes to stdout, human-readable messages to stderr.

Usage:
    python3 scripts/cfi_tool.py parse "epubcfi(/6/4[chap01ref]!/4[body01]/10[para05]/3:5)"
    python3 scripts/cfi_tool.py resolve "epubcfi(/6/4[chap01ref])" --doc package.opf --part 0
    python3 scripts/cfi_tool.py resolve "epubcfi(/6/4!/4[body01]/10[para05]/3:5)" --doc chapter01.xhtml
    python3 scripts/cfi_tool.py compare "epubcfi(/6/2)" "epubcfi(/6/4)"
    python3 scripts/cfi_tool.py sort --file bookmarks.txt
    python3 scripts/cfi_tool.py escape "chapter[1]"
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

import orjson

from epubcfi import CFI, CfiError, SoupTree, escape, sort_cfis, unescape
from epubcfi.tree import DocumentTree, Node, NodeKind, TreeRange
from epubcfi.types import ResolvedLocation, ResolvedRange

log = logging.getLogger("cfi_tool")


def dump_json(obj: Any) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


# ---------------------------------------------------------------------------
# Node description
# ---------------------------------------------------------------------------

def describe_node(tree: DocumentTree, node: Node) -> dict[str, Any]:
    """JSON-friendly summary of a tree node."""
    kind = tree.kind(node)
    out: dict[str, Any] = {"kind": kind.value}
    if kind is NodeKind.ELEMENT:
        out["tag"] = tree.tag_name(node)
        node_id = tree.element_id(node)
        if node_id:
            out["id"] = node_id
    elif kind in (NodeKind.TEXT, NodeKind.CDATA):
        out["text"] = tree.text(node)
    return out


def describe_location(tree: DocumentTree, loc: ResolvedLocation) -> dict[str, Any]:
    out: dict[str, Any] = {"node": describe_node(tree, loc.node)}
    if loc.offset is not None:
        out["offset"] = loc.offset
    if loc.relative_to_node is not None:
        out["relativeToNode"] = loc.relative_to_node
    if loc.side_bias is not None:
        out["sideBias"] = loc.side_bias
    if loc.temporal is not None:
        out["temporal"] = loc.temporal
    if loc.spatial is not None:
        out["spatial"] = loc.spatial.to_dict()
    return out


def describe_result(
    tree: DocumentTree,
    result: ResolvedLocation | ResolvedRange | TreeRange,
) -> dict[str, Any]:
    if isinstance(result, ResolvedRange):
        return {
            "from": describe_location(tree, result.from_location),
            "to": describe_location(tree, result.to_location),
            "isRange": True,
        }
    if isinstance(result, TreeRange):
        return {
            "startContainer": describe_node(tree, result.start_container),
            "startOffset": result.start_offset,
            "endContainer": describe_node(tree, result.end_container),
            "endOffset": result.end_offset,
            "collapsed": result.collapsed,
        }
    return describe_location(tree, result)


# ---------------------------------------------------------------------------
# Sub-commands
# ---------------------------------------------------------------------------

def cmd_parse(args: argparse.Namespace) -> int:
    cfi = CFI(args.cfi, flatten_range=args.flatten_range, stricter=not args.lenient)
    dump_json({"cfi": cfi.cfi, "isRange": cfi.is_range, "parsed": cfi.to_dict()})
    return 0


def cmd_resolve(args: argparse.Namespace) -> int:
    if not args.doc.exists():
        print(f"Error: document not found: {args.doc}", file=sys.stderr)
        return 1
    cfi = CFI(args.cfi)
    tree = SoupTree.from_path(args.doc)
    options = {"ignore_ids": args.ignore_ids, "range": args.range}

    if args.part is not None:
        uri = cfi.resolve_uri(args.part, tree, options)
        dump_json({"cfi": cfi.cfi, "part": args.part, "uri": uri})
        return 0

    result = cfi.resolve_last(tree, options)
    dump_json({"cfi": cfi.cfi, "location": describe_result(tree, result)})
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    a = CFI(args.a)
    b = CFI(args.b)
    dump_json({"a": a.cfi, "b": b.cfi, "result": CFI.compare(a, b)})
    return 0


def _read_lines(path: Path) -> list[str]:
    return [
        line.strip()
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]


def cmd_sort(args: argparse.Namespace) -> int:
    raw: list[str] = list(args.cfis)
    if args.file is not None:
        raw.extend(_read_lines(args.file))
    if not raw:
        print("Error: no CFIs given", file=sys.stderr)
        return 1
    ordered = sort_cfis([CFI(text) for text in raw])
    print(f"Sorted {len(ordered)} CFIs", file=sys.stderr)
    dump_json([str(cfi) for cfi in ordered])
    return 0


def cmd_escape(args: argparse.Namespace) -> int:
    fn = unescape if args.reverse else escape
    dump_json({"input": args.value, "output": fn(args.value)})
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Parse, resolve, compare and sort EPUB CFIs."
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_parser = subparsers.add_parser("parse", help="Print the parsed structure")
    parse_parser.add_argument("cfi", help="CFI string")
    parse_parser.add_argument(
        "--flatten-range",
        action="store_true",
        help="Collapse a simple range into its start location",
    )
    parse_parser.add_argument(
        "--lenient",
        action="store_true",
        help="Keep qualifiers on intermediate steps",
    )
    parse_parser.set_defaults(func=cmd_parse)

    resolve_parser = subparsers.add_parser(
        "resolve", help="Resolve against a local XHTML/OPF document"
    )
    resolve_parser.add_argument("cfi", help="CFI string")
    resolve_parser.add_argument(
        "--doc", required=True, type=Path, help="Markup document to resolve against"
    )
    resolve_parser.add_argument(
        "--part",
        type=int,
        default=None,
        help="Resolve the URI linked from this part instead of the final location",
    )
    resolve_parser.add_argument(
        "--ignore-ids",
        action="store_true",
        help="Descend by node index only",
    )
    resolve_parser.add_argument(
        "--range",
        action="store_true",
        help="Return a range object for simple ranges",
    )
    resolve_parser.set_defaults(func=cmd_resolve)

    compare_parser = subparsers.add_parser("compare", help="Order two CFIs (-1, 0, 1)")
    compare_parser.add_argument("a", help="First CFI")
    compare_parser.add_argument("b", help="Second CFI")
    compare_parser.set_defaults(func=cmd_compare)

    sort_parser = subparsers.add_parser("sort", help="Sort CFIs into document order")
    sort_parser.add_argument("cfis", nargs="*", help="CFI strings")
    sort_parser.add_argument(
        "--file", type=Path, default=None, help="File with one CFI per line"
    )
    sort_parser.set_defaults(func=cmd_sort)

    escape_parser = subparsers.add_parser("escape", help="Escape a value for use in a CFI")
    escape_parser.add_argument("value", help="Raw value")
    escape_parser.add_argument(
        "--reverse", action="store_true", help="Unescape instead"
    )
    escape_parser.set_defaults(func=cmd_escape)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    try:
        return args.func(args)
    except CfiError as exc:
        log.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
