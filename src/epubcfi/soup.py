"""BeautifulSoup implementation of the document tree abstraction.

``SoupTree`` wraps a parsed :class:`bs4.BeautifulSoup` document. It defaults
to the stdlib ``html.parser`` backend, which keeps whitespace-only text
nodes and handles the self-closing tags of package documents; pass
``features="xml"`` (requires lxml) for strict XML parsing.

Node kinds map onto bs4 classes as follows:

    Tag (not the soup itself)      -> ELEMENT
    CData                          -> CDATA
    NavigableString and subclasses -> TEXT  (script/style strings included)
    Comment, Doctype, PI, ...      -> OTHER (skipped by sibling counting)
"""
from __future__ import annotations

import html
from collections.abc import Sequence
from pathlib import Path

from bs4 import BeautifulSoup, CData, NavigableString, Tag
from bs4.element import PreformattedString

from epubcfi.tree import Node, NodeKind, TreeRange

DEFAULT_FEATURES = "html.parser"


def _local_name(name: str | None) -> str:
    if not name:
        return ""
    return name.rsplit(":", 1)[-1].lower()


def read_markup(fpath: Path) -> str:
    """Read a markup file with encoding fallback: UTF-8 -> CP1252 -> replace."""
    try:
        return fpath.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        try:
            return fpath.read_text(encoding="cp1252")
        except UnicodeDecodeError:
            with open(fpath, errors="replace") as f:
                return f.read()


class SoupTree:
    """DocumentTree over a BeautifulSoup document.

    Usage::

        tree = SoupTree.from_markup(xhtml)
        location = CFI("epubcfi(/4[body01]/10[para05]/3:5)").resolve_last(tree)
    """

    def __init__(self, soup: BeautifulSoup) -> None:
        self.soup = soup

    @classmethod
    def from_markup(cls, markup: str | bytes, *, features: str = DEFAULT_FEATURES) -> SoupTree:
        return cls(BeautifulSoup(markup, features))

    @classmethod
    def from_path(cls, path: str | Path, *, features: str = DEFAULT_FEATURES) -> SoupTree:
        return cls.from_markup(read_markup(Path(path)), features=features)

    # ─── Node inspection ─────────────────────────────────────────────

    def kind(self, node: Node) -> NodeKind:
        if isinstance(node, BeautifulSoup):
            return NodeKind.OTHER
        if isinstance(node, Tag):
            return NodeKind.ELEMENT
        if isinstance(node, CData):
            return NodeKind.CDATA
        if isinstance(node, NavigableString) and not isinstance(node, PreformattedString):
            return NodeKind.TEXT
        return NodeKind.OTHER

    def children(self, node: Node) -> Sequence[Node]:
        if isinstance(node, Tag):
            return node.contents
        return ()

    def parent(self, node: Node) -> Node | None:
        return node.parent

    def previous_sibling(self, node: Node) -> Node | None:
        return node.previous_sibling

    def next_sibling(self, node: Node) -> Node | None:
        return node.next_sibling

    def tag_name(self, node: Node) -> str:
        if self.kind(node) is not NodeKind.ELEMENT:
            return ""
        return _local_name(node.name)

    def get_attribute(self, node: Node, name: str) -> str | None:
        if not isinstance(node, Tag):
            return None
        value = node.get(name)
        if isinstance(value, list):
            # multi-valued attributes such as class
            return " ".join(value)
        return value

    def element_id(self, node: Node) -> str | None:
        if self.kind(node) is not NodeKind.ELEMENT:
            return None
        return self.get_attribute(node, "id") or None

    def text(self, node: Node) -> str:
        if isinstance(node, NavigableString):
            return str(node)
        if isinstance(node, Tag):
            return node.get_text()
        return ""

    # ─── Document lookups ────────────────────────────────────────────

    def document_children(self) -> Sequence[Node]:
        return self.soup.contents

    def get_element_by_id(self, element_id: str) -> Node | None:
        return self.soup.find(attrs={"id": element_id})

    def find_first(self, tag_name: str) -> Node | None:
        wanted = tag_name.lower()
        return self.soup.find(lambda tag: _local_name(tag.name) == wanted)

    def decode_entities(self, value: str) -> str:
        return html.unescape(value)

    def create_range(self) -> TreeRange:
        return TreeRange(self)
