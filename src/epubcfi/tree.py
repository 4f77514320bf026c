"""Document tree abstraction consumed by the resolver and generator.

The core never parses markup itself. It talks to a :class:`DocumentTree`,
which exposes navigation over opaque node handles owned by the caller
(``epubcfi.soup.SoupTree`` adapts BeautifulSoup). Node handles are compared
by identity, never copied.
"""
from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any, Protocol

from epubcfi.errors import ResolutionError


type Node = Any


class NodeKind(Enum):
    ELEMENT = "element"
    TEXT = "text"
    CDATA = "cdata"
    OTHER = "other"


class DocumentTree(Protocol):
    """Navigation and lookup over one parsed document."""

    def kind(self, node: Node) -> NodeKind: ...

    def children(self, node: Node) -> Sequence[Node]: ...

    def parent(self, node: Node) -> Node | None: ...

    def previous_sibling(self, node: Node) -> Node | None: ...

    def next_sibling(self, node: Node) -> Node | None: ...

    def tag_name(self, node: Node) -> str:
        """Lower-cased local element name; ``""`` for non-elements."""
        ...

    def get_attribute(self, node: Node, name: str) -> str | None: ...

    def element_id(self, node: Node) -> str | None: ...

    def text(self, node: Node) -> str:
        """Character content of a text or CDATA node."""
        ...

    def document_children(self) -> Sequence[Node]: ...

    def get_element_by_id(self, element_id: str) -> Node | None: ...

    def find_first(self, tag_name: str) -> Node | None:
        """First element in document order with the given local name."""
        ...

    def decode_entities(self, value: str) -> str: ...

    def create_range(self) -> TreeRange: ...


def is_text_like(tree: DocumentTree, node: Node | None) -> bool:
    """True for text and CDATA nodes."""
    if node is None:
        return False
    return tree.kind(node) in (NodeKind.TEXT, NodeKind.CDATA)


def is_element(tree: DocumentTree, node: Node | None) -> bool:
    return node is not None and tree.kind(node) is NodeKind.ELEMENT


def child_position(tree: DocumentTree, parent: Node, child: Node) -> int:
    """Raw index of ``child`` inside ``parent``'s child list (identity match)."""
    for i, candidate in enumerate(tree.children(parent)):
        if candidate is child:
            return i
    raise ResolutionError("The specified node was not found in the array of siblings")


class TreeRange:
    """Span between two boundary points of one tree.

    Boundary points follow DOM range semantics: ``(container, offset)``
    where the offset counts characters inside text nodes and child
    positions inside elements. The ``*_before``/``*_after`` setters place
    the boundary immediately before or after a node within its parent.
    """

    def __init__(self, tree: DocumentTree) -> None:
        self._tree = tree
        self.start_container: Node | None = None
        self.start_offset: int = 0
        self.end_container: Node | None = None
        self.end_offset: int = 0

    def _around(self, node: Node, delta: int) -> tuple[Node, int]:
        parent = self._tree.parent(node)
        if parent is None:
            raise ResolutionError("Cannot place a range boundary around a node without parent")
        return parent, child_position(self._tree, parent, node) + delta

    def set_start(self, node: Node, offset: int = 0) -> None:
        self.start_container = node
        self.start_offset = offset

    def set_start_before(self, node: Node) -> None:
        self.set_start(*self._around(node, 0))

    def set_start_after(self, node: Node) -> None:
        self.set_start(*self._around(node, 1))

    def set_end(self, node: Node, offset: int = 0) -> None:
        self.end_container = node
        self.end_offset = offset

    def set_end_before(self, node: Node) -> None:
        self.set_end(*self._around(node, 0))

    def set_end_after(self, node: Node) -> None:
        self.set_end(*self._around(node, 1))

    @property
    def collapsed(self) -> bool:
        return (
            self.start_container is self.end_container
            and self.start_offset == self.end_offset
        )

    def __repr__(self) -> str:
        return (
            f"TreeRange(start=({self.start_container!r}, {self.start_offset}), "
            f"end=({self.end_container!r}, {self.end_offset}))"
        )
