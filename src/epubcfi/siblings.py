"""CFI child counting.

CFI indices do not match raw child positions. Element children get even
indices and the (possibly empty) text runs between them get odd indices:

    children:  <a/> <b/> "text" <c/>
    index:      2    4    5      6

Two adjacent elements are separated by an implied empty text run, so each
element following an element (or opening the list) consumes two slots.
Adjacent text/CDATA nodes merge into one odd index; offsets into such a
run count characters across all of its nodes. Index 0 and ``max + 1`` are
the virtual positions before the first and after the last child.

Both directions live here so generation and resolution apply the exact
same rule:

* ``cfi_index_of`` — node -> (index, offset), used by the generator.
* ``child_at_cfi_index`` — index -> node, used by the resolver.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from epubcfi.errors import ResolutionError
from epubcfi.tree import DocumentTree, Node, NodeKind, is_text_like
from epubcfi.types import ResolvedLocation

# Elements whose offsets address something other than characters
# (e.g. the position inside an image) keep the caller's offset.
OFFSET_ELEMENTS: frozenset[str] = frozenset({"img"})


@dataclass(frozen=True, slots=True)
class SiblingIndex:
    """CFI index of a child plus its offset relative to the merged text run."""

    count: int
    offset: int | None = None


def cfi_index_of(
    tree: DocumentTree,
    children: Sequence[Node],
    target: Node,
    offset: int | None = None,
) -> SiblingIndex:
    """Compute the CFI index of ``target`` among ``children``.

    For text targets the returned offset is ``offset`` plus the length of
    the text nodes merged before it. ``img`` elements keep ``offset``; other
    elements have none.

    Raises:
        ResolutionError: ``target`` is not one of ``children``.
    """
    count = 0
    last_was_element = False
    first_node = True
    prev_offset = 0

    for node in children:
        kind = tree.kind(node)
        if kind is NodeKind.ELEMENT:
            if last_was_element or first_node:
                count += 2
                first_node = False
            else:
                count += 1
            if node is target:
                if tree.tag_name(node) in OFFSET_ELEMENTS:
                    return SiblingIndex(count, offset)
                return SiblingIndex(count)
            prev_offset = 0
            last_was_element = True
        elif kind in (NodeKind.TEXT, NodeKind.CDATA):
            if last_was_element or first_node:
                count += 1
                first_node = False
            if node is target:
                return SiblingIndex(count, (offset or 0) + prev_offset)
            prev_offset += len(tree.text(node))
            last_was_element = False

    raise ResolutionError("The specified node was not found in the array of siblings")


def _text_length(tree: DocumentTree, node: Node) -> int:
    # must match the run lengths cfi_index_of accumulates
    return len(tree.text(node))


def _element_location(tree: DocumentTree, node: Node, offset: int) -> ResolvedLocation:
    if tree.tag_name(node) in OFFSET_ELEMENTS and offset:
        return ResolvedLocation(node=node, offset=offset)
    return ResolvedLocation(node=node, offset=0)


def element_location(tree: DocumentTree, node: Node, offset: int | None) -> ResolvedLocation:
    """Location of an element reached directly (e.g. by id), honouring ``img`` offsets."""
    return _element_location(tree, node, offset or 0)


def child_at_cfi_index(
    tree: DocumentTree,
    parent: Node,
    index: int,
    offset: int | None = None,
) -> ResolvedLocation:
    """Find the child of ``parent`` addressed by CFI ``index``.

    Text results carry the residual offset inside the addressed node of the
    merged run; an offset beyond the run's end points at the end of its
    last node. Indices below 1 give the virtual position before the first
    child; indices past the last child give the virtual position after it.
    """
    children = tree.children(parent)
    if not children:
        return ResolvedLocation(node=parent, offset=0)

    if index <= 0:
        return ResolvedLocation(node=children[0], offset=0, relative_to_node="before")

    remaining = offset or 0
    count = 0
    last_child: Node | None = None

    for child in children:
        kind = tree.kind(child)
        if kind is NodeKind.ELEMENT:
            if count % 2 == 0:
                # previous sibling was an element (or none): implied empty text run
                count += 2
                if count >= index:
                    return _element_location(tree, child, remaining)
            else:
                count += 1
                if count == index:
                    return _element_location(tree, child, remaining)
                if count > index:
                    # offset ran past the end of the preceding text run
                    if last_child is None:
                        return ResolvedLocation(node=parent, offset=0)
                    return ResolvedLocation(
                        node=last_child,
                        offset=_text_length(tree, last_child),
                    )
            last_child = child
        elif kind in (NodeKind.TEXT, NodeKind.CDATA):
            if count % 2 == 0:
                count += 1
            if count == index:
                length = _text_length(tree, child)
                if remaining >= length:
                    remaining -= length
                else:
                    return ResolvedLocation(node=child, offset=remaining)
            last_child = child

    if index > count:
        anchor = last_child if last_child is not None else parent
        end = _text_length(tree, anchor) if is_text_like(tree, anchor) else 0
        return ResolvedLocation(node=anchor, offset=end, relative_to_node="after")

    if is_text_like(tree, last_child):
        # the run closes the child list and the offset reached its end
        return ResolvedLocation(node=last_child, offset=_text_length(tree, last_child))

    raise ResolutionError(f"CFI index {index} does not address a child node")
