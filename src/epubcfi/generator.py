"""Generate CFI strings from tree positions.

The inverse of resolution: walk from the node up to the document's root
element, emitting ``/<index>[<id>]`` for every level with the same child
counting rule the resolver uses. Paths are relative to the root element,
which is where the resolver starts; a spine ``itemref`` path stops at the
``package`` element.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from epubcfi.escaping import escape
from epubcfi.siblings import cfi_index_of
from epubcfi.tree import DocumentTree, Node, is_element


@dataclass(frozen=True, slots=True)
class NodeRef:
    """A node of one document in a multi-document chain."""

    tree: DocumentTree
    node: Node
    offset: int | None = None


def generate_part(tree: DocumentTree, node: Node, offset: int | None = None) -> str:
    """Path segment (without wrapper) addressing ``node`` and ``offset``."""
    cfi = ""
    parent = tree.parent(node)
    in_spine = is_element(tree, parent) and tree.tag_name(parent) == "spine"

    while is_element(tree, parent):
        index = cfi_index_of(tree, tree.children(parent), node, offset)
        if not cfi and index.offset:
            cfi = f":{index.offset}"
        node_id = tree.element_id(node)
        id_part = f"[{escape(node_id)}]" if node_id else ""
        cfi = f"/{index.count}{id_part}{cfi}"

        node = parent
        if in_spine and tree.tag_name(node) == "package":
            break
        parent = tree.parent(node)

    return cfi


def generate(
    tree: DocumentTree,
    node: Node,
    offset: int | None = None,
    extra: str | None = None,
) -> str:
    """Full ``epubcfi(...)`` string for one position.

    Args:
        tree: Tree that owns ``node``.
        node: Target node (element, text or CDATA).
        offset: Character offset for text nodes, or the offset kept for
            ``img`` elements.
        extra: Appended verbatim inside the wrapper.
    """
    cfi = generate_part(tree, node, offset)
    if extra:
        cfi += extra
    return f"epubcfi({cfi})"


def generate_chain(refs: Sequence[NodeRef], extra: str | None = None) -> str:
    """CFI crossing documents: one part per ``NodeRef``, joined by ``!``.

    >>> generate_chain([NodeRef(opf, itemref), NodeRef(chapter, img, 1)])  # doctest: +SKIP
    'epubcfi(/6/4[chap01ref]!/4[body01]/16[svgimg]:1)'
    """
    cfi = "!".join(generate_part(ref.tree, ref.node, ref.offset) for ref in refs)
    if extra:
        cfi += extra
    return f"epubcfi({cfi})"
