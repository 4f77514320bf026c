"""Find the next-document reference of an element addressed by a CFI part.

Each ``!`` in a CFI hops into the document referenced by the element the
preceding part resolves to:

    itemref (child of spine) -> manifest item[@id=idref]/@href
    iframe, embed            -> @src
    object                   -> @data
    image, use (SVG)         -> @xlink:href
"""
from __future__ import annotations

from epubcfi.errors import LinkNotFoundError
from epubcfi.tree import DocumentTree, Node, is_element

_SRC_TAGS: frozenset[str] = frozenset({"iframe", "embed"})
_XLINK_TAGS: frozenset[str] = frozenset({"image", "use"})


def _required(tree: DocumentTree, node: Node, tag: str, attribute: str) -> str:
    value = tree.get_attribute(node, attribute)
    if not value:
        raise LinkNotFoundError(f"{tag} element is missing '{attribute}' attribute")
    return value


def resolve_uri(tree: DocumentTree, node: Node) -> str:
    """Return the URI of the document ``node`` links to.

    Raises:
        LinkNotFoundError: ``node`` is not a linking element or lacks the
            attribute holding the reference.
    """
    if not is_element(tree, node):
        raise LinkNotFoundError("No URI found")
    tag = tree.tag_name(node)

    if tag == "itemref":
        parent = tree.parent(node)
        if is_element(tree, parent) and tree.tag_name(parent) == "spine":
            idref = tree.get_attribute(node, "idref")
            if not idref:
                raise LinkNotFoundError("Referenced node had no 'idref' attribute")
            item = tree.get_element_by_id(idref)
            if item is None:
                raise LinkNotFoundError("Specified node is missing from manifest")
            href = tree.get_attribute(item, "href")
            if not href:
                raise LinkNotFoundError("Manifest item is missing href attribute")
            return href

    if tag in _SRC_TAGS:
        return _required(tree, node, tag, "src")
    if tag == "object":
        return _required(tree, node, tag, "data")
    if tag in _XLINK_TAGS:
        return _required(tree, node, tag, "xlink:href")

    raise LinkNotFoundError("No URI found")
