"""Map parsed CFI paths onto live document trees.

Resolution of one part starts at the ``package`` element (first part only,
when present) or at the document's first element, optionally jumps to the
deepest step carrying a known ``[id]``, then descends one step at a time
using the CFI child-counting rule. Steps with a text location assertion
have their offset corrected against the current text.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from epubcfi.assertions import correct_offset
from epubcfi.errors import ResolutionError
from epubcfi.options import ResolveOptions, coerce_resolve_options
from epubcfi.siblings import child_at_cfi_index, element_location
from epubcfi.tree import DocumentTree, Node, TreeRange, is_element
from epubcfi.types import ParsedCfi, Part, Path, ResolvedLocation, ResolvedRange

log = logging.getLogger(__name__)

type OptionsArg = ResolveOptions | Mapping[str, Any] | None


def start_node(tree: DocumentTree, part_index: int) -> Node:
    """Element that the steps of part ``part_index`` are relative to."""
    node = tree.find_first("package") if part_index == 0 else None
    if node is None:
        for candidate in tree.document_children():
            if is_element(tree, candidate):
                node = candidate
                break
    if node is None:
        raise ResolutionError("Doc incompatible with CFIs")
    return node


def resolve_node(
    part_index: int,
    steps: Part,
    tree: DocumentTree | None,
    options: OptionsArg = None,
) -> ResolvedLocation:
    """Resolve the steps of one part to a ``(node, offset)`` location.

    Args:
        part_index: Position of the part in its path (0 starts at ``package``).
        steps: Steps of the part.
        tree: Document the part addresses.
        options: ``ignore_ids`` disables the id shortcut.

    Returns:
        The location reached by the last step. ``relative_to_node`` is set
        when that step addressed a virtual position before/after a child.
    """
    if tree is None:
        raise ResolutionError("Missing DOM argument")
    opts = coerce_resolve_options(options)

    node = start_node(tree, part_index)
    start_from = 0
    if not opts.ignore_ids:
        for i in range(len(steps) - 1, -1, -1):
            node_id = steps[i].node_id
            if not node_id:
                continue
            found = tree.get_element_by_id(node_id)
            if found is not None:
                log.debug("Jumping to #%s at step %d of part %d", node_id, i, part_index)
                node = found
                start_from = i + 1
                break

    if steps and start_from == len(steps):
        location = element_location(tree, node, steps[-1].offset)
    else:
        location = ResolvedLocation(node=node, offset=0)

    for step in steps[start_from:]:
        location = child_at_cfi_index(tree, location.node, step.node_index, step.offset)
        if location.relative_to_node is not None:
            log.debug(
                "Step /%d resolved to the virtual position %s a child",
                step.node_index,
                location.relative_to_node,
            )
        if step.text_location_assertion is not None:
            new_node, new_offset = correct_offset(
                tree,
                location.node,
                location.offset or 0,
                step.text_location_assertion,
                run_offset=step.offset,
            )
            if new_node is not location.node:
                location = ResolvedLocation(node=new_node, offset=new_offset)
            elif new_offset != location.offset:
                location = replace(location, offset=new_offset)
    return location


def resolve_location(
    tree: DocumentTree | None,
    path: Path,
    options: OptionsArg = None,
) -> ResolvedLocation:
    """Resolve the last part of ``path`` and carry over the final step's qualifiers.

    The resolved offset is kept only when the final step carried a
    non-zero offset.
    """
    if not path:
        raise ResolutionError("Missing CFI part for index: -1")
    index = len(path) - 1
    steps = path[index]
    location = resolve_node(index, steps, tree, options)
    last = steps[-1]
    return ResolvedLocation(
        node=location.node,
        offset=location.offset if last.offset else None,
        relative_to_node=location.relative_to_node,
        node_id=last.node_id,
        text_location_assertion=last.text_location_assertion,
        side_bias=last.side_bias,
        temporal=last.temporal,
        spatial=last.spatial,
    )


def build_tree_range(
    tree: DocumentTree,
    start: ResolvedLocation,
    end: ResolvedLocation,
) -> TreeRange:
    """Native range spanning two resolved locations."""
    rng = tree.create_range()
    if start.relative_to_node == "before":
        rng.set_start_before(start.node)
    elif start.relative_to_node == "after":
        rng.set_start_after(start.node)
    else:
        rng.set_start(start.node, start.offset or 0)

    if end.relative_to_node == "before":
        rng.set_end_before(end.node)
    elif end.relative_to_node == "after":
        rng.set_end_after(end.node)
    else:
        rng.set_end(end.node, end.offset or 0)
    return rng


def resolve_last(
    tree: DocumentTree | None,
    parsed: ParsedCfi,
    options: OptionsArg = None,
) -> ResolvedLocation | ResolvedRange | TreeRange:
    """Resolve the final document location (or range) of a parsed CFI.

    ``tree`` must be the document addressed by the last part.
    """
    if tree is None:
        raise ResolutionError("Missing DOM argument")
    opts = coerce_resolve_options(options)
    if not parsed.is_range:
        return resolve_location(tree, parsed.parts, opts)

    start = resolve_location(tree, parsed.from_path(), opts)
    end = resolve_location(tree, parsed.to_path(), opts)
    if opts.range:
        return build_tree_range(tree, start, end)
    return ResolvedRange(from_location=start, to_location=end)
