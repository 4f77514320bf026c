"""Offset correction from text location assertions.

A CFI step such as ``/3:3[34,67]`` records the text expected around the
offset when the bookmark was made. If the document changed since, the
assertion relocates the offset: the contiguous text run containing the
resolved node is searched for ``pre + <any char> + post`` (or for the plain
assertion string) and the match closest to the recorded offset wins.

Correction is best-effort. Whenever it cannot produce a consistent
location it returns the input position unchanged; it never raises.
"""
from __future__ import annotations

import logging
import re

from epubcfi.tree import DocumentTree, Node, is_text_like
from epubcfi.types import Assertion

log = logging.getLogger(__name__)


def build_assertion_pattern(
    tree: DocumentTree,
    assertion: Assertion,
) -> tuple[re.Pattern[str], int]:
    """Compile the search pattern for an assertion.

    Returns:
        (pattern, shift) where ``shift`` is added to each match start so
        positions denote the asserted character rather than the start of
        the ``pre`` text.
    """
    if isinstance(assertion, str):
        return re.compile(re.escape(tree.decode_entities(assertion))), 0
    pre = tree.decode_entities(assertion.pre or "")
    post = tree.decode_entities(assertion.post or "")
    return re.compile(re.escape(pre) + "." + re.escape(post), re.DOTALL), len(pre)


def find_match_positions(text: str, pattern: re.Pattern[str], shift: int = 0) -> list[int]:
    """Every position where ``pattern`` matches, overlapping matches included."""
    positions: list[int] = []
    pos = 0
    while pos <= len(text):
        m = pattern.search(text, pos)
        if m is None:
            break
        positions.append(m.start() + shift)
        pos = m.start() + 1
    return positions


def closest(positions: list[int], target: int) -> int | None:
    """Position with the smallest distance to ``target``; first one wins ties."""
    if not positions:
        return None
    return min(positions, key=lambda p: abs(p - target))


def text_run(tree: DocumentTree, node: Node) -> tuple[str, list[tuple[Node, int]]]:
    """Text of the contiguous text/CDATA run around ``node``.

    Returns:
        (text, segments) where ``segments`` lists each node of the run
        with its length, in document order.
    """
    start = node
    prev = tree.previous_sibling(start)
    while is_text_like(tree, prev):
        start = prev
        prev = tree.previous_sibling(start)

    chunks: list[str] = []
    segments: list[tuple[Node, int]] = []
    cur: Node | None = start
    while is_text_like(tree, cur):
        value = tree.text(cur)
        chunks.append(value)
        segments.append((cur, len(value)))
        cur = tree.next_sibling(cur)
    return "".join(chunks), segments


def correct_offset(
    tree: DocumentTree,
    node: Node,
    offset: int,
    assertion: Assertion,
    *,
    run_offset: int | None = None,
) -> tuple[Node, int]:
    """Relocate ``(node, offset)`` using a text location assertion.

    Args:
        tree: Tree that owns ``node``.
        node: Tentatively resolved node.
        offset: Tentative offset, local to ``node``.
        assertion: Plain string or ``pre``/``post`` assertion.
        run_offset: The offset as written in the CFI, relative to the start
            of the merged text run. Used to pick the closest match;
            defaults to ``offset``.

    Returns:
        The corrected ``(node, local offset)``, or the input pair when the
        node is not text, nothing matches, or the match cannot be mapped
        back onto the run.
    """
    if not is_text_like(tree, node):
        return node, offset

    reference = offset if run_offset is None else run_offset
    pattern, shift = build_assertion_pattern(tree, assertion)
    text, segments = text_run(tree, node)

    best = closest(find_match_positions(text, pattern, shift), reference)
    if best is None:
        log.debug("Text location assertion %r not found; keeping offset %d", assertion, offset)
        return node, offset

    local = best
    for segment, length in segments:
        if local < 0:
            break
        if local < length:
            return segment, local
        local -= length

    log.debug("Assertion match at %d falls outside the text run; keeping offset %d", best, offset)
    return node, offset
