"""Ordering of parsed CFIs.

Paths compare part by part and step by step: a missing part or step sorts
first, node indices compare numerically, and a node index of 0 (the
position before the first child) ends the comparison as equal. Offsets,
temporal and spatial positions only matter on the last compared step, and
temporal/spatial only for even (element) indices.
"""
from __future__ import annotations

import functools
from collections.abc import Iterable
from typing import TYPE_CHECKING

from epubcfi.parser import parse_cfi
from epubcfi.types import ParsedCfi, Part, Path, SpatialPoint

if TYPE_CHECKING:
    from epubcfi.cfi import CFI


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def compare_temporal(a: float | None, b: float | None) -> int:
    """Absent sorts before present; otherwise ascending."""
    if a is not None and b is not None:
        return _sign(a - b)
    if a is None and b is not None:
        return -1
    if a is not None and b is None:
        return 1
    return 0


def compare_spatial(a: SpatialPoint | None, b: SpatialPoint | None) -> int:
    """Absent sorts before present; otherwise ``y`` first, then ``x``."""
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1
    diff = _sign(a.y - b.y)
    if diff:
        return diff
    return _sign(a.x - b.x)


def compare_parts(a: Part, b: Part) -> int:
    """Compare the steps of two parts; negative when ``a`` comes first."""
    size = max(len(a), len(b))
    for i in range(size):
        if i >= len(a):
            return -1
        if i >= len(b):
            return 1
        step_a = a[i]
        step_b = b[i]

        diff = _sign(step_a.node_index - step_b.node_index)
        if diff:
            return diff

        # "before the first child" can only end a valid path
        if step_a.node_index == 0:
            return 0

        if i < size - 1:
            continue

        if step_a.node_index % 2 == 0:
            diff = compare_temporal(step_a.temporal, step_b.temporal)
            if diff:
                return diff
            diff = compare_spatial(step_a.spatial, step_b.spatial)
            if diff:
                return diff

        diff = _sign((step_a.offset or 0) - (step_b.offset or 0))
        if diff:
            return diff
    return 0


def compare_path(a: Path, b: Path) -> int:
    """Compare two paths part by part."""
    size = max(len(a), len(b))
    for i in range(size):
        if i >= len(a):
            return -1
        if i >= len(b):
            return 1
        diff = compare_parts(a[i], b[i])
        if diff:
            return diff
    return 0


def _as_parsed(item: CFI | ParsedCfi | str) -> ParsedCfi:
    if isinstance(item, str):
        return parse_cfi(item)
    if isinstance(item, ParsedCfi):
        return item
    return item.parsed


def compare(a: CFI | ParsedCfi | str, b: CFI | ParsedCfi | str) -> int:
    """Compare two CFIs given as CFI objects, parsed CFIs or strings.

    Two ranges compare by start, then by end. When only one side is a
    range, its start stands in for it.
    """
    pa = _as_parsed(a)
    pb = _as_parsed(b)
    if pa.is_range and pb.is_range:
        diff = compare_path(pa.from_path(), pb.from_path())
        if diff:
            return diff
        return compare_path(pa.to_path(), pb.to_path())
    path_a = pa.from_path() if pa.is_range else pa.parts
    path_b = pb.from_path() if pb.is_range else pb.parts
    return compare_path(path_a, path_b)


def sort_cfis(items: Iterable[CFI | ParsedCfi | str]) -> list[CFI | ParsedCfi | str]:
    """Return a new list of CFIs in document order."""
    return sorted(items, key=cmp_key)


cmp_key = functools.cmp_to_key(compare)
