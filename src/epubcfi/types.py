"""Core value types for parsed and resolved CFIs.

Type hierarchy:
  Step                  — one ``/N[...]`` segment of a path
  TextLocationAssertion — ``[pre,post]`` text expected around an offset
  SpatialPoint          — ``@x:y`` position inside an element
  Part                  — steps addressing one document
  Path                  — parts separated by ``!`` document hops
  CfiRange              — expanded start/end paths of a simple range
  ParsedCfi             — parser output (common path + range suffixes)
  ResolvedLocation      — live (node, offset) position inside a tree
  ResolvedRange         — pair of resolved locations

Parsed structures are immutable and compare structurally. The plain-data
form (``to_dict``/``from_dict``) uses the camelCase keys of the CFI
ecosystem so stored bookmarks stay interchangeable with other readers.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import orjson


type SideBias = Literal["before", "after"]
type Assertion = TextLocationAssertion | str


@dataclass(frozen=True, slots=True)
class TextLocationAssertion:
    """Text expected immediately before (``pre``) and after (``post``) an offset."""

    pre: str | None = None
    post: str | None = None

    def to_dict(self) -> dict[str, str]:
        out: dict[str, str] = {}
        if self.pre is not None:
            out["pre"] = self.pre
        if self.post is not None:
            out["post"] = self.post
        return out


@dataclass(frozen=True, slots=True)
class SpatialPoint:
    """Spatial position inside an element (``@x:y``)."""

    x: int | float
    y: int | float

    def to_dict(self) -> dict[str, int | float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True, slots=True)
class Step:
    """One step of a CFI path.

    ``node_index`` is a CFI-space index: even numbers address elements, odd
    numbers address (merged) text runs, 0 and max+1 are the virtual
    positions before the first and after the last child. The remaining
    qualifiers are only meaningful on the last step of a part.
    """

    node_index: int
    node_id: str | None = None
    offset: int | None = None
    text_location_assertion: Assertion | None = None
    side_bias: SideBias | None = None
    temporal: float | None = None
    spatial: SpatialPoint | None = None

    def __post_init__(self) -> None:
        if self.node_index < 0:
            raise ValueError(f"node_index must be >= 0, got {self.node_index}")
        if self.offset is not None and self.offset < 0:
            raise ValueError(f"offset must be >= 0, got {self.offset}")

    @property
    def has_qualifiers(self) -> bool:
        return (
            self.offset is not None
            or self.text_location_assertion is not None
            or self.side_bias is not None
            or self.temporal is not None
            or self.spatial is not None
        )

    def without_qualifiers(self) -> Step:
        """Copy keeping only the addressing fields (index and id)."""
        if not self.has_qualifiers:
            return self
        return Step(node_index=self.node_index, node_id=self.node_id)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"nodeIndex": self.node_index}
        if self.node_id is not None:
            out["nodeID"] = self.node_id
        if self.offset is not None:
            out["offset"] = self.offset
        if self.temporal is not None:
            out["temporal"] = self.temporal
        if self.spatial is not None:
            out["spatial"] = self.spatial.to_dict()
        if self.text_location_assertion is not None:
            tla = self.text_location_assertion
            out["textLocationAssertion"] = tla if isinstance(tla, str) else tla.to_dict()
        if self.side_bias is not None:
            out["sideBias"] = self.side_bias
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Step:
        tla_raw = data.get("textLocationAssertion")
        tla: Assertion | None
        if tla_raw is None or isinstance(tla_raw, str):
            tla = tla_raw
        else:
            tla = TextLocationAssertion(pre=tla_raw.get("pre"), post=tla_raw.get("post"))
        spatial_raw = data.get("spatial")
        spatial = (
            SpatialPoint(x=spatial_raw["x"], y=spatial_raw["y"])
            if spatial_raw is not None
            else None
        )
        side_bias = data.get("sideBias")
        if side_bias not in (None, "before", "after"):
            raise ValueError(f"sideBias must be 'before' or 'after', got {side_bias!r}")
        return cls(
            node_index=int(data["nodeIndex"]),
            node_id=data.get("nodeID"),
            offset=data.get("offset"),
            text_location_assertion=tla,
            side_bias=side_bias,
            temporal=data.get("temporal"),
            spatial=spatial,
        )


type Part = tuple[Step, ...]
type Path = tuple[Part, ...]


def path_to_dict(path: Path) -> list[list[dict[str, Any]]]:
    """Plain-data form of a path: a list of parts, each a list of step dicts."""
    return [[step.to_dict() for step in part] for part in path]


def path_from_dict(data: list[list[dict[str, Any]]]) -> Path:
    return tuple(tuple(Step.from_dict(step) for step in part) for part in data)


def extend_last_part(path: Path, suffix: Part) -> Path:
    """Return ``path`` with ``suffix`` appended to the steps of its last part."""
    if not path:
        return (suffix,) if suffix else ()
    return (*path[:-1], path[-1] + suffix)


@dataclass(frozen=True, slots=True)
class CfiRange:
    """Start and end paths of a simple range, both fully expanded."""

    from_path: Path
    to_path: Path

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": path_to_dict(self.from_path),
            "to": path_to_dict(self.to_path),
            "isRange": True,
        }


@dataclass(frozen=True, slots=True)
class ParsedCfi:
    """Parser output.

    ``parts`` is the full path for a plain CFI and the shared prefix for a
    range; ``range_from``/``range_to`` are the step suffixes that extend the
    prefix's last part into the range start and end.
    """

    parts: Path
    range_from: Part | None = None
    range_to: Part | None = None

    @property
    def is_range(self) -> bool:
        return bool(self.range_from) and bool(self.range_to)

    def from_path(self) -> Path:
        return extend_last_part(self.parts, self.range_from or ())

    def to_path(self) -> Path:
        return extend_last_part(self.parts, self.range_to or ())

    def to_dict(self) -> list[list[dict[str, Any]]] | dict[str, Any]:
        if self.is_range:
            return CfiRange(self.from_path(), self.to_path()).to_dict()
        return path_to_dict(self.parts)

    def to_json(self) -> bytes:
        return orjson.dumps(self.to_dict())


@dataclass(frozen=True, slots=True)
class ResolvedLocation:
    """A position inside a live document tree.

    ``node`` is a reference into the caller's tree, never a copy. When
    ``relative_to_node`` is set the location is the virtual position before
    or after ``node`` rather than the node itself. Qualifiers of the final
    step (assertion, side bias, temporal, spatial) are carried over.
    """

    node: Any
    offset: int | None = None
    relative_to_node: SideBias | None = None
    node_id: str | None = None
    text_location_assertion: Assertion | None = None
    side_bias: SideBias | None = None
    temporal: float | None = None
    spatial: SpatialPoint | None = None


@dataclass(frozen=True, slots=True)
class ResolvedRange:
    """Resolved start and end of a simple range."""

    from_location: ResolvedLocation
    to_location: ResolvedLocation

    @property
    def is_range(self) -> bool:
        return True
