"""Parse-time and resolve-time configuration.

Both option sets are frozen dataclasses. ``from_mapping`` accepts either the
snake_case field names or the camelCase names used by other CFI libraries
(``flattenRange``, ``ignoreIDs``), so option dicts stored next to bookmarks
can be passed through unchanged.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Any, Self


_ALIASES: dict[str, str] = {
    "flattenRange": "flatten_range",
    "ignoreIDs": "ignore_ids",
    "ignoreIds": "ignore_ids",
}


def _normalize_keys(cls: type, mapping: Mapping[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(cls)}
    out: dict[str, Any] = {}
    for key, value in mapping.items():
        name = _ALIASES.get(key, key)
        if name not in known:
            raise ValueError(
                f"Unknown {cls.__name__} option {key!r} "
                f"(expected one of: {', '.join(sorted(known))})"
            )
        out[name] = bool(value)
    return out


@dataclass(frozen=True, slots=True)
class ParseOptions:
    """Options applied while parsing a CFI string.

    Attributes:
        flatten_range: Collapse a simple range into its start location.
        stricter: Strip offsets, temporal/spatial positions and assertions
            from every step that is not the last step of its part, and
            refuse to combine an offset with a temporal/spatial position.
    """

    flatten_range: bool = False
    stricter: bool = True

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> Self:
        if not mapping:
            return cls()
        return cls(**_normalize_keys(cls, mapping))

    def merged(self, **overrides: Any) -> ParseOptions:
        if not overrides:
            return self
        return replace(self, **_normalize_keys(ParseOptions, overrides))


@dataclass(frozen=True, slots=True)
class ResolveOptions:
    """Options applied while resolving a parsed CFI against a tree.

    Attributes:
        ignore_ids: Never jump to an element by its ``[id]``; descend by
            node index only.
        range: When resolving a range, return a native tree range object
            instead of a pair of resolved locations.
    """

    ignore_ids: bool = False
    range: bool = False

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> Self:
        if not mapping:
            return cls()
        return cls(**_normalize_keys(cls, mapping))


def coerce_resolve_options(
    options: ResolveOptions | Mapping[str, Any] | None,
) -> ResolveOptions:
    """Accept a ResolveOptions, a plain mapping or None."""
    if isinstance(options, ResolveOptions):
        return options
    return ResolveOptions.from_mapping(options)


def coerce_parse_options(
    options: ParseOptions | Mapping[str, Any] | None,
) -> ParseOptions:
    """Accept a ParseOptions, a plain mapping or None."""
    if isinstance(options, ParseOptions):
        return options
    return ParseOptions.from_mapping(options)
