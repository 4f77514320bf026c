"""Circumflex escaping for reserved CFI characters."""
from __future__ import annotations

import re

ESCAPE_CHAR = "^"
RESERVED_CHARS: frozenset[str] = frozenset("[]^,();")

_RESERVED_RE = re.compile(r"[\[\]\^,();]")


def is_reserved(ch: str) -> bool:
    return ch in RESERVED_CHARS


def escape(value: str) -> str:
    """Prefix every reserved character with ``^``.

    >>> escape("!/foo^[]")
    '!/foo^^^[^]'
    """
    return _RESERVED_RE.sub(lambda m: ESCAPE_CHAR + m.group(), value)


def unescape(value: str) -> str:
    """Drop each ``^`` and keep the character that follows it literally.

    A trailing lone ``^`` is dropped.
    """
    out: list[str] = []
    pending = False
    for ch in value:
        if ch == ESCAPE_CHAR and not pending:
            pending = True
            continue
        out.append(ch)
        pending = False
    return "".join(out)
