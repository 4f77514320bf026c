"""Single-pass tokenizer and parser for ``epubcfi(...)`` strings.

Grammar::

    cfi        := 'epubcfi(' path ')'
    path       := part ('!' part)* (',' part-suffix (',' part-suffix)?)?
    part       := step+
    step       := '/' DIGITS vendor-ext? ('[' ID ']')? qualifier?
    qualifier  := ':' DIGITS ('[' ASSERTION ']')?
                | '~' NUMBER
                | '@' NUMBER ':' NUMBER
    ASSERTION  := TEXT | TEXT? ',' TEXT? ; both optionally ending in ';s=b' / ';s=a'

``^`` escapes the next character so that it is taken literally, never as a
delimiter. Letters after a node index (``/4vnd.foo``) are vendor
extensions and are skipped.

The step scanner is an explicit state machine: :class:`ScanState` names the
token being accumulated and ``_TRANSITIONS`` maps every state to the
function that consumes one character in it. A transition either consumes
the character, hands it back to the ``NONE`` state (the token ended), or
stops the step.

Public API:

* ``parse_cfi(text, options)`` — parse a full CFI into a :class:`ParsedCfi`.
* ``scan_step(text, stricter)`` — scan one step from the head of ``text``.
"""
from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from epubcfi.errors import MalformedCfiError
from epubcfi.options import ParseOptions, coerce_parse_options
from epubcfi.types import (
    Assertion,
    ParsedCfi,
    Part,
    SideBias,
    SpatialPoint,
    Step,
    TextLocationAssertion,
    extend_last_part,
)

_CFI_RE = re.compile(r"^epubcfi\((.*)\)$", re.DOTALL)
_SIDE_BIAS_RE = re.compile(r"^(.*);s=([ba])$", re.DOTALL)
_SPATIAL_RE = re.compile(r"^([\d.]+):([\d.]+)$")

_DIGITS: frozenset[str] = frozenset("0123456789")


# ---------------------------------------------------------------------------
# Scanner state
# ---------------------------------------------------------------------------

class ScanState(Enum):
    """Token currently being accumulated by the step scanner."""

    NONE = "none"
    SLASH = "/"        # node index digits
    OFFSET = ":"       # character offset digits
    TEMPORAL = "~"     # temporal offset, digits and one '.'
    SPATIAL = "@"      # x:y, digits, '.' and one ':'
    ASSERTION = "["    # text location assertion after an offset
    NODE_ID = "nodeID" # id assertion after a node index
    HOP = "!"          # step ended on a document hop


class Outcome(Enum):
    """What the scanner does after a transition."""

    CONSUME = "consume"        # advance to the next character
    PASS = "pass"              # token ended; re-read the character in NONE
    STOP = "stop"              # end the step before this character
    STOP_AFTER = "stop_after"  # end the step after this character


@dataclass(slots=True)
class StepScan:
    """Mutable accumulator for one step while it is being scanned."""

    stricter: bool = True
    state: ScanState = ScanState.NONE
    prev_state: ScanState = ScanState.NONE
    buffer: str | None = None
    escape: bool = False
    seen_colon: bool = False
    seen_slash: bool = False

    node_index: int | None = None
    node_id: str | None = None
    offset: int | None = None
    temporal: float | None = None
    spatial: SpatialPoint | None = None
    side_bias: SideBias | None = None
    assertion_split: bool = False
    assertion_pre: str | None = None
    assertion_post: str | None = None
    assertion_text: str | None = None

    def push(self, ch: str) -> None:
        self.buffer = ch if self.buffer is None else self.buffer + ch

    def take(self) -> str | None:
        value, self.buffer = self.buffer, None
        return value

    def enter(self, state: ScanState) -> None:
        self.prev_state = self.state
        self.state = state

    def leave(self) -> None:
        self.prev_state = self.state
        self.state = ScanState.NONE

    def set_assertion_text(self, text: str) -> None:
        if self.assertion_split:
            self.assertion_post = text
        else:
            self.assertion_text = text

    def apply_assertion_tail(self, text: str | None) -> None:
        """Store the text after the last comma, peeling off ``;s=b``/``;s=a``."""
        if not text:
            return
        m = _SIDE_BIAS_RE.match(text.strip())
        if m is None:
            self.set_assertion_text(text)
            return
        if m.group(1):
            self.set_assertion_text(m.group(1))
        self.side_bias = "after" if m.group(2) == "a" else "before"

    def assertion(self) -> Assertion | None:
        if self.assertion_split:
            if self.assertion_pre is None and self.assertion_post is None:
                return None
            return TextLocationAssertion(pre=self.assertion_pre, post=self.assertion_post)
        return self.assertion_text

    def finish(self) -> Step:
        if self.state in (ScanState.ASSERTION, ScanState.NODE_ID):
            raise MalformedCfiError("Unterminated '[' in CFI step")
        if self.node_index is None:
            raise MalformedCfiError("Missing child node index in CFI")
        return Step(
            node_index=self.node_index,
            node_id=self.node_id,
            offset=self.offset,
            text_location_assertion=self.assertion(),
            side_bias=self.side_bias,
            temporal=self.temporal,
            spatial=self.spatial,
        )


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def _parse_number(raw: str) -> int | float | None:
    try:
        value = float(raw)
    except ValueError:
        return None
    return int(value) if value.is_integer() else value


def parse_spatial(raw: str | None) -> SpatialPoint | None:
    """Parse ``x:y``; anything else yields None."""
    if not raw:
        return None
    m = _SPATIAL_RE.match(raw.strip())
    if m is None:
        return None
    x = _parse_number(m.group(1))
    y = _parse_number(m.group(2))
    if x is None or y is None:
        return None
    return SpatialPoint(x=x, y=y)


def scan_slash(scan: StepScan, ch: str) -> Outcome:
    if ch in _DIGITS:
        scan.push(ch)
        scan.escape = False
        return Outcome.CONSUME
    raw = scan.take()
    if raw:
        scan.node_index = int(raw)
    scan.leave()
    return Outcome.PASS


def scan_offset(scan: StepScan, ch: str) -> Outcome:
    if ch in _DIGITS:
        scan.push(ch)
        scan.escape = False
        return Outcome.CONSUME
    raw = scan.take()
    if raw:
        scan.offset = int(raw)
    scan.leave()
    return Outcome.PASS


def scan_temporal(scan: StepScan, ch: str) -> Outcome:
    if ch in _DIGITS or (ch == "." and "." not in (scan.buffer or "")):
        scan.push(ch)
        scan.escape = False
        return Outcome.CONSUME
    raw = scan.take()
    if raw and raw != ".":
        scan.temporal = float(raw)
    scan.leave()
    return Outcome.PASS


def scan_spatial(scan: StepScan, ch: str) -> Outcome:
    accept = ch in _DIGITS or ch == "."
    if ch == ":" and not scan.seen_colon:
        scan.seen_colon = True
        accept = True
    if accept:
        scan.push(ch)
        scan.escape = False
        return Outcome.CONSUME
    raw = scan.take()
    if raw and scan.seen_colon:
        scan.spatial = parse_spatial(raw)
    scan.leave()
    return Outcome.PASS


def scan_assertion(scan: StepScan, ch: str) -> Outcome:
    if ch == "]" and not scan.escape:
        scan.leave()
        scan.apply_assertion_tail(scan.take())
    elif ch == "," and not scan.escape:
        scan.assertion_split = True
        pre = scan.take()
        if pre:
            scan.assertion_pre = pre
    else:
        scan.push(ch)
    scan.escape = False
    return Outcome.CONSUME


def scan_node_id(scan: StepScan, ch: str) -> Outcome:
    if ch == "]" and not scan.escape:
        scan.leave()
        scan.node_id = scan.take()
    else:
        scan.push(ch)
    scan.escape = False
    return Outcome.CONSUME


def scan_none(scan: StepScan, ch: str) -> Outcome:
    """Dispatch on structural characters between tokens."""
    if not scan.escape:
        if ch == "!":
            scan.state = ScanState.HOP
            return Outcome.STOP_AFTER
        if ch == ",":
            return Outcome.STOP
        if ch == "/":
            if scan.seen_slash:
                return Outcome.STOP
            scan.seen_slash = True
            scan.enter(ScanState.SLASH)
            return Outcome.CONSUME
        if ch in (":", "~", "@"):
            if scan.stricter:
                # an offset cannot share a step with a temporal/spatial position
                if ch == ":" and (scan.temporal is not None or scan.spatial is not None):
                    return Outcome.STOP
                if ch != ":" and scan.offset is not None:
                    return Outcome.STOP
            scan.enter(ScanState(ch))
            scan.seen_colon = False
            return Outcome.CONSUME
        if ch == "[" and scan.prev_state is ScanState.OFFSET:
            scan.enter(ScanState.ASSERTION)
            return Outcome.CONSUME
        if ch == "[" and scan.prev_state is ScanState.SLASH:
            scan.enter(ScanState.NODE_ID)
            return Outcome.CONSUME
    # vendor extensions and stray characters
    scan.escape = False
    return Outcome.CONSUME


_TRANSITIONS: dict[ScanState, Callable[[StepScan, str], Outcome]] = {
    ScanState.NONE: scan_none,
    ScanState.SLASH: scan_slash,
    ScanState.OFFSET: scan_offset,
    ScanState.TEMPORAL: scan_temporal,
    ScanState.SPATIAL: scan_spatial,
    ScanState.ASSERTION: scan_assertion,
    ScanState.NODE_ID: scan_node_id,
}


def feed(scan: StepScan, ch: str) -> Outcome:
    """Advance the scanner by one character (``""`` marks end of input)."""
    if ch == "^" and not scan.escape:
        scan.escape = True
        return Outcome.CONSUME
    outcome = _TRANSITIONS[scan.state](scan, ch)
    if outcome is Outcome.PASS:
        outcome = scan_none(scan, ch)
    return outcome


def scan_step(text: str, *, stricter: bool = True) -> tuple[Step, int, bool]:
    """Scan one step from the start of ``text``.

    Returns:
        (step, consumed, new_doc) where ``consumed`` is the number of
        characters to drop before scanning the next step (it may exceed
        ``len(text)`` at end of input) and ``new_doc`` tells whether the
        step ended on a ``!`` document hop.
    """
    scan = StepScan(stricter=stricter)
    index = 0
    length = len(text)
    while index <= length:
        ch = text[index] if index < length else ""
        outcome = feed(scan, ch)
        if outcome is Outcome.STOP:
            break
        index += 1
        if outcome is Outcome.STOP_AFTER:
            break
    return scan.finish(), index, scan.state is ScanState.HOP


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

def _strip_part(part: Part, *, keep_last: bool) -> Part:
    last = len(part) - 1
    return tuple(
        step if (keep_last and i == last) else step.without_qualifiers()
        for i, step in enumerate(part)
    )


def strip_illegal_qualifiers(parsed: ParsedCfi) -> ParsedCfi:
    """Drop terminal qualifiers from every step that is not a path terminus.

    For a range the common prefix never ends a location (the suffixes
    follow it), so its last part is stripped entirely.
    """
    parts = parsed.parts
    stripped: list[Part] = []
    for i, part in enumerate(parts):
        is_last = i == len(parts) - 1
        stripped.append(_strip_part(part, keep_last=not (is_last and parsed.is_range)))
    range_from = parsed.range_from
    range_to = parsed.range_to
    if range_from:
        range_from = _strip_part(range_from, keep_last=True)
    if range_to:
        range_to = _strip_part(range_to, keep_last=True)
    return ParsedCfi(parts=tuple(stripped), range_from=range_from, range_to=range_to)


def parse_cfi(
    text: str,
    options: ParseOptions | dict[str, Any] | None = None,
) -> ParsedCfi:
    """Parse a CFI string.

    Parameters
    ----------
    text:
        The CFI, e.g. ``"epubcfi(/6/4[chap01ref]!/4[body01]/10[para05]/3:5)"``.
    options:
        :class:`ParseOptions` or an equivalent mapping.

    Returns
    -------
    ParsedCfi
        The path, plus the range suffixes when the CFI is a simple range
        (and ``flatten_range`` is off).

    Raises
    ------
    MalformedCfiError
        On any grammar violation.
    """
    opts = coerce_parse_options(options)
    m = _CFI_RE.match(text.strip())
    if m is None:
        raise MalformedCfiError("Not a valid CFI")
    body = m.group(1)

    parts: list[Part] = []
    steps: list[Step] = []
    range_from: Part | None = None
    range_to: Part | None = None
    saw_comma = 0

    while body:
        step, consumed, new_doc = scan_step(body, stricter=opts.stricter)
        if saw_comma and new_doc:
            raise MalformedCfiError(
                "CFI is a range that spans multiple documents. This is not allowed"
            )
        steps.append(step)
        body = body[consumed:]

        if new_doc or not body:
            if saw_comma == 2:
                range_to = tuple(steps)
            elif saw_comma == 1:
                range_from = tuple(steps)
            else:
                parts.append(tuple(steps))
            steps = []

        if body.startswith(","):
            if saw_comma == 0:
                if not steps:
                    raise MalformedCfiError(
                        "CFI range has no common path inside the final document"
                    )
                parts.append(tuple(steps))
            elif saw_comma == 1:
                if steps:
                    range_from = tuple(steps)
            else:
                raise MalformedCfiError("CFI range has more than two end points")
            steps = []
            body = body[1:]
            saw_comma += 1

    if range_from and (opts.flatten_range or not range_to):
        parsed = ParsedCfi(parts=extend_last_part(tuple(parts), range_from))
    elif range_from:
        parsed = ParsedCfi(parts=tuple(parts), range_from=range_from, range_to=range_to)
    else:
        parsed = ParsedCfi(parts=tuple(parts))

    if opts.stricter:
        parsed = strip_illegal_qualifiers(parsed)
    return parsed
