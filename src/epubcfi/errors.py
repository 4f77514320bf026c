"""Exception hierarchy for CFI parsing, resolution and document hops.

Every error raised by the package derives from :class:`CfiError` so callers
can treat any failure for a given CFI/document pair as one condition.
Text location assertion problems are never raised; the corrector falls back
to the uncorrected offset instead.
"""
from __future__ import annotations


class CfiError(Exception):
    """Base class for all CFI failures."""


class MalformedCfiError(CfiError, ValueError):
    """Raised when a CFI string does not follow the grammar.

    Covers a missing ``epubcfi(...)`` wrapper, a step without a node index,
    illegal qualifier combinations and ranges that cross a document hop.
    """


class ResolutionError(CfiError, LookupError):
    """Raised when a parsed CFI cannot be mapped onto a document tree."""


class LinkNotFoundError(ResolutionError):
    """Raised when an addressed element carries no next-document reference."""


class TransportError(CfiError, RuntimeError):
    """Raised when the document-fetch collaborator is missing or fails."""
