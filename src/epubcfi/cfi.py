"""The ``CFI`` object: one parsed identifier plus everything you can do with it.

Usage::

    cfi = CFI("epubcfi(/6/4[chap01ref]!/4[body01]/10[para05]/3:5)")
    uri = cfi.resolve_uri(0, opf_tree)          # "chapter01.xhtml"
    loc = cfi.resolve_last(chapter_tree)        # ResolvedLocation(node=..., offset=5)

    # or let the object walk the hops itself
    loc = await cfi.resolve(opf_tree, fetch=load_tree)

Parsing happens in the constructor, so a malformed string never produces an
object. Instances compare equal when their parsed structures are equal,
whatever the original spelling.
"""
from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from epubcfi import compare as _compare
from epubcfi import generator as _generator
from epubcfi.errors import CfiError, ResolutionError, TransportError
from epubcfi.links import resolve_uri
from epubcfi.options import ParseOptions, coerce_parse_options
from epubcfi.parser import parse_cfi
from epubcfi.resolver import OptionsArg, resolve_last, resolve_node
from epubcfi.tree import DocumentTree, Node, TreeRange
from epubcfi.types import CfiRange, Part, Path, ResolvedLocation, ResolvedRange

log = logging.getLogger(__name__)

type Fetch = Callable[[str], DocumentTree | Awaitable[DocumentTree]]


class CFI:
    """A parsed EPUB Canonical Fragment Identifier.

    Parameters
    ----------
    text:
        The CFI string, ``epubcfi(...)`` wrapper included.
    options:
        :class:`ParseOptions` or an equivalent mapping
        (``{"flattenRange": True}`` works too).
    **overrides:
        Individual option overrides, e.g. ``flatten_range=True``.

    Raises
    ------
    MalformedCfiError
        When ``text`` is not a valid CFI.
    """

    __slots__ = ("cfi", "options", "parsed")

    def __init__(
        self,
        text: str,
        options: ParseOptions | Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> None:
        self.cfi = text
        self.options = coerce_parse_options(options).merged(**overrides)
        self.parsed = parse_cfi(text, self.options)

    # ── Parsed structure ──────────────────────────────────────────────

    @property
    def parts(self) -> Path:
        return self.parsed.parts

    @property
    def range_from(self) -> Part | None:
        return self.parsed.range_from

    @property
    def range_to(self) -> Part | None:
        return self.parsed.range_to

    @property
    def is_range(self) -> bool:
        return self.parsed.is_range

    def get(self) -> Path | CfiRange:
        """Path of a plain CFI, or the expanded start/end paths of a range."""
        if self.is_range:
            return CfiRange(self.get_from(), self.get_to())
        return self.parts

    def get_from(self) -> Path:
        if not self.is_range:
            raise CfiError("Trying to get beginning of non-range CFI")
        return self.parsed.from_path()

    def get_to(self) -> Path:
        if not self.is_range:
            raise CfiError("Trying to get end of non-range CFI")
        return self.parsed.to_path()

    def to_dict(self) -> list[list[dict[str, Any]]] | dict[str, Any]:
        return self.parsed.to_dict()

    def to_json(self) -> bytes:
        return self.parsed.to_json()

    # ── Resolution ────────────────────────────────────────────────────

    def resolve_uri(
        self,
        index: int,
        tree: DocumentTree | None,
        options: OptionsArg = None,
    ) -> str:
        """URI of the document that part ``index`` hops into.

        Only parts followed by a ``!`` can be resolved to a URI, so
        ``index`` must lie in ``0 .. len(parts) - 2``.
        """
        if index < 0 or index > len(self.parts) - 2:
            raise ResolutionError("index is out of bounds")
        if tree is None:
            raise ResolutionError("Missing DOM argument")
        location = resolve_node(index, self.parts[index], tree, options)
        uri = resolve_uri(tree, location.node)
        log.debug("Part %d of %s links to %s", index, self.cfi, uri)
        return uri

    def resolve_last(
        self,
        tree: DocumentTree | None,
        options: OptionsArg = None,
    ) -> ResolvedLocation | ResolvedRange | TreeRange:
        """Resolve the location (or range) inside the final document.

        ``tree`` must be the document the last part addresses.
        """
        return resolve_last(tree, self.parsed, options)

    async def resolve(
        self,
        tree_or_uri: DocumentTree | str,
        fetch: Fetch | None = None,
        options: OptionsArg = None,
    ) -> ResolvedLocation | ResolvedRange | TreeRange:
        """Resolve the whole CFI, hopping across documents.

        Parameters
        ----------
        tree_or_uri:
            Tree of the first document (usually the package document), or
            its URI to be loaded with ``fetch``.
        fetch:
            Called with each URI to load; may return the tree directly or
            an awaitable. Hops are followed one at a time.
        options:
            :class:`ResolveOptions` or an equivalent mapping.

        Raises
        ------
        TransportError
            When a document has to be loaded and ``fetch`` is missing or fails.
        """
        uri: str | None = None
        tree: DocumentTree | None = None
        if isinstance(tree_or_uri, str):
            uri = tree_or_uri
        else:
            tree = tree_or_uri

        for i in range(len(self.parts) - 1):
            if uri is not None:
                tree = await self._fetch(fetch, uri)
            uri = self.resolve_uri(i, tree, options)

        if uri is not None:
            tree = await self._fetch(fetch, uri)
        return self.resolve_last(tree, options)

    @staticmethod
    async def _fetch(fetch: Fetch | None, uri: str) -> DocumentTree:
        if fetch is None:
            raise TransportError("No fetch function supplied")
        log.debug("Fetching %s", uri)
        try:
            result = fetch(uri)
            if inspect.isawaitable(result):
                result = await result
        except CfiError:
            raise
        except Exception as exc:
            raise TransportError(f"Failed to get: {uri}") from exc
        return result

    # ── Generation ────────────────────────────────────────────────────

    @staticmethod
    def generate_part(tree: DocumentTree, node: Node, offset: int | None = None) -> str:
        return _generator.generate_part(tree, node, offset)

    @staticmethod
    def generate(
        tree: DocumentTree,
        node: Node,
        offset: int | None = None,
        extra: str | None = None,
    ) -> str:
        return _generator.generate(tree, node, offset, extra)

    @staticmethod
    def generate_chain(
        refs: Sequence[_generator.NodeRef],
        extra: str | None = None,
    ) -> str:
        return _generator.generate_chain(refs, extra)

    # ── Ordering ──────────────────────────────────────────────────────

    @staticmethod
    def to_parsed(cfi: CFI | str) -> Path:
        """Path used for ordering: the start path of a range, else the path."""
        instance = CFI(cfi) if isinstance(cfi, str) else cfi
        if instance.is_range:
            return instance.get_from()
        return instance.parts

    @staticmethod
    def compare(a: CFI | str, b: CFI | str) -> int:
        return _compare.compare(a, b)

    @staticmethod
    def compare_path(a: Path, b: Path) -> int:
        return _compare.compare_path(a, b)

    @staticmethod
    def compare_parts(a: Part, b: Part) -> int:
        return _compare.compare_parts(a, b)

    @staticmethod
    def sort(items: list[CFI]) -> None:
        """Sort ``items`` in place into document order."""
        items.sort(key=_compare.cmp_key)

    # ── Dunder ────────────────────────────────────────────────────────

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CFI):
            return NotImplemented
        return self.parsed == other.parsed

    def __hash__(self) -> int:
        return hash(self.parsed)

    def __str__(self) -> str:
        return self.cfi

    def __repr__(self) -> str:
        return f"CFI({self.cfi!r})"
