"""EPUB Canonical Fragment Identifiers: parse, resolve, generate and compare."""

from epubcfi.cfi import CFI, Fetch
from epubcfi.compare import (
    compare,
    compare_parts,
    compare_path,
    compare_spatial,
    compare_temporal,
    sort_cfis,
)
from epubcfi.errors import (
    CfiError,
    LinkNotFoundError,
    MalformedCfiError,
    ResolutionError,
    TransportError,
)
from epubcfi.escaping import escape, is_reserved, unescape
from epubcfi.generator import NodeRef, generate, generate_chain, generate_part
from epubcfi.links import resolve_uri
from epubcfi.options import ParseOptions, ResolveOptions
from epubcfi.parser import parse_cfi
from epubcfi.resolver import resolve_last, resolve_location, resolve_node
from epubcfi.siblings import SiblingIndex, cfi_index_of, child_at_cfi_index
from epubcfi.soup import SoupTree
from epubcfi.tree import DocumentTree, NodeKind, TreeRange
from epubcfi.types import (
    CfiRange,
    ParsedCfi,
    ResolvedLocation,
    ResolvedRange,
    SpatialPoint,
    Step,
    TextLocationAssertion,
)

__all__ = [
    "CFI",
    "CfiError",
    "CfiRange",
    "DocumentTree",
    "Fetch",
    "LinkNotFoundError",
    "MalformedCfiError",
    "NodeKind",
    "NodeRef",
    "ParseOptions",
    "ParsedCfi",
    "ResolutionError",
    "ResolveOptions",
    "ResolvedLocation",
    "ResolvedRange",
    "SiblingIndex",
    "SoupTree",
    "SpatialPoint",
    "Step",
    "TextLocationAssertion",
    "TransportError",
    "TreeRange",
    "cfi_index_of",
    "child_at_cfi_index",
    "compare",
    "compare_parts",
    "compare_path",
    "compare_spatial",
    "compare_temporal",
    "escape",
    "generate",
    "generate_chain",
    "generate_part",
    "is_reserved",
    "parse_cfi",
    "resolve_last",
    "resolve_location",
    "resolve_node",
    "resolve_uri",
    "sort_cfis",
    "unescape",
]
