"""linkvault: link-graph and query engine for wiki-linked Markdown vaults."""

from linkvault.backlinks import (
    backlinks,
    batch_find_backlinks,
    batch_resolve,
    missing_notes,
    missing_notes_by_source,
    orphans,
)
from linkvault.config import VaultConfig, load_config
from linkvault.filters import FilterOptions, Page, compile_filter, paginate, passes_compiled_filter
from linkvault.graph import stats, traverse
from linkvault.index import GraphSnapshot, VaultIndex, fuzzy_name, normalize_name
from linkvault.note import Checkbox, Heading, Note, Wikilink
from linkvault.parser import (
    extract_checkboxes,
    extract_frontmatter,
    extract_headings,
    extract_inline_tags,
    extract_wikilinks,
    parse_note,
    replace_frontmatter,
    serialize_frontmatter,
)
from linkvault.scanner import NoteSource, scan_vault
from linkvault.search import find_by_tag, find_similar_names, find_untagged, levenshtein, search

__version__ = "0.1.0"

__all__ = [
    "Checkbox",
    "FilterOptions",
    "GraphSnapshot",
    "Heading",
    "Note",
    "NoteSource",
    "Page",
    "VaultConfig",
    "VaultIndex",
    "Wikilink",
    "backlinks",
    "batch_find_backlinks",
    "batch_resolve",
    "compile_filter",
    "extract_checkboxes",
    "extract_frontmatter",
    "extract_headings",
    "extract_inline_tags",
    "extract_wikilinks",
    "find_by_tag",
    "find_similar_names",
    "find_untagged",
    "fuzzy_name",
    "levenshtein",
    "load_config",
    "missing_notes",
    "missing_notes_by_source",
    "normalize_name",
    "orphans",
    "paginate",
    "parse_note",
    "passes_compiled_filter",
    "replace_frontmatter",
    "scan_vault",
    "search",
    "serialize_frontmatter",
    "stats",
    "traverse",
]
