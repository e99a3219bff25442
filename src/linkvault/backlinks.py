"""Backlink, orphan and broken-link reports over a :class:`VaultIndex`.

Every report accepts :class:`~linkvault.filters.FilterOptions` plus
``limit`` / ``offset`` and returns a :class:`~linkvault.filters.Page`.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from linkvault.filters import (
    DEFAULT_LIMIT,
    CompiledFilter,
    FilterOptions,
    Page,
    compile_filter,
    paginate,
    passes_compiled_filter,
)
from linkvault.index import GraphSnapshot, normalize_name
from linkvault.parser import frontmatter_body

if TYPE_CHECKING:
    from linkvault.index import VaultIndex

BrokenLinkType = Literal["note", "embed", "all"]

# "diagram.png", "paper.pdf": a missing attachment rather than a missing note
_HAS_EXTENSION_RE = re.compile(r"\.\w{1,5}$")


@dataclass
class NoteRef:
    name: str
    path: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class OrphanEntry:
    name: str
    path: str
    tags: list[str]
    frontmatter_tags: list[str]
    inline_tags: list[str]
    content_length: int
    #: Nothing but whitespace after the frontmatter block
    empty: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class MissingEntry:
    name: str
    referenced_by: list[str]
    count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class BrokenLink:
    name: str
    is_embed: bool


@dataclass
class SourceEntry:
    source: str
    source_path: str
    broken_links: list[BrokenLink] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.broken_links)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "source_path": self.source_path,
            "broken_links": [asdict(b) for b in self.broken_links],
            "count": self.count,
        }


def is_embed_name(name: str) -> bool:
    return _HAS_EXTENSION_RE.search(name) is not None


def passes_type_filter(name: str, link_type: BrokenLinkType) -> bool:
    if link_type == "all":
        return True
    return is_embed_name(name) == (link_type == "embed")


def _by_name(name: str) -> tuple[str, str]:
    return (name.lower(), name)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def batch_resolve(index: "VaultIndex", names: list[str]) -> dict[str, list[dict[str, Any]]]:
    """Resolve several names at once; unknown names are reported as errors."""
    snap = index.snapshot()
    resolved: list[dict[str, Any]] = []
    errors: list[dict[str, Any]] = []
    for name in names:
        note = snap.resolve(name)
        if note is None:
            errors.append({"name": name, "error": f"Note '{name}' not found"})
        else:
            resolved.append(note.to_dict())
    return {"resolved": resolved, "errors": errors}


# ---------------------------------------------------------------------------
# Backlinks
# ---------------------------------------------------------------------------


def _backlink_refs(snap: GraphSnapshot, name: str, compiled: CompiledFilter) -> list[NoteRef]:
    note = snap.resolve(name)
    # Unresolved names fall back to the raw key so broken-link referrers show up.
    key = normalize_name(note.name if note is not None else name)
    refs: list[NoteRef] = []
    for ref_key in snap.backward.get(key, ()):
        ref = snap.notes.get(ref_key)
        if ref is None or not passes_compiled_filter(ref, compiled):
            continue
        refs.append(NoteRef(name=ref.name, path=str(ref.path)))
    refs.sort(key=lambda r: _by_name(r.name))
    return refs


def backlinks(
    index: "VaultIndex",
    name: str,
    options: FilterOptions | None = None,
    *,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Page[NoteRef]:
    """Return the notes that link to *name*, sorted by name."""
    snap = index.snapshot()
    return paginate(_backlink_refs(snap, name, compile_filter(options)), limit, offset)


def batch_find_backlinks(
    index: "VaultIndex",
    names: list[str],
    options: FilterOptions | None = None,
    *,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, list[dict[str, Any]]]:
    snap = index.snapshot()
    compiled = compile_filter(options)
    results: list[dict[str, Any]] = []
    errors: list[dict[str, Any]] = []
    for name in names:
        note = snap.resolve(name)
        if note is None:
            errors.append({"name": name, "error": f"Note '{name}' not found"})
            continue
        page = paginate(_backlink_refs(snap, note.name, compiled), limit, offset)
        results.append({"name": note.name, "backlinks": page.to_dict()})
    return {"results": results, "errors": errors}


# ---------------------------------------------------------------------------
# Orphans
# ---------------------------------------------------------------------------


def orphans(
    index: "VaultIndex",
    options: FilterOptions | None = None,
    *,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Page[OrphanEntry]:
    """Return notes nothing links to."""
    snap = index.snapshot()
    compiled = compile_filter(options)
    found: list[OrphanEntry] = []
    for key, note in snap.notes.items():
        if snap.backward.get(key) or not passes_compiled_filter(note, compiled):
            continue
        found.append(
            OrphanEntry(
                name=note.name,
                path=str(note.path),
                tags=note.all_tags,
                frontmatter_tags=list(note.frontmatter_tags),
                inline_tags=list(note.inline_tags),
                content_length=len(note.content),
                empty=not frontmatter_body(note.content).strip(),
            )
        )
    found.sort(key=lambda o: _by_name(o.name))
    return paginate(found, limit, offset)


# ---------------------------------------------------------------------------
# Broken links
# ---------------------------------------------------------------------------


def _scope_keys(snap: GraphSnapshot, note_names: list[str] | None) -> set[str] | None:
    if note_names is None:
        return None
    keys: set[str] = set()
    for name in note_names:
        note = snap.resolve(name)
        if note is not None:
            keys.add(normalize_name(note.name))
    return keys


def _referrers_in_scope(
    snap: GraphSnapshot,
    referrers: set[str],
    scope: set[str] | None,
    compiled: CompiledFilter,
) -> list[str]:
    kept: list[str] = []
    for ref_key in referrers:
        if scope is not None and ref_key not in scope:
            continue
        note = snap.notes.get(ref_key)
        if note is not None and passes_compiled_filter(note, compiled):
            kept.append(ref_key)
    return kept


def missing_notes(
    index: "VaultIndex",
    options: FilterOptions | None = None,
    *,
    link_type: BrokenLinkType = "all",
    note_names: list[str] | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Page[MissingEntry]:
    """Group broken links by missing target, most-referenced first.

    *note_names* restricts referrers to those notes (resolved by name).
    """
    snap = index.snapshot()
    compiled = compile_filter(options)
    scope = _scope_keys(snap, note_names)

    entries: list[MissingEntry] = []
    for target, referrers in snap.missing.items():
        if not passes_type_filter(target, link_type):
            continue
        kept = _referrers_in_scope(snap, referrers, scope, compiled)
        if not kept:
            continue
        names = sorted((snap.name_of(k) for k in kept), key=_by_name)
        entries.append(MissingEntry(name=target, referenced_by=names, count=len(names)))
    entries.sort(key=lambda e: (-e.count, e.name))
    return paginate(entries, limit, offset)


def missing_notes_by_source(
    index: "VaultIndex",
    options: FilterOptions | None = None,
    *,
    link_type: BrokenLinkType = "all",
    note_names: list[str] | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Page[SourceEntry]:
    """Group broken links by the note that contains them, most broken first."""
    snap = index.snapshot()
    compiled = compile_filter(options)
    scope = _scope_keys(snap, note_names)

    by_source: dict[str, SourceEntry] = {}
    for target in sorted(snap.missing):
        if not passes_type_filter(target, link_type):
            continue
        for ref_key in _referrers_in_scope(snap, snap.missing[target], scope, compiled):
            note = snap.notes[ref_key]
            entry = by_source.setdefault(
                ref_key, SourceEntry(source=note.name, source_path=str(note.path))
            )
            entry.broken_links.append(BrokenLink(name=target, is_embed=is_embed_name(target)))

    entries = sorted(by_source.values(), key=lambda e: (-e.count, *_by_name(e.source)))
    return paginate(entries, limit, offset)
