"""Declarative note filters and result pagination.

:func:`compile_filter` turns raw option values into ready predicates once per
call; :func:`passes_compiled_filter` then checks each note against them.

An option that cannot be compiled (an invalid ``exclude_pattern`` regex or an
unparsable date) is logged and left inactive; every other option still
applies.  All query and search operations share this behaviour.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, Literal, TypeVar

from linkvault.note import Note

logger = logging.getLogger(__name__)

T = TypeVar("T")

TagsMode = Literal["any", "all"]

DEFAULT_LIMIT = 50


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


def _as_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


@dataclass
class FilterOptions:
    folder: str | None = None
    exclude_folders: list[str] = field(default_factory=list)
    #: Case-insensitive regex matched against note names
    exclude_pattern: str | None = None
    #: ISO-8601 dates or datetimes
    modified_after: str | None = None
    modified_before: str | None = None
    tags: list[str] = field(default_factory=list)
    exclude_tags: list[str] = field(default_factory=list)
    tags_mode: TagsMode = "any"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FilterOptions":
        """Build options from transport-layer keys; unknown keys are ignored."""
        return cls(
            folder=data.get("folder") or None,
            exclude_folders=_as_list(data.get("exclude_folders")),
            exclude_pattern=data.get("exclude_pattern") or None,
            modified_after=data.get("modified_after") or None,
            modified_before=data.get("modified_before") or None,
            tags=_as_list(data.get("tags")),
            exclude_tags=_as_list(data.get("exclude_tags")),
            tags_mode="all" if data.get("tags_mode") == "all" else "any",
        )


@dataclass(frozen=True)
class CompiledFilter:
    folder: str | None = None
    exclude_folders: tuple[str, ...] = ()
    exclude_re: re.Pattern[str] | None = None
    modified_after: datetime | None = None
    modified_before: datetime | None = None
    tag_set: frozenset[str] | None = None
    exclude_tag_set: frozenset[str] | None = None
    tags_mode: TagsMode = "any"


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------


def folder_prefix(folder: str) -> str:
    """Normalise a vault-relative folder to a ``"a/b/"`` prefix."""
    cleaned = folder.strip().replace("\\", "/").strip("/")
    if cleaned.startswith("./"):
        cleaned = cleaned[2:]
    return f"{cleaned}/" if cleaned else ""


def compile_exclude_pattern(pattern: str | None) -> re.Pattern[str] | None:
    if not pattern:
        return None
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        logger.warning("Ignoring invalid exclude pattern %r: %s", pattern, exc)
        return None


def parse_date(value: str | None) -> datetime | None:
    """Parse an ISO date/datetime; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        logger.warning("Ignoring unparsable date filter %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_tag(tag: str) -> str:
    return tag.strip().lstrip("#").lower()


def _tag_set(tags: Iterable[str]) -> frozenset[str] | None:
    normalized = frozenset(normalize_tag(t) for t in tags if normalize_tag(t))
    return normalized or None


def compile_filter(options: FilterOptions | None) -> CompiledFilter:
    if options is None:
        return CompiledFilter()
    return CompiledFilter(
        folder=folder_prefix(options.folder) if options.folder else None,
        exclude_folders=tuple(p for p in map(folder_prefix, options.exclude_folders) if p),
        exclude_re=compile_exclude_pattern(options.exclude_pattern),
        modified_after=parse_date(options.modified_after),
        modified_before=parse_date(options.modified_before),
        tag_set=_tag_set(options.tags),
        exclude_tag_set=_tag_set(options.exclude_tags),
        tags_mode=options.tags_mode,
    )


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def in_folder(note: Note, prefix: str) -> bool:
    return not prefix or note.rel_path.startswith(prefix)


def passes_exclude_pattern(name: str, exclude_re: re.Pattern[str] | None) -> bool:
    return exclude_re is None or exclude_re.search(name) is None


def _note_tags(note: Note) -> set[str]:
    return {t.lower() for t in note.frontmatter_tags} | {t.lower() for t in note.inline_tags}


def matches_tags(note: Note, tag_set: frozenset[str], mode: TagsMode = "any") -> bool:
    note_tags = _note_tags(note)
    if mode == "all":
        return tag_set <= note_tags
    return not tag_set.isdisjoint(note_tags)


def passes_compiled_filter(note: Note, compiled: CompiledFilter) -> bool:
    if compiled.folder and not in_folder(note, compiled.folder):
        return False
    if any(in_folder(note, prefix) for prefix in compiled.exclude_folders):
        return False
    if not passes_exclude_pattern(note.name, compiled.exclude_re):
        return False
    if compiled.modified_after and note.mtime < compiled.modified_after:
        return False
    if compiled.modified_before and note.mtime > compiled.modified_before:
        return False
    if compiled.tag_set and not matches_tags(note, compiled.tag_set, compiled.tags_mode):
        return False
    if compiled.exclude_tag_set and matches_tags(note, compiled.exclude_tag_set, "any"):
        return False
    return True


def filter_notes(notes: Mapping[str, Note], options: FilterOptions | None) -> dict[str, Note]:
    """Return the subset of *notes* (keyed as given) that pass *options*."""
    compiled = compile_filter(options)
    return {key: note for key, note in notes.items() if passes_compiled_filter(note, compiled)}


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


@dataclass
class Page(Generic[T]):
    total: int
    offset: int
    limit: int
    results: list[T]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "offset": self.offset,
            "limit": self.limit,
            "results": [_as_plain(item) for item in self.results],
        }


def _as_plain(item: Any) -> Any:
    to_dict = getattr(item, "to_dict", None)
    return to_dict() if callable(to_dict) else item


def paginate(items: list[T], limit: int = DEFAULT_LIMIT, offset: int = 0) -> Page[T]:
    """Slice *items*; ``total`` is always the unsliced count."""
    offset = max(offset, 0)
    limit = max(limit, 0)
    return Page(total=len(items), offset=offset, limit=limit, results=items[offset : offset + limit])
