"""Content, tag and near-duplicate-name search."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from linkvault.filters import (
    DEFAULT_LIMIT,
    FilterOptions,
    Page,
    filter_notes,
    normalize_tag,
    paginate,
)
from linkvault.parser import split_lines

if TYPE_CHECKING:
    from linkvault.index import VaultIndex

Matcher = Callable[[str], bool]

NAME_MATCH_MARKER = "[name match]"


@dataclass
class SearchHit:
    file: str
    path: str
    #: 1-based line number; 0 for a match on the note name
    line: int
    text: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TaggedNote:
    name: str
    path: str
    tags: list[str]
    frontmatter_tags: list[str]
    inline_tags: list[str]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SimilarName:
    name: str
    path: str
    distance: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _sort_key(name: str) -> tuple[str, str]:
    return (name.lower(), name)


# ---------------------------------------------------------------------------
# Matchers
# ---------------------------------------------------------------------------


def build_matcher(
    query: str,
    *,
    whole_word: bool = False,
    regex: bool = False,
    multi_term: bool = True,
) -> Matcher:
    """Return a case-insensitive line predicate for *query*.

    Strategies, first match wins: regex, whole word, any-of-several terms,
    plain substring.  An invalid regex matches nothing.
    """
    if regex:
        try:
            pattern = re.compile(query, re.IGNORECASE)
        except re.error:
            return lambda text: False
        return lambda text: pattern.search(text) is not None

    lowered = query.lower()
    if whole_word:
        word = re.compile(rf"\b{re.escape(lowered)}\b", re.IGNORECASE)
        return lambda text: word.search(text) is not None

    if multi_term:
        terms = lowered.split()
        if len(terms) > 1:
            return lambda text: any(term in text.lower() for term in terms)

    return lambda text: lowered in text.lower()


# ---------------------------------------------------------------------------
# Content search
# ---------------------------------------------------------------------------


def search(
    index: "VaultIndex",
    query: str,
    options: FilterOptions | None = None,
    *,
    whole_word: bool = False,
    regex: bool = False,
    multi_term: bool = True,
    include_names: bool = False,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Page[SearchHit]:
    """Return every matching line across the filtered notes.

    With *include_names*, a matching note name is reported as a line-0 hit
    ahead of that note's content hits.
    """
    snap = index.snapshot()
    matches = build_matcher(query, whole_word=whole_word, regex=regex, multi_term=multi_term)

    hits: list[SearchHit] = []
    for note in filter_notes(snap.notes, options).values():
        path = str(note.path)
        if include_names and matches(note.name):
            hits.append(SearchHit(note.name, path, 0, f"{NAME_MATCH_MARKER} {note.name}"))
        for line_no, line in enumerate(split_lines(note.content), start=1):
            if matches(line):
                hits.append(SearchHit(note.name, path, line_no, line.strip()))
    return paginate(hits, limit, offset)


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


def find_by_tag(
    index: "VaultIndex",
    tag: str,
    options: FilterOptions | None = None,
    *,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Page[TaggedNote]:
    """Return notes carrying *tag* (frontmatter or inline, ``#`` optional)."""
    wanted = normalize_tag(tag)
    snap = index.snapshot()
    found = [
        TaggedNote(
            name=note.name,
            path=str(note.path),
            tags=note.all_tags,
            frontmatter_tags=list(note.frontmatter_tags),
            inline_tags=list(note.inline_tags),
        )
        for note in filter_notes(snap.notes, options).values()
        if any(t.lower() == wanted for t in note.all_tags)
    ]
    found.sort(key=lambda n: _sort_key(n.name))
    return paginate(found, limit, offset)


def find_untagged(
    index: "VaultIndex",
    options: FilterOptions | None = None,
    *,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Page[dict[str, str]]:
    snap = index.snapshot()
    found = [
        {"name": note.name, "path": str(note.path)}
        for note in filter_notes(snap.notes, options).values()
        if not note.is_tagged
    ]
    found.sort(key=lambda n: _sort_key(n["name"]))
    return paginate(found, limit, offset)


# ---------------------------------------------------------------------------
# Similar names
# ---------------------------------------------------------------------------


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit costs, keeping only two rows of the table."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def find_similar_names(
    index: "VaultIndex",
    name: str,
    threshold: int = 3,
    *,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Page[SimilarName]:
    """Return notes whose names are within *threshold* edits of *name* (exact matches excluded)."""
    target = name.lower()
    snap = index.snapshot()
    found: list[SimilarName] = []
    for note in snap.notes.values():
        distance = levenshtein(target, note.name.lower())
        if 0 < distance <= threshold:
            found.append(SimilarName(name=note.name, path=str(note.path), distance=distance))
    found.sort(key=lambda s: (s.distance, *_sort_key(s.name)))
    return paginate(found, limit, offset)
