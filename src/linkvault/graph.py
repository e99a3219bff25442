"""Link traversal and vault statistics.

:func:`traverse` walks the forward adjacency breadth-first.  Every edge has
unit weight, so the first time a note is dequeued is also its shallowest
depth.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from linkvault.filters import FilterOptions, filter_notes, folder_prefix, in_folder
from linkvault.index import GraphSnapshot, normalize_name
from linkvault.note import Note

if TYPE_CHECKING:
    from linkvault.index import VaultIndex

LinkType = Literal["wikilink", "embed"]


@dataclass
class TraversedNote:
    name: str
    path: str
    depth: int
    frontmatter: dict[str, Any] | None
    tags: list[str]
    frontmatter_tags: list[str]
    inline_tags: list[str]
    #: How the note was first reached; ``None`` for roots
    link_type: LinkType | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "depth": self.depth,
            "frontmatter": self.frontmatter,
            "tags": self.tags,
            "frontmatter_tags": self.frontmatter_tags,
            "inline_tags": self.inline_tags,
            "link_type": self.link_type,
        }


@dataclass
class TraversalResult:
    depth: int
    notes: list[TraversedNote] = field(default_factory=list)
    missing: list[dict[str, Any]] = field(default_factory=list)
    root: str | None = None
    roots: list[str] | None = None
    #: Set when a start name does not resolve; notes and missing stay empty
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return {"error": self.error, "notes": [], "missing": []}
        head: dict[str, Any] = {"roots": self.roots} if self.roots is not None else {"root": self.root}
        return {
            **head,
            "depth": self.depth,
            "notes": [n.to_dict() for n in self.notes],
            "missing": self.missing,
        }


def _first_link_type(source: Note, target_key: str) -> LinkType | None:
    for link in source.wikilinks:
        if normalize_name(link.name) == target_key:
            return "embed" if link.embed else "wikilink"
    return None


def _expand(
    snap: GraphSnapshot,
    key: str,
    depth: int,
    exclude_prefixes: list[str],
    root_keys: set[str],
    link_types: dict[str, LinkType],
    missing_found: dict[str, None],
    queue: deque[tuple[str, int]],
) -> None:
    source = snap.notes.get(key)
    if source is None:
        return
    for target in sorted(snap.forward.get(key, ())):
        target_note = snap.notes.get(target)
        if target_note is None:
            missing_found[target] = None
            continue
        if any(in_folder(target_note, prefix) for prefix in exclude_prefixes):
            continue
        if target not in root_keys and target not in link_types:
            link_type = _first_link_type(source, target)
            if link_type is not None:
                link_types[target] = link_type
        queue.append((target, depth + 1))


def traverse(
    index: "VaultIndex",
    names: str | list[str],
    max_depth: int = 2,
    *,
    exclude_folders: list[str] | None = None,
) -> TraversalResult:
    """Collect every note within *max_depth* hops of one or more start notes.

    All start names must resolve; the first one that does not produces an
    error result.  Notes under *exclude_folders* are never visited.
    """
    snap = index.snapshot()
    multi_root = not isinstance(names, str)
    start_names = list(names) if multi_root else [names]

    starts: list[Note] = []
    for name in start_names:
        note = snap.resolve(name)
        if note is None:
            return TraversalResult(depth=max_depth, error=f"Note '{name}' not found")
        starts.append(note)

    exclude_prefixes = [p for p in map(folder_prefix, exclude_folders or []) if p]
    root_keys = {normalize_name(n.name) for n in starts}
    visited: dict[str, int] = {}
    link_types: dict[str, LinkType] = {}
    missing_found: dict[str, None] = {}
    queue: deque[tuple[str, int]] = deque((normalize_name(n.name), 0) for n in starts)

    while queue:
        key, depth = queue.popleft()
        if key in visited:
            continue
        visited[key] = depth
        if depth < max_depth:
            _expand(snap, key, depth, exclude_prefixes, root_keys, link_types, missing_found, queue)

    visited_notes: list[TraversedNote] = []
    for key, depth in visited.items():
        note = snap.notes[key]
        visited_notes.append(
            TraversedNote(
                name=note.name,
                path=str(note.path),
                depth=depth,
                frontmatter=note.frontmatter,
                tags=note.all_tags,
                frontmatter_tags=list(note.frontmatter_tags),
                inline_tags=list(note.inline_tags),
                link_type=link_types.get(key),
            )
        )
    visited_notes.sort(key=lambda n: (n.depth, n.name.lower(), n.name))

    missing = [
        {
            "name": target,
            "referenced_by": sorted(
                (snap.name_of(k) for k in snap.missing.get(target, ())),
                key=lambda n: (n.lower(), n),
            ),
        }
        for target in missing_found
    ]

    result = TraversalResult(depth=max_depth, notes=visited_notes, missing=missing)
    if multi_root:
        result.roots = [n.name for n in starts]
    else:
        result.root = starts[0].name
    return result


def stats(index: "VaultIndex", options: FilterOptions | None = None) -> dict[str, int]:
    """Return note, tag, orphan and broken-link counts for the filtered scope."""
    snap = index.snapshot()
    in_scope = filter_notes(snap.notes, options)

    tagged = sum(1 for note in in_scope.values() if note.is_tagged)
    orphan_count = sum(1 for key in in_scope if not snap.backward.get(key))
    missing_links = sum(
        1 for referrers in snap.missing.values() if not referrers.isdisjoint(in_scope)
    )
    return {
        "total_notes": len(in_scope),
        "tagged": tagged,
        "untagged": len(in_scope) - tagged,
        "orphans": orphan_count,
        "missing_links": missing_links,
    }
