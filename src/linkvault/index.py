"""VaultIndex: in-memory link graph of all notes in a vault.

The graph is held in an immutable :class:`GraphSnapshot`.  ``VaultIndex``
owns the current snapshot and is the only writer: :meth:`VaultIndex.build`,
:meth:`VaultIndex.rebuild` and :meth:`VaultIndex.upsert_note` run under a
lock, assemble a complete new snapshot and publish it with one assignment.
Query functions call :meth:`VaultIndex.snapshot` once and read from that, so
they never observe a half-applied mutation.

Keys are note names normalised by :func:`normalize_name`.  Two notes with the
same normalised name collide; the one inserted last wins.
"""

from __future__ import annotations

import logging
import re
import threading
import unicodedata
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from linkvault.config import VaultConfig
from linkvault.note import Note
from linkvault.parser import parse_note
from linkvault.scanner import NoteSource, is_excluded, read_source, scan_vault

logger = logging.getLogger(__name__)

# `software`(253) entries in the tag vocabulary note
_VOCABULARY_TAG_RE = re.compile(r"`([^`\s]+)`\(\d+\)")
_FUZZY_STRIP_RE = re.compile(r"[-_\s]")
_NON_PRINTABLE_ASCII_RE = re.compile(r"[^\x20-\x7e]")


def normalize_name(name: str) -> str:
    """Exact lookup key: trimmed and case-folded."""
    return name.strip().casefold()


def fuzzy_name(name: str) -> str:
    """Fallback lookup key, tolerant of case, dashes, spacing and diacritics."""
    key = _FUZZY_STRIP_RE.sub("", normalize_name(name))
    key = unicodedata.normalize("NFD", key)
    return _NON_PRINTABLE_ASCII_RE.sub("", key)


def parse_vocabulary(content: str) -> frozenset[str]:
    return frozenset(tag.lower() for tag in _VOCABULARY_TAG_RE.findall(content))


@dataclass(frozen=True)
class GraphSnapshot:
    """One consistent view of the vault graph.  Never mutated once published."""

    vault_dir: Path
    notes: dict[str, Note] = field(default_factory=dict)
    forward: dict[str, set[str]] = field(default_factory=dict)
    backward: dict[str, set[str]] = field(default_factory=dict)
    missing: dict[str, set[str]] = field(default_factory=dict)
    fuzzy_index: dict[str, str] = field(default_factory=dict)
    canonical_tags: frozenset[str] = frozenset()

    def resolve(self, name: str) -> Note | None:
        """Exact-normalised lookup, then fuzzy lookup; ``None`` when unknown."""
        note = self.notes.get(normalize_name(name))
        if note is not None:
            return note
        key = self.fuzzy_index.get(fuzzy_name(name))
        return self.notes.get(key) if key is not None else None

    def name_of(self, key: str) -> str:
        note = self.notes.get(key)
        return note.name if note is not None else key


def _link_targets(note: Note) -> set[str]:
    return {normalize_name(link.name) for link in note.wikilinks}


def _build_fuzzy_index(notes: dict[str, Note]) -> dict[str, str]:
    fuzzy_index: dict[str, str] = {}
    for key, note in notes.items():
        fuzzy_index.setdefault(fuzzy_name(note.name), key)
    return fuzzy_index


def build_snapshot(
    notes: Iterable[Note],
    vault_dir: Path,
    tag_vocabulary_note: str = "tags",
) -> GraphSnapshot:
    """Build forward/backward/missing adjacency and the fuzzy index from *notes*."""
    by_key: dict[str, Note] = {}
    for note in notes:
        by_key[normalize_name(note.name)] = note

    forward: dict[str, set[str]] = {}
    backward: dict[str, set[str]] = {}
    missing: dict[str, set[str]] = {}
    for source, note in by_key.items():
        targets = _link_targets(note)
        forward[source] = targets
        for target in targets:
            backward.setdefault(target, set()).add(source)
            if target not in by_key:
                missing.setdefault(target, set()).add(source)

    vocabulary = by_key.get(normalize_name(tag_vocabulary_note))
    return GraphSnapshot(
        vault_dir=vault_dir,
        notes=by_key,
        forward=forward,
        backward=backward,
        missing=missing,
        fuzzy_index=_build_fuzzy_index(by_key),
        canonical_tags=parse_vocabulary(vocabulary.content) if vocabulary else frozenset(),
    )


class VaultIndex:
    """Owns the vault graph and serialises every mutation of it."""

    def __init__(self, vault_dir: Path, config: VaultConfig | None = None) -> None:
        self.vault_dir = Path(vault_dir).resolve()
        self.config = config or VaultConfig(vault_dir=self.vault_dir)
        self._lock = threading.Lock()
        self._snapshot = GraphSnapshot(vault_dir=self.vault_dir)

    @classmethod
    def from_config(cls, config: VaultConfig) -> "VaultIndex":
        return cls(config.vault_dir, config)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def snapshot(self) -> GraphSnapshot:
        """Return the currently published graph."""
        return self._snapshot

    @property
    def notes(self) -> dict[str, Note]:
        return self._snapshot.notes

    @property
    def forward(self) -> dict[str, set[str]]:
        return self._snapshot.forward

    @property
    def backward(self) -> dict[str, set[str]]:
        return self._snapshot.backward

    @property
    def missing(self) -> dict[str, set[str]]:
        return self._snapshot.missing

    @property
    def fuzzy_index(self) -> dict[str, str]:
        return self._snapshot.fuzzy_index

    @property
    def canonical_tags(self) -> frozenset[str]:
        return self._snapshot.canonical_tags

    def resolve(self, name: str) -> Note | None:
        return self._snapshot.resolve(name)

    def edges(self) -> list[tuple[str, str]]:
        """Return ``(source_key, target_key)`` pairs for every distinct link."""
        snap = self._snapshot
        return [(src, tgt) for src, targets in snap.forward.items() for tgt in sorted(targets)]

    def unknown_tags(self, tags: Iterable[str]) -> list[str]:
        """Return the tags absent from the canonical vocabulary (if one exists)."""
        vocabulary = self._snapshot.canonical_tags
        if not vocabulary:
            return []
        return [t for t in tags if t.lstrip("#").lower() not in vocabulary]

    # ------------------------------------------------------------------
    # Build / refresh
    # ------------------------------------------------------------------

    def build(self, sources: Iterable[NoteSource] | None = None) -> None:
        """(Re-)build the whole graph, scanning the vault unless *sources* is given."""
        if sources is None:
            sources = scan_vault(
                self.vault_dir,
                excluded_dirs=self.config.excluded_dirs,
                excluded_prefixes=self.config.excluded_prefixes,
                follow_symlinks=self.config.follow_symlinks,
            )
        with self._lock:
            notes = [
                parse_note(src.path, src.content, src.mtime, root=self.vault_dir)
                for src in sources
            ]
            self._snapshot = build_snapshot(
                notes, self.vault_dir, self.config.tag_vocabulary_note
            )
        logger.info(
            "Graph built from %s: %d notes, %d missing links",
            self.vault_dir,
            len(self._snapshot.notes),
            len(self._snapshot.missing),
        )

    def rebuild(self) -> tuple[int, int]:
        """Rescan the vault and replace the graph.  Returns ``(before, after)`` note counts."""
        before = len(self._snapshot.notes)
        self.build()
        return before, len(self._snapshot.notes)

    def upsert_note(self, path: Path) -> Note | None:
        """Re-read the file at *path* and patch its entries into the graph.

        Stale forward/backward/missing entries of the previous version are
        removed first.  When the file can no longer be read, the note is
        dropped from the graph and ``None`` is returned.  Paths a scan would
        skip (outside the vault, excluded, not ``.md``) are ignored.
        """
        path = Path(path).resolve()
        if not self._is_note_path(path):
            logger.debug("Ignoring upsert of '%s': not a vault note", path)
            return None
        with self._lock:
            # Read under the lock so the last published version is the last read.
            source = read_source(path) if path.exists() else None
            current = self._snapshot
            if source is None:
                key = normalize_name(path.stem)
                old = current.notes.get(key)
                if old is None or Path(old.path).resolve() != path:
                    return None
                self._snapshot = self._without(current, key)
                logger.info("Removed note '%s' from graph", old.name)
                return None

            note = parse_note(source.path, source.content, source.mtime, root=self.vault_dir)
            self._snapshot = self._with(current, note)
        logger.debug("Upserted note '%s'", note.name)
        return note

    def _is_note_path(self, path: Path) -> bool:
        if path.suffix != ".md" or not path.is_relative_to(self.vault_dir):
            return False
        rel = path.relative_to(self.vault_dir).as_posix()
        return not is_excluded(rel, self.config.excluded_dirs, self.config.excluded_prefixes)

    # ------------------------------------------------------------------
    # Copy-on-write helpers (called with the lock held)
    # ------------------------------------------------------------------

    @staticmethod
    def _copy_adjacency(snap: GraphSnapshot) -> tuple[dict, dict, dict, dict]:
        return (
            dict(snap.notes),
            {k: set(v) for k, v in snap.forward.items()},
            {k: set(v) for k, v in snap.backward.items()},
            {k: set(v) for k, v in snap.missing.items()},
        )

    @staticmethod
    def _unlink(
        key: str,
        forward: dict[str, set[str]],
        backward: dict[str, set[str]],
        missing: dict[str, set[str]],
    ) -> None:
        for target in forward.pop(key, set()):
            for table in (backward, missing):
                refs = table.get(target)
                if refs is None:
                    continue
                refs.discard(key)
                if not refs:
                    del table[target]

    def _finish(
        self,
        snap: GraphSnapshot,
        notes: dict[str, Note],
        forward: dict[str, set[str]],
        backward: dict[str, set[str]],
        missing: dict[str, set[str]],
        touched: str,
    ) -> GraphSnapshot:
        canonical = snap.canonical_tags
        if touched == normalize_name(self.config.tag_vocabulary_note):
            vocabulary = notes.get(touched)
            canonical = parse_vocabulary(vocabulary.content) if vocabulary else frozenset()
        return GraphSnapshot(
            vault_dir=snap.vault_dir,
            notes=notes,
            forward=forward,
            backward=backward,
            missing=missing,
            fuzzy_index=_build_fuzzy_index(notes),
            canonical_tags=canonical,
        )

    def _with(self, snap: GraphSnapshot, note: Note) -> GraphSnapshot:
        key = normalize_name(note.name)
        notes, forward, backward, missing = self._copy_adjacency(snap)
        self._unlink(key, forward, backward, missing)

        notes[key] = note
        # A note that now exists satisfies every link that was broken before.
        missing.pop(key, None)

        targets = _link_targets(note)
        forward[key] = targets
        for target in targets:
            backward.setdefault(target, set()).add(key)
            if target not in notes:
                missing.setdefault(target, set()).add(key)
        return self._finish(snap, notes, forward, backward, missing, key)

    def _without(self, snap: GraphSnapshot, key: str) -> GraphSnapshot:
        notes, forward, backward, missing = self._copy_adjacency(snap)
        self._unlink(key, forward, backward, missing)
        del notes[key]
        # Links that pointed at the removed note are now broken.
        referrers = backward.get(key)
        if referrers:
            missing[key] = set(referrers)
        return self._finish(snap, notes, forward, backward, missing, key)
