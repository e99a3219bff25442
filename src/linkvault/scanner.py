"""Vault scanner: turns a directory tree into ``(path, content, mtime)`` triples."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple

from linkvault.config import DEFAULT_EXCLUDED_DIRS

logger = logging.getLogger(__name__)


class NoteSource(NamedTuple):
    path: Path
    content: str
    mtime: datetime


def is_excluded(
    rel_path: str,
    excluded_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
    excluded_prefixes: Iterable[str] = (),
) -> bool:
    """Return ``True`` when a vault-relative POSIX path should be skipped."""
    dirs = set(excluded_dirs)
    parts = rel_path.split("/")
    if any(part in dirs for part in parts[:-1]):
        return True
    return any(rel_path.startswith(prefix) for prefix in excluded_prefixes)


def read_source(path: Path) -> NoteSource | None:
    """Read a single note file, or ``None`` when it cannot be read."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
        mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Skipping unreadable note '%s': %s", path, exc)
        return None
    return NoteSource(path, content, mtime)


def scan_paths(
    vault_dir: Path,
    *,
    excluded_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
    excluded_prefixes: Iterable[str] = (),
    follow_symlinks: bool = False,
) -> list[Path]:
    """Return every ``.md`` file under *vault_dir*, sorted, exclusions applied.

    Symlinked files are only kept with *follow_symlinks*, and never when they
    resolve outside the vault.
    """
    root = Path(vault_dir).resolve()
    excluded_dirs = list(excluded_dirs)
    excluded_prefixes = list(excluded_prefixes)
    result: list[Path] = []
    for path in sorted(root.glob("**/*.md")):
        rel = path.relative_to(root).as_posix()
        if is_excluded(rel, excluded_dirs, excluded_prefixes):
            continue
        if path.is_symlink():
            if not follow_symlinks:
                logger.debug("Ignoring symlink '%s'", rel)
                continue
            if not path.resolve().is_relative_to(root):
                logger.warning("Ignoring symlink '%s' pointing outside the vault", rel)
                continue
        if path.is_file():
            result.append(path)
    return result


def scan_vault(
    vault_dir: Path,
    *,
    excluded_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
    excluded_prefixes: Iterable[str] = (),
    follow_symlinks: bool = False,
) -> Iterator[NoteSource]:
    """Yield a :class:`NoteSource` for each readable note in *vault_dir*."""
    for path in scan_paths(
        vault_dir,
        excluded_dirs=excluded_dirs,
        excluded_prefixes=excluded_prefixes,
        follow_symlinks=follow_symlinks,
    ):
        source = read_source(path)
        if source is not None:
            yield source
