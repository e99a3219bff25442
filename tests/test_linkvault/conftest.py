"""Shared fixtures: a small inter-linked vault written into ``tmp_path``.

Link structure::

    Note A  -> Note B, Note C#Section, ![[diagram.png]] (missing)
    Note B  -> Note A, missing note (missing)
    Note C  -> Note B, Note_With_Dashes
    Note D  -> ![[Embedded]], Note A
    journal/Daily Note, Lonely, Empty Orphan, Embedded, Note_With_Dashes -> nothing

Orphans: Note D, Lonely, Empty Orphan, Daily Note.
"""

from __future__ import annotations

import logging
import textwrap
from pathlib import Path

import pytest

from linkvault.index import VaultIndex


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo ``configure_logging`` so ``caplog`` sees records from every test."""
    yield
    package_logger = logging.getLogger("linkvault")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


def write_note(directory: Path, name: str, content: str) -> Path:
    path = directory / f"{name}.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


@pytest.fixture()
def vault_dir(tmp_path: Path) -> Path:
    write_note(tmp_path, "Note A", """\
        ---
        tags: [project, active]
        status: draft
        ---
        # Note A

        Links to [[Note B]] and [[Note C#Section|see C]].

        ![[diagram.png]]

        Inline #idea here.
    """)
    write_note(tmp_path, "Note B", """\
        ---
        tags: [project]
        ---
        # Note B

        Back to [[Note A]]. Also [[missing note]].

        This is a notebook entry about orphan handling.
    """)
    write_note(tmp_path, "Note C", """\
        # Note C

        See [[Note B]] and [[Note_With_Dashes]].

        ## Section

        - [ ] open task
        - [x] done task
    """)
    write_note(tmp_path, "Note_With_Dashes", """\
        Some note with dashes. #misc
    """)
    write_note(tmp_path, "Note D", """\
        # Note D

        ![[Embedded]]

        Refers to [[Note A]].
    """)
    write_note(tmp_path, "Embedded", """\
        Embedded content.
    """)
    write_note(tmp_path, "Lonely", """\
        Nobody links here. This mentions journal.
    """)
    write_note(tmp_path, "Empty Orphan", """\
        ---
        title: Empty
        ---

    """)
    write_note(tmp_path / "journal", "Daily Note", """\
        ---
        tags: [journal]
        ---
        # Daily

        Worked on orphan cleanup.
    """)
    return tmp_path


@pytest.fixture()
def index(vault_dir: Path) -> VaultIndex:
    idx = VaultIndex(vault_dir)
    idx.build()
    return idx
