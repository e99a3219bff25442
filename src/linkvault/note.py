"""Core Note dataclass and the structured facts extracted from a note."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class Wikilink:
    """One ``[[Target#Heading|Alias]]`` or ``![[...]]`` occurrence."""

    name: str
    heading: str | None
    alias: str | None
    line: int
    embed: bool = False


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    line: int


@dataclass(frozen=True)
class Checkbox:
    checked: bool
    text: str
    line: int
    indent: int


@dataclass
class Note:
    """A single parsed markdown note in the vault."""

    path: Path
    #: File stem; not unique across folders
    name: str
    content: str
    mtime: datetime
    #: POSIX path relative to the vault root, used by folder filters
    rel_path: str = ""
    frontmatter: dict[str, Any] | None = None
    wikilinks: list[Wikilink] = field(default_factory=list)
    frontmatter_tags: list[str] = field(default_factory=list)
    inline_tags: list[str] = field(default_factory=list)
    headings: list[Heading] = field(default_factory=list)
    checkboxes: list[Checkbox] = field(default_factory=list)

    @property
    def all_tags(self) -> list[str]:
        """Frontmatter tags followed by inline tags, de-duplicated."""
        return list(dict.fromkeys(self.frontmatter_tags + self.inline_tags))

    @property
    def is_tagged(self) -> bool:
        return bool(self.frontmatter_tags or self.inline_tags)

    def to_summary(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": str(self.path),
            "tags": self.all_tags,
            "frontmatter_tags": list(self.frontmatter_tags),
            "inline_tags": list(self.inline_tags),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.to_summary(),
            "content": self.content,
            "mtime": self.mtime.isoformat(),
            "frontmatter": self.frontmatter or {},
            "wikilinks": [asdict(w) for w in self.wikilinks],
            "headings": [asdict(h) for h in self.headings],
            "checkboxes": [asdict(c) for c in self.checkboxes],
        }
