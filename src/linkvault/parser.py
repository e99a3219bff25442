"""WikiLink, tag, heading, checkbox, and YAML-frontmatter extraction.

Every function here is total: malformed Markdown never raises, a construct
that does not match is simply not reported.  Line numbers are 1-based and
refer to :func:`split_lines`, which treats ``\\r\\n`` and ``\\n`` alike.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from linkvault.note import Checkbox, Heading, Note, Wikilink

# ![[Target#Heading|Alias]]
_EMBED_RE = re.compile(r"!\[\[([^\]#|]+)(?:#([^\]|]*))?(?:\|([^\]]*))?\]\]")
# Whole embed span, removed before plain links are scanned
_EMBED_SPAN_RE = re.compile(r"!\[\[[^\]]+\]\]")
# [[Target#Heading|Alias]]
_WIKILINK_RE = re.compile(r"\[\[([^\]#|]+)(?:#([^\]|]*))?(?:\|([^\]]*))?\]\]")
# "## Heading text"
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
# Heading marker at line start, so "# foo" is never an inline tag
_HEADING_LINE_RE = re.compile(r"^\s*#{1,6}\s+")
# "  - [x] task text"
_CHECKBOX_RE = re.compile(r"^(\s*)- \[([ xX])\]\s+(.+)$")
# "#tag", "#area/sub-tag"; must start with a letter and stand alone
_TAG_RE = re.compile(r"(?:^|(?<=\s))#([^\W\d_][\w/-]*)(?=\s|$)")
# YAML front-matter block anchored at the very start of the text
_FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?:(.*?)\r?\n)?---[ \t]*(?:\r?\n|\Z)", re.DOTALL
)
_LINE_SPLIT_RE = re.compile(r"\r?\n")


def split_lines(content: str) -> list[str]:
    """Split *content* into logical lines (``\\r\\n`` and ``\\n`` both end a line)."""
    return _LINE_SPLIT_RE.split(content)


def strip_frontmatter_lines(lines: list[str]) -> list[str]:
    """Drop a leading ``---`` ... ``---`` block from *lines*, if closed."""
    if not lines or lines[0].rstrip() != "---":
        return lines
    for i in range(1, len(lines)):
        if lines[i].rstrip() == "---":
            return lines[i + 1 :]
    return lines


def _optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _link_from_match(match: re.Match[str], line_no: int, embed: bool) -> Wikilink | None:
    name = match.group(1).strip()
    if not name:
        return None
    return Wikilink(
        name=name,
        heading=_optional(match.group(2)),
        alias=_optional(match.group(3)),
        line=line_no,
        embed=embed,
    )


def extract_wikilinks(lines: list[str]) -> list[Wikilink]:
    """Return every wikilink and embed in *lines*, ordered by line number.

    Embeds are collected first; plain links are then scanned on each line
    with the embed spans removed, so ``![[x]]`` is never reported twice.
    """
    embeds: list[Wikilink] = []
    plain: list[Wikilink] = []
    for line_no, line in enumerate(lines, start=1):
        for m in _EMBED_RE.finditer(line):
            link = _link_from_match(m, line_no, embed=True)
            if link is not None:
                embeds.append(link)
        for m in _WIKILINK_RE.finditer(_EMBED_SPAN_RE.sub("", line)):
            link = _link_from_match(m, line_no, embed=False)
            if link is not None:
                plain.append(link)
    return sorted(embeds + plain, key=lambda link: link.line)


def extract_frontmatter(content: str) -> dict[str, Any] | None:
    """Parse the leading YAML block of *content*.

    Returns ``None`` when there is no block, the YAML does not parse, or the
    top-level value is not a mapping.  An empty block is an empty mapping,
    not ``None``; some tools instead treat it as a non-mapping value.
    """
    match = _FRONTMATTER_RE.match(content)
    if not match:
        return None
    raw = match.group(1) or ""
    if not raw.strip():
        return {}
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError:
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def extract_headings(lines: list[str]) -> list[Heading]:
    result: list[Heading] = []
    for line_no, line in enumerate(lines, start=1):
        m = _HEADING_RE.match(line)
        if m:
            result.append(Heading(level=len(m.group(1)), text=m.group(2).strip(), line=line_no))
    return result


def extract_checkboxes(lines: list[str]) -> list[Checkbox]:
    result: list[Checkbox] = []
    for line_no, line in enumerate(lines, start=1):
        m = _CHECKBOX_RE.match(line)
        if m:
            result.append(
                Checkbox(
                    checked=m.group(2) in ("x", "X"),
                    text=m.group(3).strip(),
                    line=line_no,
                    indent=len(m.group(1)),
                )
            )
    return result


def extract_inline_tags(lines: list[str]) -> list[str]:
    """Return ``#tag`` values from the body (de-duped, first-occurrence order).

    The frontmatter block is dropped first and heading lines are skipped.
    """
    seen: set[str] = set()
    result: list[str] = []
    for line in strip_frontmatter_lines(lines):
        if _HEADING_LINE_RE.match(line):
            continue
        for m in _TAG_RE.finditer(line):
            tag = m.group(1)
            if tag not in seen:
                seen.add(tag)
                result.append(tag)
    return result


def frontmatter_tags(frontmatter: dict[str, Any] | None) -> list[str]:
    """Return the ``tags`` key of *frontmatter* as a list of strings."""
    if not frontmatter:
        return []
    raw = frontmatter.get("tags")
    if isinstance(raw, str):
        raw = raw.split(",")
    if not isinstance(raw, list):
        return []
    tags = [str(t).strip().lstrip("#") for t in raw if t is not None]
    return list(dict.fromkeys(t for t in tags if t))


def serialize_frontmatter(frontmatter: dict[str, Any]) -> str:
    """Render *frontmatter* as a ``---``-delimited YAML block ending in a newline.

    An empty mapping renders as an empty block (``---\\n---\\n``) rather than
    ``{}`` so that :func:`extract_frontmatter` reads it back as ``{}``.
    """
    dumped = yaml.safe_dump(
        frontmatter,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    ).rstrip()
    if dumped == "{}":
        dumped = ""
    return f"---\n{dumped}\n---\n" if dumped else "---\n---\n"


def replace_frontmatter(content: str, frontmatter: dict[str, Any]) -> str:
    """Swap (or prepend) the frontmatter block, keeping the body byte-for-byte."""
    serialized = serialize_frontmatter(frontmatter)
    match = _FRONTMATTER_RE.match(content)
    if match:
        return serialized + content[match.end() :]
    return serialized + content


def frontmatter_body(content: str) -> str:
    """Return the text that follows the leading frontmatter block."""
    match = _FRONTMATTER_RE.match(content)
    return content[match.end() :] if match else content


def parse_note(
    path: Path,
    content: str,
    mtime: datetime | float | None = None,
    *,
    root: Path | None = None,
) -> Note:
    """Assemble a fully-populated :class:`Note` from raw file text."""
    path = Path(path)
    if mtime is None:
        mtime = datetime.now(timezone.utc)
    elif not isinstance(mtime, datetime):
        mtime = datetime.fromtimestamp(mtime, tz=timezone.utc)
    elif mtime.tzinfo is None:
        mtime = mtime.replace(tzinfo=timezone.utc)

    rel_path = path.name
    if root is not None:
        try:
            rel_path = path.resolve().relative_to(Path(root).resolve()).as_posix()
        except ValueError:
            pass

    lines = split_lines(content)
    frontmatter = extract_frontmatter(content)
    return Note(
        path=path,
        name=path.stem,
        content=content,
        mtime=mtime,
        rel_path=rel_path,
        frontmatter=frontmatter,
        wikilinks=extract_wikilinks(lines),
        frontmatter_tags=frontmatter_tags(frontmatter),
        inline_tags=extract_inline_tags(lines),
        headings=extract_headings(lines),
        checkboxes=extract_checkboxes(lines),
    )
