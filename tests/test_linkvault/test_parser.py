"""Unit tests for linkvault.parser."""

import textwrap
from datetime import datetime, timezone
from pathlib import Path

from linkvault.parser import (
    extract_checkboxes,
    extract_frontmatter,
    extract_headings,
    extract_inline_tags,
    extract_wikilinks,
    frontmatter_body,
    frontmatter_tags,
    parse_note,
    replace_frontmatter,
    serialize_frontmatter,
    split_lines,
)

# ---------------------------------------------------------------------------
# split_lines
# ---------------------------------------------------------------------------


class TestSplitLines:
    def test_crlf_and_lf_are_equivalent(self):
        assert split_lines("a\r\nb\nc") == ["a", "b", "c"]

    def test_trailing_newline_gives_empty_last_line(self):
        assert split_lines("a\n") == ["a", ""]


# ---------------------------------------------------------------------------
# extract_frontmatter
# ---------------------------------------------------------------------------


class TestExtractFrontmatter:
    def test_no_frontmatter_returns_none(self):
        assert extract_frontmatter("Just some text.") is None

    def test_basic_frontmatter(self):
        raw = textwrap.dedent("""\
            ---
            title: My Note
            tags: [a, b]
            ---
            Body here.
        """)
        meta = extract_frontmatter(raw)
        assert meta == {"title": "My Note", "tags": ["a", "b"]}

    def test_crlf_frontmatter(self):
        meta = extract_frontmatter("---\r\nstatus: done\r\n---\r\nBody.")
        assert meta == {"status": "done"}

    def test_frontmatter_not_at_start_is_ignored(self):
        assert extract_frontmatter("Intro\n---\ntitle: Nope\n---\nMore text.") is None

    def test_empty_frontmatter_block(self):
        assert extract_frontmatter("---\n---\nBody.") == {}

    def test_invalid_yaml_returns_none(self):
        assert extract_frontmatter("---\nkey: [unclosed\n---\nBody.") is None

    def test_scalar_top_level_returns_none(self):
        assert extract_frontmatter("---\njust a string\n---\nBody.") is None

    def test_list_top_level_returns_none(self):
        assert extract_frontmatter("---\n- a\n- b\n---\nBody.") is None

    def test_unclosed_block_returns_none(self):
        assert extract_frontmatter("---\ntitle: x\nno closing fence") is None


# ---------------------------------------------------------------------------
# serialize_frontmatter / replace_frontmatter
# ---------------------------------------------------------------------------


class TestFrontmatterRoundTrip:
    def test_serialize_is_delimited(self):
        out = serialize_frontmatter({"title": "X"})
        assert out.startswith("---\n")
        assert out.endswith("---\n")

    def test_extract_of_serialized_returns_same_mapping(self):
        meta = {
            "title": "Plan",
            "tags": ["project", "active"],
            "aliases": ["IA", "Inteligência Artificial"],
            "count": 3,
            "done": False,
        }
        assert extract_frontmatter(serialize_frontmatter(meta)) == meta

    def test_empty_mapping_round_trips(self):
        assert extract_frontmatter(serialize_frontmatter({})) == {}

    def test_replace_keeps_body_bytes(self):
        content = "---\ntags: [a]\n---\n# Title\r\n\nBody  with  spacing\n"
        updated = replace_frontmatter(content, {"tags": ["a", "b"]})
        assert frontmatter_body(updated) == frontmatter_body(content)
        assert extract_frontmatter(updated) == {"tags": ["a", "b"]}

    def test_replace_prepends_when_absent(self):
        content = "# No FM\n\nJust content.\n"
        updated = replace_frontmatter(content, {"tags": ["added"]})
        assert updated.endswith(content)
        assert extract_frontmatter(updated) == {"tags": ["added"]}

    def test_replace_preserves_other_keys(self):
        content = "---\nstatus: draft\ntags: [x]\n---\nBody\n"
        meta = extract_frontmatter(content)
        meta["tags"] = meta["tags"] + ["y"]
        updated = replace_frontmatter(content, meta)
        assert extract_frontmatter(updated)["status"] == "draft"


# ---------------------------------------------------------------------------
# extract_wikilinks
# ---------------------------------------------------------------------------


class TestExtractWikilinks:
    def test_single_link(self):
        links = extract_wikilinks(["See [[Getting Started]] for details."])
        assert [(l.name, l.line, l.embed) for l in links] == [("Getting Started", 1, False)]

    def test_link_with_heading_and_alias(self):
        (link,) = extract_wikilinks(["Jump to [[canvas-guide#Interaction|the canvas]]."])
        assert link.name == "canvas-guide"
        assert link.heading == "Interaction"
        assert link.alias == "the canvas"

    def test_empty_heading_and_alias_are_none(self):
        (link,) = extract_wikilinks(["[[Target#|]]"])
        assert link.heading is None
        assert link.alias is None

    def test_name_is_trimmed(self):
        (link,) = extract_wikilinks(["[[  Spaced Out  ]]"])
        assert link.name == "Spaced Out"

    def test_embed_is_not_also_a_plain_link(self):
        links = extract_wikilinks(["![[diagram.png]]"])
        assert len(links) == 1
        assert links[0].embed is True

    def test_embed_and_link_on_same_line(self):
        links = extract_wikilinks(["![[img.png]] next to [[Note]]"])
        assert {(l.name, l.embed) for l in links} == {("img.png", True), ("Note", False)}

    def test_sorted_by_line_interleaved(self):
        links = extract_wikilinks(["[[A]]", "![[B]]", "[[C]]"])
        assert [(l.name, l.line) for l in links] == [("A", 1), ("B", 2), ("C", 3)]

    def test_duplicates_are_kept(self):
        assert len(extract_wikilinks(["[[A]] then [[A]] again"])) == 2

    def test_no_links(self):
        assert extract_wikilinks(["Plain text, no links."]) == []


# ---------------------------------------------------------------------------
# extract_headings / extract_checkboxes
# ---------------------------------------------------------------------------


class TestExtractHeadings:
    def test_levels_and_lines(self):
        headings = extract_headings(["# Top", "text", "### Third level  "])
        assert [(h.level, h.text, h.line) for h in headings] == [(1, "Top", 1), (3, "Third level", 3)]

    def test_hash_without_space_is_not_heading(self):
        assert extract_headings(["#tag only"]) == []

    def test_seven_hashes_is_not_heading(self):
        assert extract_headings(["####### too deep"]) == []


class TestExtractCheckboxes:
    def test_checked_and_unchecked(self):
        boxes = extract_checkboxes(["- [ ] open", "- [x] done", "- [X] also done"])
        assert [(b.checked, b.text) for b in boxes] == [(False, "open"), (True, "done"), (True, "also done")]

    def test_indent_counts_leading_whitespace(self):
        (box,) = extract_checkboxes(["    - [ ] nested"])
        assert box.indent == 4
        assert box.line == 1

    def test_plain_list_item_ignored(self):
        assert extract_checkboxes(["- not a task"]) == []


# ---------------------------------------------------------------------------
# extract_inline_tags
# ---------------------------------------------------------------------------


class TestExtractInlineTags:
    def test_single_tag(self):
        assert extract_inline_tags(["This is #python content."]) == ["python"]

    def test_tag_at_line_start(self):
        assert extract_inline_tags(["#todo first"]) == ["todo"]

    def test_nested_and_dashed(self):
        assert extract_inline_tags(["#tools/python and #open-source"]) == ["tools/python", "open-source"]

    def test_deduplication_preserves_first_order(self):
        assert extract_inline_tags(["#b #a", "#b again"]) == ["b", "a"]

    def test_mid_word_hash_is_not_tag(self):
        assert extract_inline_tags(["foo#bar"]) == []

    def test_url_fragment_not_matched(self):
        assert extract_inline_tags(["Visit https://example.com/page#section for info."]) == []

    def test_must_start_with_letter(self):
        assert extract_inline_tags(["Issue #123 fixed"]) == []

    def test_heading_lines_skipped(self):
        assert extract_inline_tags(["# Heading #nottag", "body #real"]) == ["real"]

    def test_frontmatter_block_excluded(self):
        lines = ["---", "summary: about #fake things", "---", "body #real"]
        assert extract_inline_tags(lines) == ["real"]


# ---------------------------------------------------------------------------
# frontmatter_tags
# ---------------------------------------------------------------------------


class TestFrontmatterTags:
    def test_list(self):
        assert frontmatter_tags({"tags": ["a", "b"]}) == ["a", "b"]

    def test_comma_string(self):
        assert frontmatter_tags({"tags": "a, b"}) == ["a", "b"]

    def test_missing_or_none(self):
        assert frontmatter_tags(None) == []
        assert frontmatter_tags({"title": "x"}) == []

    def test_non_string_values_stringified(self):
        assert frontmatter_tags({"tags": [2024, "x"]}) == ["2024", "x"]


# ---------------------------------------------------------------------------
# parse_note (integration)
# ---------------------------------------------------------------------------


class TestParseNote:
    def test_full_note(self, tmp_path: Path):
        path = tmp_path / "projects" / "my-note.md"
        content = textwrap.dedent("""\
            ---
            tags: [setup]
            ---
            # My Note
            See [[getting-started]] and ![[chart.png]].

            Also tagged #tutorial here.
            - [ ] follow up
        """)
        mtime = datetime(2024, 5, 1, tzinfo=timezone.utc)
        note = parse_note(path, content, mtime, root=tmp_path)

        assert note.name == "my-note"
        assert note.rel_path == "projects/my-note.md"
        assert note.mtime == mtime
        assert note.frontmatter == {"tags": ["setup"]}
        assert note.frontmatter_tags == ["setup"]
        assert note.inline_tags == ["tutorial"]
        assert sorted(l.name for l in note.wikilinks) == ["chart.png", "getting-started"]
        assert note.headings[0].line == 4
        assert note.checkboxes[0].line == 8

    def test_note_without_frontmatter(self, tmp_path: Path):
        note = parse_note(tmp_path / "simple.md", "# Simple\nJust text.\n", 0.0)
        assert note.frontmatter is None
        assert note.wikilinks == []
        assert note.all_tags == []
        assert note.mtime == datetime.fromtimestamp(0, tz=timezone.utc)

    def test_all_tags_dedupes_across_sources(self, tmp_path: Path):
        note = parse_note(tmp_path / "dup.md", "---\ntags: [python]\n---\nTagged #python and #extra.\n")
        assert note.frontmatter_tags == ["python"]
        assert note.inline_tags == ["python", "extra"]
        assert note.all_tags == ["python", "extra"]
