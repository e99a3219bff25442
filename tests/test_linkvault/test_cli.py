"""Tests for the linkvault command line."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from linkvault.cli import cli


@pytest.fixture()
def run(vault_dir: Path, monkeypatch):
    monkeypatch.delenv("LINKVAULT_PATH", raising=False)
    monkeypatch.delenv("LINKVAULT_LOG_LEVEL", raising=False)
    runner = CliRunner()

    def _run(*args: str):
        return runner.invoke(cli, ["--vault", str(vault_dir), "--log-level", "ERROR", *args])

    return _run


def _json(result):
    return json.loads(result.output)


class TestCli:
    def test_stats(self, run):
        result = run("stats")
        assert result.exit_code == 0, result.output
        assert _json(result)["total_notes"] == 9

    def test_stats_with_folder(self, run):
        assert _json(run("stats", "--folder", "journal"))["total_notes"] == 1

    def test_resolve(self, run):
        result = run("resolve", "note-with-dashes")
        assert result.exit_code == 0
        assert _json(result)["resolved"][0]["name"] == "Note_With_Dashes"

    def test_resolve_unknown_exits_nonzero(self, run):
        result = run("resolve", "Ghost")
        assert result.exit_code == 1
        assert _json(result)["errors"][0]["name"] == "Ghost"

    def test_backlinks(self, run):
        data = _json(run("backlinks", "Note A", "--limit", "1"))
        page = data["results"][0]["backlinks"]
        assert page["total"] == 2
        assert [r["name"] for r in page["results"]] == ["Note B"]

    def test_orphans(self, run):
        names = [o["name"] for o in _json(run("orphans"))["results"]]
        assert names == ["Daily Note", "Empty Orphan", "Lonely", "Note D"]

    def test_broken_by_source(self, run):
        data = _json(run("broken", "--group-by", "source", "--type", "note"))
        assert [e["source"] for e in data["results"]] == ["Note B"]

    def test_traverse(self, run):
        data = _json(run("traverse", "Note A", "--depth", "1"))
        assert data["root"] == "Note A"
        assert {n["name"] for n in data["notes"]} == {"Note A", "Note B", "Note C"}

    def test_traverse_unknown(self, run):
        result = run("traverse", "Ghost")
        assert result.exit_code == 1
        assert _json(result)["error"] == "Note 'Ghost' not found"

    def test_search(self, run):
        data = _json(run("search", "orphan journal", "--no-multi-term"))
        assert data["total"] == 0

    def test_tag_and_untagged(self, run):
        assert [n["name"] for n in _json(run("tag", "#project"))["results"]] == ["Note A", "Note B"]
        assert _json(run("untagged"))["total"] == 5

    def test_similar(self, run):
        data = _json(run("similar", "Lonley", "--threshold", "2"))
        assert data["results"][0]["name"] == "Lonely"

    def test_default_limit_from_config(self, run, vault_dir: Path):
        (vault_dir / "linkvault.toml").write_text("[vault]\ndefault_limit = 1\n", encoding="utf-8")
        data = _json(run("orphans"))
        assert data["total"] == 4
        assert data["limit"] == 1
        assert len(data["results"]) == 1

    def test_missing_vault(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["--vault", str(tmp_path / "nope"), "stats"])
        assert result.exit_code != 0
