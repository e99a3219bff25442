"""linkvault: command-line front end.

Usage:
    linkvault --vault ~/notes stats
    linkvault resolve "Project Plan"
    linkvault backlinks "Project Plan" --folder journal
    linkvault traverse "Project Plan" --depth 2
    linkvault broken --group-by source --type embed
    linkvault search "orphan journal" --names
    linkvault similar "Projcet Plan" --threshold 2

Every command prints JSON on stdout; logs go to stderr.
"""

from __future__ import annotations

import functools
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from linkvault import __version__
from linkvault._logging import configure_logging
from linkvault.backlinks import (
    batch_find_backlinks,
    batch_resolve,
    missing_notes,
    missing_notes_by_source,
    orphans,
)
from linkvault.config import load_config
from linkvault.filters import FilterOptions
from linkvault.graph import stats, traverse
from linkvault.index import VaultIndex
from linkvault.search import find_by_tag, find_similar_names, find_untagged, search

logger = logging.getLogger(__name__)


def _emit(data: Any) -> None:
    to_dict = getattr(data, "to_dict", None)
    payload = to_dict() if callable(to_dict) else data
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _index(ctx: click.Context) -> VaultIndex:
    return ctx.find_object(_State).index


class _State:
    def __init__(self, vault: Path | None, config: Path | None, log_level: str | None) -> None:
        self.vault = vault
        self.config_path = config
        self.log_level = log_level
        self._index: VaultIndex | None = None

    @property
    def index(self) -> VaultIndex:
        if self._index is None:
            try:
                config = load_config(self.config_path, self.vault)
            except (FileNotFoundError, ValueError) as exc:
                raise click.ClickException(str(exc)) from exc
            configure_logging(self.log_level or config.log_level)
            self._index = VaultIndex.from_config(config)
            self._index.build()
        return self._index


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------


def pagination_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Add ``--limit`` / ``--offset``; an omitted limit uses the vault's ``default_limit``."""

    @click.option("--limit", type=click.IntRange(1, 500), help="Page size (default: config default_limit).")
    @click.option("--offset", type=click.IntRange(min=0), default=0, show_default=True)
    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if kwargs["limit"] is None:
            kwargs["limit"] = _index(click.get_current_context()).config.default_limit
        return fn(*args, **kwargs)

    return wrapper


def filter_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Add the common note-filter flags and pass them on as ``options``."""

    @click.option("--folder", help="Only notes under this vault-relative folder.")
    @click.option("--exclude-folder", "exclude_folders", multiple=True, help="Skip notes under this folder.")
    @click.option("--exclude-pattern", help="Skip notes whose name matches this regex (case-insensitive).")
    @click.option("--modified-after", help="ISO date, e.g. 2024-01-01.")
    @click.option("--modified-before", help="ISO date, e.g. 2024-12-31.")
    @click.option("--tag", "tags", multiple=True, help="Only notes with this tag.")
    @click.option("--exclude-tag", "exclude_tags", multiple=True, help="Skip notes with this tag.")
    @click.option("--tags-mode", type=click.Choice(["any", "all"]), default="any", show_default=True)
    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        keys = (
            "folder",
            "exclude_folders",
            "exclude_pattern",
            "modified_after",
            "modified_before",
            "tags",
            "exclude_tags",
            "tags_mode",
        )
        raw = {key: kwargs.pop(key) for key in keys}
        kwargs["options"] = FilterOptions.from_dict(raw)
        return fn(*args, **kwargs)

    return wrapper


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="linkvault")
@click.option(
    "--vault",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="LINKVAULT_PATH",
    help="Vault root directory (default: $LINKVAULT_PATH or the current directory).",
)
@click.option(
    "--config",
    type=click.Path(dir_okay=False, path_type=Path),
    help="TOML configuration file (default: <vault>/linkvault.toml if present).",
)
@click.option("--log-level", help="DEBUG, INFO, WARNING or ERROR.")
@click.pass_context
def cli(ctx: click.Context, vault: Path | None, config: Path | None, log_level: str | None) -> None:
    """Query the link graph of a Markdown vault."""
    ctx.obj = _State(vault, config, log_level)


@cli.command("stats")
@filter_options
@click.pass_context
def stats_cmd(ctx: click.Context, options: FilterOptions) -> None:
    """Note, tag, orphan and broken-link counts."""
    _emit(stats(_index(ctx), options))


@cli.command("resolve")
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def resolve_cmd(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Look notes up by name (case-insensitive, fuzzy fallback)."""
    result = batch_resolve(_index(ctx), list(names))
    _emit(result)
    if result["errors"]:
        ctx.exit(1)


@cli.command("backlinks")
@click.argument("names", nargs=-1, required=True)
@filter_options
@pagination_options
@click.pass_context
def backlinks_cmd(
    ctx: click.Context, names: tuple[str, ...], options: FilterOptions, limit: int, offset: int
) -> None:
    """Notes that link to each NAME."""
    result = batch_find_backlinks(_index(ctx), list(names), options, limit=limit, offset=offset)
    _emit(result)
    if result["errors"]:
        ctx.exit(1)


@cli.command("orphans")
@filter_options
@pagination_options
@click.pass_context
def orphans_cmd(ctx: click.Context, options: FilterOptions, limit: int, offset: int) -> None:
    """Notes with no incoming links."""
    _emit(orphans(_index(ctx), options, limit=limit, offset=offset))


@cli.command("broken")
@click.option("--type", "link_type", type=click.Choice(["note", "embed", "all"]), default="all", show_default=True)
@click.option("--group-by", type=click.Choice(["target", "source"]), default="target", show_default=True)
@click.option("--note", "note_names", multiple=True, help="Only broken links inside this note.")
@filter_options
@pagination_options
@click.pass_context
def broken_cmd(
    ctx: click.Context,
    link_type: str,
    group_by: str,
    note_names: tuple[str, ...],
    options: FilterOptions,
    limit: int,
    offset: int,
) -> None:
    """Links whose target note or attachment does not exist."""
    report = missing_notes_by_source if group_by == "source" else missing_notes
    _emit(
        report(
            _index(ctx),
            options,
            link_type=link_type,
            note_names=list(note_names) or None,
            limit=limit,
            offset=offset,
        )
    )


@cli.command("traverse")
@click.argument("names", nargs=-1, required=True)
@click.option("--depth", type=click.IntRange(1, 10), default=2, show_default=True)
@click.option("--exclude-folder", "exclude_folders", multiple=True)
@click.pass_context
def traverse_cmd(
    ctx: click.Context, names: tuple[str, ...], depth: int, exclude_folders: tuple[str, ...]
) -> None:
    """Notes reachable from NAMES within DEPTH link hops."""
    start: str | list[str] = names[0] if len(names) == 1 else list(names)
    result = traverse(_index(ctx), start, depth, exclude_folders=list(exclude_folders))
    _emit(result)
    if not result.ok:
        ctx.exit(1)


@cli.command("search")
@click.argument("query")
@click.option("--whole-word", is_flag=True, help="Match whole words only.")
@click.option("--regex", is_flag=True, help="Treat QUERY as a regular expression.")
@click.option("--multi-term/--no-multi-term", default=True, show_default=True, help="Match any whitespace-separated term.")
@click.option("--names", "include_names", is_flag=True, help="Also match note names.")
@filter_options
@pagination_options
@click.pass_context
def search_cmd(
    ctx: click.Context,
    query: str,
    whole_word: bool,
    regex: bool,
    multi_term: bool,
    include_names: bool,
    options: FilterOptions,
    limit: int,
    offset: int,
) -> None:
    """Matching lines across note contents."""
    _emit(
        search(
            _index(ctx),
            query,
            options,
            whole_word=whole_word,
            regex=regex,
            multi_term=multi_term,
            include_names=include_names,
            limit=limit,
            offset=offset,
        )
    )


@cli.command("tag")
@click.argument("tag")
@filter_options
@pagination_options
@click.pass_context
def tag_cmd(ctx: click.Context, tag: str, options: FilterOptions, limit: int, offset: int) -> None:
    """Notes carrying TAG in frontmatter or inline."""
    _emit(find_by_tag(_index(ctx), tag, options, limit=limit, offset=offset))


@cli.command("untagged")
@filter_options
@pagination_options
@click.pass_context
def untagged_cmd(ctx: click.Context, options: FilterOptions, limit: int, offset: int) -> None:
    """Notes without any tag."""
    _emit(find_untagged(_index(ctx), options, limit=limit, offset=offset))


@cli.command("similar")
@click.argument("name")
@click.option("--threshold", type=click.IntRange(1, 10), default=3, show_default=True)
@pagination_options
@click.pass_context
def similar_cmd(ctx: click.Context, name: str, threshold: int, limit: int, offset: int) -> None:
    """Notes whose names are a few edits away from NAME."""
    _emit(find_similar_names(_index(ctx), name, threshold, limit=limit, offset=offset))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
