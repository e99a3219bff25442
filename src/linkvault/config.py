"""Vault configuration loader.

A vault may carry a ``linkvault.toml`` file at its root::

    [vault]
    excluded_dirs       = [".obsidian", ".trash", "templates"]
    excluded_prefixes   = ["reports/generated/"]
    follow_symlinks     = false
    tag_vocabulary_note = "tags"
    default_limit       = 50
    log_level           = "INFO"

Environment variables (direct arguments take precedence):
    LINKVAULT_PATH        vault root directory
    LINKVAULT_LOG_LEVEL   logging level name
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "linkvault.toml"

DEFAULT_EXCLUDED_DIRS = [
    ".obsidian",
    ".trash",
    ".git",
    ".claude",
    "templates",
    "Excalidraw",
    "smart-chats",
]

_KNOWN_KEYS = {
    "vault_dir",
    "excluded_dirs",
    "excluded_prefixes",
    "follow_symlinks",
    "tag_vocabulary_note",
    "default_limit",
    "log_level",
}


@dataclass
class VaultConfig:
    vault_dir: Path
    excluded_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_DIRS))
    #: Vault-relative POSIX prefixes, e.g. ``"reports/generated/"``
    excluded_prefixes: list[str] = field(default_factory=list)
    follow_symlinks: bool = False
    #: Name of the note listing the canonical tag vocabulary
    tag_vocabulary_note: str = "tags"
    default_limit: int = 50
    log_level: str = "INFO"
    meta: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any], vault_dir: Path | None = None) -> "VaultConfig":
        section = data.get("vault", data)
        raw_dir = vault_dir or section.get("vault_dir") or "."
        return cls(
            vault_dir=Path(raw_dir).expanduser(),
            excluded_dirs=list(section.get("excluded_dirs", DEFAULT_EXCLUDED_DIRS)),
            excluded_prefixes=list(section.get("excluded_prefixes", [])),
            follow_symlinks=bool(section.get("follow_symlinks", False)),
            tag_vocabulary_note=str(section.get("tag_vocabulary_note", "tags")),
            default_limit=int(section.get("default_limit", 50)),
            log_level=str(section.get("log_level", "INFO")).upper(),
            meta={k: v for k, v in section.items() if k not in _KNOWN_KEYS},
        )


def load_config(
    config_path: Path | None = None,
    vault_dir: Path | None = None,
) -> VaultConfig:
    """Load configuration from TOML, the environment, and direct arguments.

    Raises:
        FileNotFoundError: If *config_path* is given but does not exist.
        ValueError: If the resolved vault path is not a directory.
    """
    env_dir = os.getenv("LINKVAULT_PATH")
    root = Path(vault_dir or env_dir or ".").expanduser()

    data: dict[str, Any] = {}
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found at {config_path}")
    elif (root / CONFIG_FILENAME).is_file():
        config_path = root / CONFIG_FILENAME
    if config_path is not None:
        with open(config_path, "rb") as fh:
            data = tomllib.load(fh)

    section = data.get("vault", data)
    if vault_dir is None and env_dir is None and section.get("vault_dir"):
        root = Path(section["vault_dir"]).expanduser()

    config = VaultConfig.from_dict(data, vault_dir=root)
    env_level = os.getenv("LINKVAULT_LOG_LEVEL")
    if env_level:
        config.log_level = env_level.upper()

    config.vault_dir = config.vault_dir.resolve()
    if not config.vault_dir.is_dir():
        raise ValueError(f"Vault path does not exist or is not a directory: {config.vault_dir}")
    return config
