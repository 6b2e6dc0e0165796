"""Persisted settings.

Two JSON key-value stores are used: a global one per user (GitHub token,
clone protocol) and a local one per managed folder (folder type,
organization, saved selection for ``gitman update``).
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import platformdirs

from .errors import GitmanError

APP_NAME = "gitman"
CONFIG_DIR_ENV = "GITMAN_CONFIG_DIR"
GLOBAL_CONFIG_FILENAME = "config.json"
LOCAL_CONFIG_FILENAME = ".gitman-config.json"

# Global keys
TOKEN_KEY = "github.token"
CLONE_PROTOCOL_KEY = "clone.protocol"

# Local keys
TYPE_KEY = "type"
ORG_KEY = "github.org"
SELECTED_REPOS_KEY = "selected_repos"


class ConfigError(GitmanError):
    """A config file exists but cannot be read or parsed."""


class ConfigStore:
    """Flat JSON key-value store backed by a single file."""

    def __init__(self, path: Path):
        self.path = path
        self._data: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._data = {}
            return self._data
        except OSError as e:
            raise ConfigError(f"Cannot read {self.path}: {e}") from e

        try:
            data = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a JSON object in {self.path}")
        self._data = data
        return self._data

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(self._load(), indent=2, sort_keys=True) + "\n", encoding="utf-8"
        )

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def has(self, key: str) -> bool:
        return key in self._load()

    def set(self, key: str, value: Any) -> None:
        self._load()[key] = value
        self._save()

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save()

    def clear(self) -> None:
        """Forget every key and remove the backing file."""
        self._data = {}
        self.path.unlink(missing_ok=True)

    def is_empty(self) -> bool:
        return not self._load()

    def get_selected_repos(self) -> list[str]:
        """Names saved by ``gitman select``, in the order they were chosen."""
        raw = self.get(SELECTED_REPOS_KEY) or ""
        return [name for name in (part.strip() for part in raw.split(",")) if name]

    def set_selected_repos(self, names: list[str]) -> None:
        self.set(SELECTED_REPOS_KEY, ",".join(names))


def global_config_path() -> Path:
    """Location of the per-user config file.

    ``$GITMAN_CONFIG_DIR`` overrides the platform default directory.
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        base = Path(override).expanduser()
    else:
        base = Path(platformdirs.user_config_dir(APP_NAME))
    return base / GLOBAL_CONFIG_FILENAME


def global_config() -> ConfigStore:
    return ConfigStore(global_config_path())


def local_config(root_path: Path) -> ConfigStore:
    return ConfigStore(root_path / LOCAL_CONFIG_FILENAME)
