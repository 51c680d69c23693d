from __future__ import annotations

"""Configuration loading and access helpers.

This module centralises the declarative engine settings (annotation attribute
names, debounce timings, highlight class names, fetch backend, etc.). It loads
YAML files packaged with *sourcelens* and optionally merges them with user
overrides.

On Windows: ``%LOCALAPPDATA%\\SourceLens\\config\\*.yml``
On Unix: ``~/.sourcelens/*.yml``
"""

import logging
import os
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

logger = logging.getLogger(__name__)

__all__ = ["ConfigManager", "get_user_config_dir"]


def get_user_config_dir() -> Path:
    """Return the per-user configuration directory."""
    if os.name == 'nt':  # Windows
        local_appdata = os.environ.get('LOCALAPPDATA')
        if local_appdata:
            return Path(local_appdata) / "SourceLens" / "config"
        return Path.home() / "AppData" / "Local" / "SourceLens" / "config"
    return Path.home() / ".sourcelens"


def _read_packaged(filename: str) -> str:
    return resources.files(__package__).joinpath(filename).read_text(encoding="utf-8")


class _Singleton(type):
    _instance: "ConfigManager" | None = None

    def __call__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__call__(*args, **kwargs)
        return cls._instance


class ConfigManager(metaclass=_Singleton):
    """Lazy-loads and exposes configuration sections as dictionaries."""

    _DEFAULT_FILENAMES = {
        "engine": "engine.yml",
        "logging": "logging.yml",
    }

    def __init__(self, user_config_dir: Path | None = None) -> None:
        self._user_config_dir = user_config_dir or get_user_config_dir()
        self._data: Dict[str, Dict[str, Any]] = {}
        self._ensure_loaded()

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------
    def get_engine_config(self) -> Dict[str, Any]:
        return self._data.get("engine", {})

    def get_logging_config(self) -> Dict[str, Any]:
        return self._data.get("logging", {})

    @classmethod
    def reset(cls) -> None:
        """Forget the cached instance so the next call reloads from disk."""
        cls._instance = None

    # ------------------------------------------------------------------
    # Internal loading logic
    # ------------------------------------------------------------------
    def _ensure_loaded(self) -> None:
        if self._data:
            return
        summary = []
        for key, filename in self._DEFAULT_FILENAMES.items():
            packaged, status = self._load_packaged(key, filename)
            overrides = self._load_user(filename)
            if overrides and status == "loaded":
                status = "loaded+overrides"
            self._data[key] = {**packaged, **overrides}
            summary.append(f"{key}: {status}")
        logger.info("Config startup: %s", " | ".join(summary))

    @staticmethod
    def _load_packaged(key: str, filename: str) -> Tuple[Dict[str, Any], str]:
        try:
            return _as_mapping(yaml.safe_load(_read_packaged(filename))), "loaded"
        except OSError:
            logger.error("Missing packaged config for %s (%s)", key, filename)
            return {}, "missing"
        except (yaml.YAMLError, TypeError) as exc:
            logger.error("Invalid packaged config for %s (%s): %s", key, filename, exc)
            return {}, "invalid"

    def _load_user(self, filename: str) -> Dict[str, Any]:
        user_path = self._user_config_dir / filename
        if not user_path.exists():
            return {}
        try:
            return _as_mapping(yaml.safe_load(user_path.read_text(encoding="utf-8")))
        except (OSError, yaml.YAMLError, TypeError) as exc:
            logger.error("Could not parse user config %s: %s", user_path, exc)
            return {}


def _as_mapping(data: Any) -> Dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TypeError(f"expected a mapping, got {type(data).__name__}")
    return data
