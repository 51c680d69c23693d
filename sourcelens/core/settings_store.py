from __future__ import annotations

"""Persisted ``enabled`` flag.

The flag lives in ``state.yml`` inside the user configuration directory.
Anything that goes wrong while reading it (missing file, corrupt YAML,
unreadable directory) leaves the engine enabled.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional

import yaml

from sourcelens.config.manager import get_user_config_dir

logger = logging.getLogger(__name__)

__all__ = ["SettingsStore", "ENABLED_KEY"]

ENABLED_KEY = "extensionEnabled"
STATE_FILENAME = "state.yml"


class SettingsStore:
    """Read/write the ``enabled`` flag and notify on change."""

    def __init__(self, directory: Optional[Path] = None) -> None:
        self.path = Path(directory or get_user_config_dir()) / STATE_FILENAME
        self._listeners: List[Callable[[bool], None]] = []

    def subscribe(self, callback: Callable[[bool], None]) -> None:
        self._listeners.append(callback)

    def load_enabled(self) -> bool:
        try:
            if not self.path.exists():
                return True
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Could not read %s (%s); treating engine as enabled", self.path, exc)
            return True
        if not isinstance(data, dict):
            return True
        value = data.get(ENABLED_KEY, True)
        return value if isinstance(value, bool) else True

    def save_enabled(self, enabled: bool) -> None:
        """Persist *enabled* and notify subscribers if the value changed."""
        previous = self.load_enabled()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(yaml.safe_dump({ENABLED_KEY: bool(enabled)}), encoding="utf-8")
        except OSError as exc:
            logger.error("Could not persist enabled flag to %s: %s", self.path, exc)
        if previous != enabled:
            for callback in list(self._listeners):
                try:
                    callback(enabled)
                except Exception:
                    logger.exception("Settings listener failed")
