# -*- coding: utf-8 -*-
"""Application version detection.

Provides ``get_app_version()``: installed distribution metadata first, then a
``version.txt`` written next to the package by packaging scripts, and finally
``"vdev"`` for a plain source checkout.
"""

from __future__ import annotations

from importlib import metadata
from pathlib import Path
from typing import Optional

_CACHED_VERSION: Optional[str] = None


def get_app_version() -> str:
    """Return the application version string (e.g., ``v0.3.0``)."""
    global _CACHED_VERSION
    if _CACHED_VERSION:
        return _CACHED_VERSION

    try:
        _CACHED_VERSION = f"v{metadata.version('sourcelens')}"
        return _CACHED_VERSION
    except metadata.PackageNotFoundError:
        pass

    version_file = Path(__file__).resolve().parent.parent / "version.txt"
    if version_file.exists():
        text = version_file.read_text(encoding="ascii", errors="ignore").strip()
        if text:
            _CACHED_VERSION = text if text.startswith("v") else f"v{text}"
            return _CACHED_VERSION

    _CACHED_VERSION = "vdev"
    return _CACHED_VERSION
