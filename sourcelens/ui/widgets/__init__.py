"""Reusable Tkinter widgets for the desktop front-end."""

__all__ = ["FindBar"]

from .find_bar import FindBar  # noqa: E402
