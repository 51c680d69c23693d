from __future__ import annotations

import logging
import tkinter as tk
from tkinter import ttk
from typing import Callable, Literal, Optional

logger = logging.getLogger(__name__)

__all__ = ["FindBar"]


class FindBar(ttk.Frame):
    """Find bar of the source panel: entry, match counter, prev/next, clear.

    Parameters
    ----------
    master : tk.Widget
        Parent Tkinter widget.
    on_term_changed : Optional[Callable[[str], None]], optional
        Invoked with the entry text whenever it changes. Identical repeated
        values are not reported twice.
    on_navigate : Optional[Callable[[Literal["prev","next"]], None]], optional
        Invoked by the arrow buttons and by Return / Shift+Return.
    on_clear : Optional[Callable[[], None]], optional
        Invoked by the clear button and by Escape, after the entry is emptied.

    Notes
    -----
    Callback errors are logged, never raised into the Tk mainloop.
    """

    def __init__(
        self,
        master: "tk.Widget",
        *,
        on_term_changed: Optional[Callable[[str], None]] = None,
        on_navigate: Optional[Callable[[Literal["prev", "next"]], None]] = None,
        on_clear: Optional[Callable[[], None]] = None,
        entry_width: Optional[int] = None,
    ) -> None:
        super().__init__(master)

        self._on_term_changed = on_term_changed
        self._on_navigate = on_navigate
        self._on_clear = on_clear

        self._term_var = tk.StringVar(value="")
        self._counter_var = tk.StringVar(value="0 of 0")
        self._last_notified_term: Optional[str] = None

        # Layout: Label | Entry | Counter | Prev | Next | Clear
        self.columnconfigure(1, weight=1)
        ttk.Label(self, text="Find:").grid(row=0, column=0, padx=(0, 4))

        entry_kwargs = {"textvariable": self._term_var}
        if isinstance(entry_width, int) and entry_width > 0:
            entry_kwargs["width"] = entry_width
        self._entry = ttk.Entry(self, **entry_kwargs)
        self._entry.grid(row=0, column=1, padx=(0, 4), sticky="ew")

        ttk.Label(self, textvariable=self._counter_var, width=10, anchor="center").grid(row=0, column=2, padx=(0, 4))

        self._prev_btn = ttk.Button(self, text="◀", width=3, command=lambda: self.navigate_results("prev"))
        self._prev_btn.grid(row=0, column=3, padx=(0, 4))
        self._next_btn = ttk.Button(self, text="▶", width=3, command=lambda: self.navigate_results("next"))
        self._next_btn.grid(row=0, column=4, padx=(0, 4))
        self._clear_btn = ttk.Button(self, text="×", width=2, command=self.clear)
        self._clear_btn.grid(row=0, column=5)

        self._term_var.trace_add("write", self._on_term_var_changed)
        self._entry.bind("<Return>", self._on_return, add="+")
        self._entry.bind("<KP_Enter>", self._on_return, add="+")
        self._entry.bind("<Shift-Return>", self._on_shift_return, add="+")
        self._entry.bind("<Shift-KP_Enter>", self._on_shift_return, add="+")
        self._entry.bind("<Escape>", self._on_escape, add="+")

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    @property
    def entry(self) -> ttk.Entry:
        return self._entry

    def get_search_term(self) -> str:
        return self._term_var.get()

    def set_counter(self, text: str) -> None:
        self._counter_var.set(text)

    def reset(self) -> None:
        """Empty the entry without notifying (new content was loaded)."""
        self._last_notified_term = ""
        self._term_var.set("")
        self._counter_var.set("0 of 0")

    def clear(self) -> None:
        self.reset()
        if self._on_clear is not None:
            try:
                self._on_clear()
            except Exception:
                logger.exception("Find bar: clear callback failed")

    def navigate_results(self, direction: Literal["prev", "next"]) -> None:
        if self._on_navigate is None:
            return
        try:
            if direction in ("prev", "next"):
                self._on_navigate(direction)
        except Exception:
            logger.exception("Find bar: navigation callback failed")

    def focus_entry(self) -> None:
        self._entry.focus_set()
        self._entry.icursor("end")

    # ---------------------------------------------------------------------
    # Handlers
    # ---------------------------------------------------------------------
    def _on_term_var_changed(self, *args) -> None:
        if self._on_term_changed is None:
            return
        term = self.get_search_term()
        if term == self._last_notified_term:
            return
        self._last_notified_term = term
        try:
            self._on_term_changed(term)
        except Exception:
            logger.exception("Find bar: term callback failed")

    def _on_return(self, event: tk.Event) -> str:
        self.navigate_results("next")
        return "break"

    def _on_shift_return(self, event: tk.Event) -> str:
        self.navigate_results("prev")
        return "break"

    def _on_escape(self, event: tk.Event) -> str:
        self.clear()
        return "break"
