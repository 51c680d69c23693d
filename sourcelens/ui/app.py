# -*- coding: utf-8 -*-
"""Tk-based desktop front-end for SourceLens.

Shows an annotated HTML page as a list of its annotated elements next to the
file tree and source panels. Pointer motion over the element list drives
hover, the lock key pins the hovered element, clicking a file row locks the
file. The asyncio loop is pumped from Tk's ``after`` so engine coroutines and
Tk callbacks share one thread.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, Optional

import tkinter as tk
from tkinter import ttk
from tkinter.scrolledtext import ScrolledText

from lxml import etree as ET

from sourcelens.engine import SourceLensEngine
from sourcelens.ui.source_panel import (
    FILE_HIGHLIGHTED_SOURCE_LINE,
    HIGHLIGHTED_SOURCE_LINE,
    HOVER_HIGHLIGHTED_SOURCE_LINE,
    SEARCH_MATCH_ACTIVE,
    SEARCH_MATCH_HIGHLIGHT,
)
from sourcelens.ui.tree_view import NODE_SELECTED, TREE_FILE_HOVER_SELECTED, TREE_FILE_SELECTED
from sourcelens.ui.widgets.find_bar import FindBar
from sourcelens.version import get_app_version

logger = logging.getLogger(__name__)

__all__ = ["SourceLensApp"]

PUMP_INTERVAL_MS = 20

_LINE_COLORS = {
    HIGHLIGHTED_SOURCE_LINE: "#ffe08a",
    HOVER_HIGHLIGHTED_SOURCE_LINE: "#fff4cc",
    FILE_HIGHLIGHTED_SOURCE_LINE: "#d6e9ff",
    SEARCH_MATCH_HIGHLIGHT: "#fff176",
    SEARCH_MATCH_ACTIVE: "#ff9800",
}


class SourceLensApp:
    """Main window wiring Tk widgets to a :class:`SourceLensEngine`."""

    def __init__(self, root: tk.Tk, engine: SourceLensEngine, loop: asyncio.AbstractEventLoop, page_path: Path):
        self.root = root
        self.engine = engine
        self.loop = loop
        self.page_path = page_path

        self._element_by_item: Dict[str, ET._Element] = {}
        self._item_by_path: Dict[str, str] = {}
        self._hovered_item: Optional[str] = None
        self._rendered_tree_count = -1
        self._enabled_var = tk.BooleanVar(value=False)

        self.root.title(f"SourceLens {get_app_version()} - {page_path.name}")
        self._build_layout()
        self.root.bind_all("<KeyPress>", self._on_key, add="+")
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

        self.engine.start()
        self._bind_panels()
        self._enabled_var.set(self.engine.enabled)
        self._populate_elements()
        self.root.after(PUMP_INTERVAL_MS, self._pump)
        self.root.after(100, self._place_sash)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def _build_layout(self) -> None:
        toolbar = ttk.Frame(self.root, padding=(6, 4))
        toolbar.pack(fill="x")
        ttk.Checkbutton(toolbar, text="Enabled", variable=self._enabled_var, command=self._on_enabled_toggled).pack(
            side="left"
        )
        ttk.Button(toolbar, text="Reload page", command=self._reload_page).pack(side="left", padx=(8, 0))
        self._status = ttk.Label(toolbar, text="")
        self._status.pack(side="right")

        panes = ttk.PanedWindow(self.root, orient="horizontal")
        panes.pack(fill="both", expand=True)
        panes.bind("<ButtonRelease-1>", self._on_sash_released, add="+")
        self._panes = panes

        page_frame = ttk.Frame(panes)
        ttk.Label(page_frame, text="Page elements", padding=(4, 2)).pack(anchor="w")
        self.page_list = ttk.Treeview(page_frame, columns=("location",), show="tree headings", selectmode="none")
        self.page_list.heading("#0", text="Element")
        self.page_list.heading("location", text="Source")
        self.page_list.tag_configure("my-extension-highlight", background="#fff4cc")
        self.page_list.tag_configure("locked-highlight", background="#ffcc80")
        self.page_list.tag_configure("file-locked-highlight", background="#d6e9ff")
        self.page_list.pack(fill="both", expand=True)
        self.page_list.bind("<Motion>", self._on_page_motion, add="+")
        self.page_list.bind("<Leave>", self._on_page_leave, add="+")
        panes.add(page_frame, weight=3)

        right = ttk.PanedWindow(panes, orient="vertical")
        panes.add(right, weight=2)

        tree_frame = ttk.Frame(right)
        header = ttk.Frame(tree_frame)
        header.pack(fill="x")
        ttk.Label(header, text="Web Page Source Files", padding=(4, 2)).pack(side="left")
        ttk.Button(header, text="⟳", width=3, command=self._on_refresh_clicked).pack(side="right")
        self.file_tree = ttk.Treeview(tree_frame, show="tree", selectmode="none")
        self.file_tree.tag_configure(TREE_FILE_HOVER_SELECTED, background="#fff4cc")
        self.file_tree.tag_configure(TREE_FILE_SELECTED, background="#ffcc80")
        self.file_tree.pack(fill="both", expand=True)
        self.file_tree.bind("<ButtonRelease-1>", self._on_tree_click, add="+")
        # ttk fires these before it flips the item's open flag
        self.file_tree.bind("<<TreeviewOpen>>", lambda e: self._on_tree_open_close(True), add="+")
        self.file_tree.bind("<<TreeviewClose>>", lambda e: self._on_tree_open_close(False), add="+")
        self._empty_label = ttk.Label(tree_frame, text="", foreground="#777")
        self._empty_label.pack(fill="x")
        right.add(tree_frame, weight=1)

        source_frame = ttk.Frame(right)
        self._source_header = ttk.Label(source_frame, text="", padding=(4, 2))
        self._source_header.pack(fill="x")
        self.find_bar = FindBar(
            source_frame,
            on_term_changed=self.engine.set_search_term,
            on_navigate=self._on_navigate,
            on_clear=self.engine.clear_search,
        )
        self.find_bar.pack(fill="x", padx=4, pady=2)
        self.source_text = ScrolledText(source_frame, wrap="none", font=("Courier", 10))
        for css, color in _LINE_COLORS.items():
            self.source_text.tag_configure(css, background=color)
        self.source_text.tag_raise(SEARCH_MATCH_HIGHLIGHT)
        self.source_text.tag_raise(SEARCH_MATCH_ACTIVE)
        self.source_text.pack(fill="both", expand=True)
        self.source_text.bind("<ButtonRelease-1>", self._on_source_click, add="+")
        right.add(source_frame, weight=2)

    def _bind_panels(self) -> None:
        tree_view = self.engine.panels.get_tree_view()
        panel = self.engine.panels.get_source_panel()
        if tree_view is not None:
            tree_view.subscribe(self._render_file_tree)
            self._rendered_tree_count = -1
            self._render_file_tree()
        if panel is not None:
            panel.subscribe(self._render_source)
            self._render_source()

    def _place_sash(self) -> None:
        width = self._panes.winfo_width()
        if width <= 1:
            # Not mapped yet
            self.root.after(100, self._place_sash)
            return
        self._panes.sashpos(0, self.engine.panels.sash_position(width))

    def _on_sash_released(self, event: tk.Event) -> None:
        width = self._panes.winfo_width()
        if width <= 1:
            return
        dragged = width - int(self._panes.sashpos(0))
        delta = dragged - self.engine.context.panel_geometry.right_panel_width
        self.engine.panels.resize_right_panel(delta, width)
        self._place_sash()

    # ------------------------------------------------------------------
    # asyncio pump
    # ------------------------------------------------------------------
    def _pump(self) -> None:
        self.loop.call_soon(self.loop.stop)
        self.loop.run_forever()
        self._refresh_page_tags()
        self.root.after(PUMP_INTERVAL_MS, self._pump)

    def _on_close(self) -> None:
        self.engine.close()
        for task in asyncio.all_tasks(self.loop):
            task.cancel()
        self.root.destroy()

    # ------------------------------------------------------------------
    # Page elements
    # ------------------------------------------------------------------
    def _populate_elements(self) -> None:
        self.page_list.delete(*self.page_list.get_children())
        self._element_by_item.clear()
        self._hovered_item = None
        settings = self.engine.settings
        page = self.engine.page
        for element in page.annotated_elements(settings.file_attribute, settings.line_attribute):
            location = page.location_of(element, settings.file_attribute, settings.line_attribute)
            if location is None:
                continue
            text = " ".join((element.text_content() or "").split())[:60]
            item = self.page_list.insert(
                "", "end", text=f"<{element.tag}> {text}", values=(f"{location.file_path}:{location.line_number}",)
            )
            self._element_by_item[item] = element

    def _refresh_page_tags(self) -> None:
        for item, element in self._element_by_item.items():
            classes = set(element.get("class", "").split())
            tags = [css for css in self.engine.settings.highlight_classes.all() if css in classes]
            if tuple(tags) != tuple(self.page_list.item(item, "tags") or ()):
                self.page_list.item(item, tags=tags)
        scrolled = self.engine.page.scrolled_to
        if scrolled is not None:
            for item, element in self._element_by_item.items():
                if element is scrolled:
                    self.page_list.see(item)
                    break
            self.engine.page.scrolled_to = None

    def _on_page_motion(self, event: tk.Event) -> None:
        item = self.page_list.identify_row(event.y) or None
        if item == self._hovered_item:
            return
        if self._hovered_item is not None:
            self.engine.leave(self._element_by_item[self._hovered_item])
        self._hovered_item = item
        if item is not None:
            self.engine.spawn(self.engine.hover(self._element_by_item[item]))

    def _on_page_leave(self, event: tk.Event) -> None:
        if self._hovered_item is not None:
            self.engine.leave(self._element_by_item[self._hovered_item])
            self._hovered_item = None

    def _on_key(self, event: tk.Event) -> None:
        if isinstance(event.widget, (tk.Entry, ttk.Entry, tk.Text)):
            return
        if event.char and self.engine.handle_key(event.char):
            self._refresh_page_tags()

    def _reload_page(self) -> None:
        try:
            markup = self.page_path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("Could not reload %s: %s", self.page_path, exc)
            self._status.configure(text=f"Reload failed: {exc.strerror}")
            return
        self.engine.page.navigate(self.engine.page.url, markup)
        self._populate_elements()
        self.engine.on_url_changed(self.engine.page.url)

    def _on_enabled_toggled(self) -> None:
        enabled = bool(self._enabled_var.get())
        self.engine.handle_message({"action": "toggle", "checked": enabled})
        if enabled:
            self._bind_panels()
        else:
            self.file_tree.delete(*self.file_tree.get_children())
            self._item_by_path.clear()
            self.source_text.delete("1.0", "end")
            self._source_header.configure(text="")
            self._empty_label.configure(text="")
        self._refresh_page_tags()

    # ------------------------------------------------------------------
    # File tree
    # ------------------------------------------------------------------
    def _render_file_tree(self) -> None:
        tree_view = self.engine.panels.get_tree_view()
        if tree_view is None:
            return
        if tree_view.render_count != self._rendered_tree_count:
            self._rendered_tree_count = tree_view.render_count
            self.file_tree.delete(*self.file_tree.get_children())
            self._item_by_path.clear()
            for row in tree_view.rows:
                parent = self._item_by_path.get(f"dir:{row.parent_path}", "") if row.parent_path else ""
                key = f"{row.kind}:{row.path}"
                self._item_by_path[key] = self.file_tree.insert(parent, "end", text=row.label, open=row.expanded)
        self._empty_label.configure(text=tree_view.empty_message or "")
        self._status.configure(text=f"{len(self.engine.context.source_map)} file(s)")

        focus_item = None
        for row in tree_view.rows:
            item = self._item_by_path.get(f"{row.kind}:{row.path}")
            if item is None:
                continue
            tags = [css for css in (TREE_FILE_SELECTED, TREE_FILE_HOVER_SELECTED) if css in row.classes]
            self.file_tree.item(item, text=row.label, tags=tags, open=row.expanded)
            if NODE_SELECTED in row.classes:
                focus_item = item
        if focus_item is not None:
            self.file_tree.see(focus_item)

    def _row_for_item(self, item: str):
        tree_view = self.engine.panels.get_tree_view()
        if tree_view is None:
            return None
        for key, value in self._item_by_path.items():
            if value == item:
                kind, _, path = key.partition(":")
                return tree_view.file_row(path) if kind == "file" else tree_view.dir_row(path)
        return None

    def _on_tree_click(self, event: tk.Event) -> None:
        row = self._row_for_item(self.file_tree.identify_row(event.y))
        tree_view = self.engine.panels.get_tree_view()
        if row is not None and row.is_file and tree_view is not None:
            tree_view.click_file(row.path)

    def _on_tree_open_close(self, expanded: bool) -> None:
        tree_view = self.engine.panels.get_tree_view()
        row = self._row_for_item(self.file_tree.focus())
        if tree_view is None or row is None or row.is_file:
            return
        if row.expanded != expanded:
            tree_view.toggle_directory(row.path)

    def _on_refresh_clicked(self) -> None:
        tree_view = self.engine.panels.get_tree_view()
        if tree_view is not None:
            tree_view.click_refresh()

    # ------------------------------------------------------------------
    # Source panel
    # ------------------------------------------------------------------
    def _render_source(self) -> None:
        panel = self.engine.panels.get_source_panel()
        if panel is None:
            return
        header = panel.breadcrumb
        if panel.location_label:
            header = f"{header}    {panel.location_label}"
        self._source_header.configure(text=header)

        text = self.source_text
        text.delete("1.0", "end")
        if panel.loading and not panel.lines:
            text.insert("end", f"Loading {panel.path}...")
        elif panel.error:
            text.insert("end", panel.error)
        for line in panel.lines:
            start = text.index("end-1c")
            text.insert("end", line.display + "\n", tuple(line.classes))
            offset = len(line.prefix)
            for span_start, span_end, ordinal in line.spans:
                css = SEARCH_MATCH_ACTIVE if ordinal == panel.active_ordinal else SEARCH_MATCH_HIGHLIGHT
                text.tag_add(css, f"{start}+{offset + span_start}c", f"{start}+{offset + span_end}c")
        if panel.scroll_line is not None:
            text.see(f"{panel.scroll_line}.0")

        if not self.engine.context.search.term and self.find_bar.get_search_term():
            self.find_bar.reset()
        self.find_bar.set_counter(panel.counter_text)

    def _on_source_click(self, event: tk.Event) -> None:
        panel = self.engine.panels.get_source_panel()
        if panel is None:
            return
        line = int(self.source_text.index(f"@{event.x},{event.y}").split(".")[0])
        panel.click_line(line)

    def _on_navigate(self, direction: str) -> None:
        if direction == "next":
            self.engine.search_next()
        else:
            self.engine.search_previous()
