from __future__ import annotations

"""Source code panel view model.

Holds the numbered lines of the displayed file, their line classes, the
search-match spans laid over them and the find counter. The pristine text is
kept separately so that search decoration can always be undone exactly.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

import lxml.html
from lxml.html import builder as E

from sourcelens.core.models import MatchHandle

logger = logging.getLogger(__name__)

__all__ = [
    "SourceLine",
    "SourcePanel",
    "HIGHLIGHTED_SOURCE_LINE",
    "HOVER_HIGHLIGHTED_SOURCE_LINE",
    "FILE_HIGHLIGHTED_SOURCE_LINE",
    "SEARCH_MATCH_HIGHLIGHT",
    "SEARCH_MATCH_ACTIVE",
]

HIGHLIGHTED_SOURCE_LINE = "highlighted-source-line"
HOVER_HIGHLIGHTED_SOURCE_LINE = "hover-highlighted-source-line"
FILE_HIGHLIGHTED_SOURCE_LINE = "file-highlighted-source-line"
SEARCH_MATCH_HIGHLIGHT = "search-match-highlight"
SEARCH_MATCH_ACTIVE = "search-match-active"
PATH_SEPARATOR = " ▶ "


@dataclass
class SourceLine:
    """One rendered line: ``"<number>: <text>"``."""

    number: int
    text: str
    classes: Set[str] = field(default_factory=set)
    # (start, end, ordinal) into ``text``
    spans: List[Tuple[int, int, int]] = field(default_factory=list)

    @property
    def prefix(self) -> str:
        return f"{self.number}: "

    @property
    def display(self) -> str:
        return f"{self.prefix}{self.text}"


def split_lines(text: str) -> List[str]:
    lines = text.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return [line.rstrip("\r") for line in lines]


class SourcePanel:
    """State of the source panel container.

    Parameters
    ----------
    on_line_clicked : Callable[[int], None], optional
        Invoked with the 1-based line number when a line is clicked.
    """

    def __init__(self, *, on_line_clicked: Optional[Callable[[int], None]] = None) -> None:
        self.on_line_clicked = on_line_clicked
        self.path: Optional[str] = None
        self.target_line: Optional[int] = None
        self.lines: List[SourceLine] = []
        self.error: Optional[str] = None
        self.loading = False
        self.scroll_line: Optional[int] = None
        self.counter_text = "0 of 0"
        self.active_ordinal = -1
        self._before_loading: Tuple[Optional[str], Optional[int], Optional[str]] = (None, None, None)
        self._listeners: List[Callable[[], None]] = []

    # ------------------------------------------------------------------
    def subscribe(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                logger.exception("Source panel listener failed")

    # ------------------------------------------------------------------
    # Header
    # ------------------------------------------------------------------
    @property
    def path_segments(self) -> List[str]:
        if not self.path:
            return []
        return [part for part in self.path.split("/") if part]

    @property
    def breadcrumb(self) -> str:
        return PATH_SEPARATOR.join(self.path_segments)

    @property
    def location_label(self) -> str:
        segments = self.path_segments
        if not segments:
            return ""
        if self.target_line is None:
            return segments[-1]
        return f"{segments[-1]}::{self.target_line}"

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------
    def show_loading(self, path: str, line: Optional[int] = None) -> None:
        if not self.loading:
            self._before_loading = (self.path, self.target_line, self.error)
        self.path = path
        self.target_line = line
        self.loading = True
        self.error = None
        self._notify()

    def cancel_loading(self) -> None:
        """Put the header back to what the current lines belong to."""
        if not self.loading:
            return
        self.path, self.target_line, self.error = self._before_loading
        self.loading = False
        self._notify()

    def show_source(
        self,
        path: str,
        text: str,
        *,
        target_line: Optional[int],
        annotated_lines: Iterable[int] = (),
        file_mode: bool = False,
    ) -> None:
        """Display *text* and decorate the annotated lines.

        In file mode every annotated line is marked as a file match. Otherwise
        the target line gets the strong highlight and the remaining annotated
        lines of the same file the weaker hover highlight.
        """
        annotated = set(annotated_lines)
        self.path = path
        self.target_line = target_line
        self.loading = False
        self.error = None
        self.lines = []
        for number, line_text in enumerate(split_lines(text), start=1):
            line = SourceLine(number=number, text=line_text)
            if file_mode:
                if number in annotated:
                    line.classes.add(FILE_HIGHLIGHTED_SOURCE_LINE)
            elif number == target_line:
                line.classes.add(HIGHLIGHTED_SOURCE_LINE)
            elif number in annotated:
                line.classes.add(HOVER_HIGHLIGHTED_SOURCE_LINE)
            self.lines.append(line)
        self.scroll_line = target_line if target_line and target_line <= len(self.lines) else None
        self._reset_search_display()
        logger.debug("SourcePanel: showing %s (%d lines, target=%s)", path, len(self.lines), target_line)
        self._notify()

    def show_error(self, path: str, message: str) -> None:
        self.path = path
        self.loading = False
        self.lines = []
        self.scroll_line = None
        self.error = message
        self._reset_search_display()
        self._notify()

    def clear(self) -> None:
        self.path = None
        self.target_line = None
        self.lines = []
        self.error = None
        self.loading = False
        self.scroll_line = None
        self._reset_search_display()
        self._notify()

    def code_lines(self) -> List[Tuple[int, str]]:
        """Pristine ``(line_number, code_text)`` pairs, prefix excluded."""
        return [(line.number, line.text) for line in self.lines]

    @property
    def text(self) -> str:
        return "\n".join(line.text for line in self.lines)

    # ------------------------------------------------------------------
    # Search decoration
    # ------------------------------------------------------------------
    def restore_pristine(self) -> None:
        self._reset_search_display()
        self._notify()

    def mark_matches(self, matches: Sequence[MatchHandle]) -> None:
        self._reset_search_display()
        by_line = {line.number: line for line in self.lines}
        for match in matches:
            line = by_line.get(match.line_number)
            if line is not None:
                line.spans.append((match.start, match.end, match.ordinal))
        self.counter_text = f"0 of {len(matches)}"
        self._notify()

    def set_active_match(self, match: MatchHandle, total: int, *, scroll: bool) -> None:
        self.active_ordinal = match.ordinal
        self.counter_text = f"{match.ordinal + 1} of {total}"
        if scroll:
            self.scroll_line = match.line_number
        self._notify()

    def _reset_search_display(self) -> None:
        for line in self.lines:
            line.spans = []
        self.active_ordinal = -1
        self.counter_text = "0 of 0"

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------
    def click_line(self, number: int) -> None:
        if not 1 <= number <= len(self.lines):
            return
        if self.on_line_clicked is not None:
            self.on_line_clicked(number)

    # ------------------------------------------------------------------
    # Markup
    # ------------------------------------------------------------------
    def render_markup(self) -> str:
        """Render the panel body as an HTML fragment."""
        if self.error:
            body = E.DIV(E.CLASS("source-code-error"), self.error)
        else:
            code = E.CODE()
            for line in self.lines:
                code.append(self._render_line(line))
            body = E.PRE(code)
        header = E.DIV(
            E.CLASS("source-code-header"),
            E.SPAN(E.CLASS("source-code-path"), self.breadcrumb),
            E.SPAN(E.CLASS("source-code-location"), self.location_label),
        )
        return lxml.html.tostring(E.DIV(E.CLASS("source-code-panel"), header, body), encoding="unicode")

    def _render_line(self, line: SourceLine):
        attrs = {"data-line": str(line.number)}
        if line.classes:
            attrs["class"] = " ".join(sorted(line.classes))
        span = E.SPAN(attrs)
        span.text = line.prefix
        cursor = 0
        last = None
        for start, end, ordinal in sorted(line.spans):
            piece = line.text[cursor:start]
            if last is None:
                span.text += piece
            else:
                last.tail = (last.tail or "") + piece
            css = SEARCH_MATCH_ACTIVE if ordinal == self.active_ordinal else SEARCH_MATCH_HIGHLIGHT
            last = E.SPAN(E.CLASS(css), line.text[start:end])
            span.append(last)
            cursor = end
        rest = line.text[cursor:] + "\n"
        if last is None:
            span.text += rest
        else:
            last.tail = (last.tail or "") + rest
        return span
