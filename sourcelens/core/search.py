from __future__ import annotations

"""Find / next / previous inside the displayed source.

Navigation is anchored like an editor cursor: the reference line is the line
the user last clicked in the panel (used once), else the line of the active
match. ``next`` goes to the first match on the nearest line after the
reference, ``previous`` to the last match on the nearest line before it, and
both wrap around at the ends.
"""

import dataclasses
import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple

from .context import EngineContext
from .models import MatchHandle, SearchState

logger = logging.getLogger(__name__)

__all__ = [
    "SearchNavigator",
    "find_matches",
    "next_match_index",
    "previous_match_index",
]


def find_matches(lines: Sequence[Tuple[int, str]], term: str) -> List[MatchHandle]:
    """Case-insensitive literal matches of *term* in the code text of *lines*."""
    if not term:
        return []
    pattern = re.compile(re.escape(term), re.IGNORECASE)
    matches: List[MatchHandle] = []
    for number, text in lines:
        for hit in pattern.finditer(text):
            matches.append(MatchHandle(ordinal=len(matches), line_number=number, start=hit.start(), end=hit.end()))
    return matches


def next_match_index(matches: Sequence[MatchHandle], reference: Optional[int]) -> int:
    if not matches:
        return -1
    if reference is None:
        return 0
    best = -1
    best_line = None
    for index, match in enumerate(matches):
        if match.line_number > reference and (best_line is None or match.line_number < best_line):
            best, best_line = index, match.line_number
    return best if best != -1 else 0


def previous_match_index(matches: Sequence[MatchHandle], reference: Optional[int]) -> int:
    if not matches:
        return -1
    if reference is None:
        return len(matches) - 1
    best = -1
    best_line = None
    for index, match in enumerate(matches):
        if match.line_number < reference and (best_line is None or match.line_number >= best_line):
            best, best_line = index, match.line_number
    return best if best != -1 else len(matches) - 1


class SearchNavigator:
    """Search API over the source panel's current text.

    Parameters
    ----------
    context : EngineContext
        Holds the :class:`SearchState`.
    panel_getter : Callable[[], object]
        Returns the live source panel, or None when it has been torn down.
    """

    def __init__(self, context: EngineContext, panel_getter: Callable[[], object]) -> None:
        self._ctx = context
        self._get_panel = panel_getter

    @property
    def state(self) -> SearchState:
        return self._ctx.search

    def _panel(self):
        panel = self._get_panel()
        if panel is None:
            logger.error("Search: source panel container is not available")
        return panel

    # ------------------------------------------------------------------
    def set_term(self, term: str) -> None:
        if term == self.state.term:
            return
        panel = self._panel()
        if panel is None:
            return
        self._apply_term(panel, term)

    def _apply_term(self, panel, term: str) -> None:
        panel.restore_pristine()
        matches = find_matches(panel.code_lines(), term) if term.strip() else []
        self._ctx.update(
            search=SearchState(term=term, matches=matches, last_clicked_line=self.state.last_clicked_line)
        )
        if matches:
            panel.mark_matches(matches)
            self._activate(panel, 0, scroll=False)
        logger.debug("Search: %r -> %d match(es)", term, len(matches))

    def reference_line(self) -> Optional[int]:
        state = self.state
        if state.last_clicked_line is not None:
            return state.last_clicked_line
        active = state.active_match
        return active.line_number if active is not None else None

    def next(self) -> Optional[MatchHandle]:
        return self._navigate(next_match_index)

    def previous(self) -> Optional[MatchHandle]:
        return self._navigate(previous_match_index)

    def _navigate(self, pick: Callable[[Sequence[MatchHandle], Optional[int]], int]) -> Optional[MatchHandle]:
        panel = self._panel()
        if panel is None:
            return None

        if not self.state.matches:
            # Content may have been replaced since the term was typed
            if not self.state.term.strip():
                return None
            self._apply_term(panel, self.state.term)
            if not self.state.matches:
                return None
            self._consume_click()
            return self._activate(panel, self.state.active_index, scroll=True)

        reference = self.reference_line()
        self._consume_click()
        index = pick(self.state.matches, reference)
        return self._activate(panel, index, scroll=True)

    def clear(self) -> None:
        panel = self._get_panel()
        if panel is not None:
            panel.restore_pristine()
        self._ctx.update(search=SearchState(last_clicked_line=self.state.last_clicked_line))

    def reset(self) -> None:
        """Forget everything, including the clicked line (new content loaded)."""
        self._ctx.update(search=SearchState())

    def note_clicked_line(self, line_number: int) -> None:
        self._ctx.update(search=dataclasses.replace(self.state, last_clicked_line=line_number))

    # ------------------------------------------------------------------
    def _consume_click(self) -> None:
        if self.state.last_clicked_line is not None:
            self._ctx.update(search=dataclasses.replace(self.state, last_clicked_line=None))

    def _activate(self, panel, index: int, *, scroll: bool) -> Optional[MatchHandle]:
        state = dataclasses.replace(self.state)
        state.set_active(index)
        self._ctx.update(search=state)
        match = state.active_match
        if match is not None:
            panel.set_active_match(match, len(state.matches), scroll=scroll)
        return match
