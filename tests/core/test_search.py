import pytest

from sourcelens.core.context import EngineContext
from sourcelens.core.models import MatchHandle
from sourcelens.core.search import SearchNavigator, find_matches, next_match_index, previous_match_index
from sourcelens.ui.source_panel import SourcePanel


TEXT = "\n".join(
    [
        "import os",            # 1
        "",                     # 2
        "foo = 1; FOO += 2",    # 3
        "",                     # 4
        "",                     # 5
        "",                     # 6
        "print(foo)",           # 7
        "",                     # 8
        "",                     # 9
        "return Foo",           # 10
    ]
)


def _matches(lines):
    return [MatchHandle(ordinal=i, line_number=n, start=0, end=3) for i, n in enumerate(lines)]


@pytest.fixture
def panel():
    p = SourcePanel()
    p.show_source("pkg/mod.py", TEXT, target_line=None)
    return p


@pytest.fixture
def nav(panel):
    return SearchNavigator(EngineContext(), lambda: panel)


# ---------------------------------------------------------------------------
# Nearest-line selection
# ---------------------------------------------------------------------------

def test_next_wraps_to_first_match_after_last_line():
    matches = _matches([3, 3, 7, 10])

    assert next_match_index(matches, 10) == 0


def test_previous_wraps_to_last_match_before_first_line():
    matches = _matches([3, 3, 7, 10])

    assert previous_match_index(matches, 3) == 3


def test_next_picks_first_match_on_nearest_following_line():
    matches = _matches([3, 3, 7, 7, 10])

    assert next_match_index(matches, 5) == 2
    assert next_match_index(matches, 1) == 0


def test_previous_picks_last_match_on_nearest_preceding_line():
    matches = _matches([3, 3, 7, 7, 10])

    assert previous_match_index(matches, 9) == 3
    assert previous_match_index(matches, 7) == 1


def test_without_reference_next_and_previous_go_to_ends():
    matches = _matches([3, 7])

    assert next_match_index(matches, None) == 0
    assert previous_match_index(matches, None) == 1
    assert next_match_index([], None) == -1


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def test_find_matches_is_case_insensitive_and_literal():
    lines = [(1, "a.b axb A.B")]

    hits = find_matches(lines, "a.b")

    assert [(m.start, m.end) for m in hits] == [(0, 3), (8, 11)]


def test_line_number_prefix_is_not_searched(panel):
    assert find_matches(panel.code_lines(), "3:") == []
    assert find_matches(panel.code_lines(), "foo")[0].line_number == 3


# ---------------------------------------------------------------------------
# Navigator
# ---------------------------------------------------------------------------

def test_set_term_activates_first_match_without_scrolling(nav, panel):
    nav.set_term("foo")

    state = nav.state
    assert [m.line_number for m in state.matches] == [3, 3, 7, 10]
    assert state.active_index == 0
    assert panel.counter_text == "1 of 4"
    assert panel.scroll_line is None
    assert sum(len(line.spans) for line in panel.lines) == 4


def test_clicked_line_is_used_once_as_reference(nav, panel):
    nav.set_term("foo")
    panel.on_line_clicked = nav.note_clicked_line
    panel.click_line(10)

    first = nav.next()
    assert first.line_number == 3 and first.ordinal == 0
    assert nav.state.last_clicked_line is None
    assert panel.scroll_line == 3

    second = nav.next()
    assert second.line_number == 7


def test_previous_from_clicked_line_wraps_to_end(nav):
    nav.set_term("foo")
    nav.note_clicked_line(3)

    assert nav.previous().line_number == 10
    assert nav.state.counter_text == "4 of 4"


def test_next_from_active_match_skips_rest_of_its_line(nav):
    nav.set_term("foo")

    assert nav.next().ordinal == 2
    assert nav.previous().ordinal == 1


def test_same_term_does_not_reset_navigation(nav):
    nav.set_term("foo")
    nav.next()

    nav.set_term("foo")

    assert nav.state.active_index == 2


def test_blank_term_restores_pristine_text(nav, panel):
    nav.set_term("foo")

    nav.set_term("   ")

    assert nav.state.matches == []
    assert nav.state.active_index == -1
    assert all(not line.spans for line in panel.lines)
    assert panel.counter_text == "0 of 0"


def test_clear_without_prior_search(nav, panel):
    nav.clear()

    assert nav.state.term == ""
    assert panel.counter_text == "0 of 0"


def test_clear_resets_matches_and_counter(nav, panel):
    nav.set_term("foo")
    nav.next()

    nav.clear()

    assert nav.state.matches == []
    assert nav.state.active_index == -1
    assert panel.counter_text == "0 of 0"
    assert all(not line.spans for line in panel.lines)


def test_navigation_reruns_search_after_content_change(nav, panel):
    nav.set_term("foo")
    panel.show_source("pkg/other.py", "x\nfoo\n", target_line=None)
    nav.state.matches.clear()
    nav.state.active_index = -1

    match = nav.next()

    assert match.line_number == 2
    assert panel.scroll_line == 2


def test_navigation_without_term_does_nothing(nav):
    assert nav.next() is None
    assert nav.previous() is None


def test_missing_panel_is_logged_not_raised(caplog):
    nav = SearchNavigator(EngineContext(), lambda: None)

    with caplog.at_level("ERROR"):
        nav.set_term("foo")

    assert nav.state.term == ""
    assert any("not available" in r.getMessage() for r in caplog.records)


def test_navigation_publishes_new_state_through_context(nav):
    nav.set_term("foo")
    before = nav.state

    nav.next()

    assert before.active_index == 0
    assert nav.state is not before
    assert nav.state.active_index == 2
