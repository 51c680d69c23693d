import pytest

from sourcelens.core.context import ElementRef, EngineContext
from sourcelens.core.models import DirectoryNode, DisplayedSource, FileNode, LockMode, PanelGeometry, SearchState


def test_entering_a_lock_clears_the_other_subjects(page):
    ctx = EngineContext()
    el = page.root.get_element_by_id("title")
    ctx.update(hovered_ref=ElementRef(el))

    ctx.update(lock_mode=LockMode.ELEMENT_LOCKED, locked_element_ref=ElementRef(el))
    assert ctx.hovered_ref is None

    ctx.update(lock_mode=LockMode.FILE_LOCKED, locked_file_path="src/App.jsx")
    assert ctx.locked_element_ref is None
    assert ctx.locked_file_path == "src/App.jsx"

    ctx.update(lock_mode=LockMode.IDLE)
    assert ctx.locked_file_path is None


def test_unknown_field_is_rejected():
    with pytest.raises(AttributeError):
        EngineContext().update(lockmode=LockMode.IDLE)


def test_navigation_reset_keeps_locks_and_geometry():
    ctx = EngineContext()
    ctx.update(
        enabled=True,
        lock_mode=LockMode.FILE_LOCKED,
        locked_file_path="a.js",
        file_tree=DirectoryNode("", {"a.js": FileNode("a.js", (1,))}),
        source_map={"a.js": (1,)},
        search=SearchState(term="x"),
        panel_geometry=PanelGeometry(height="40%", right_panel_width=420),
    )

    ctx.reset_for_navigation()

    assert ctx.file_tree.children == {}
    assert ctx.source_map == {}
    assert ctx.search.term == ""
    assert ctx.enabled
    assert ctx.locked_file_path == "a.js"
    assert ctx.panel_geometry.right_panel_width == 420


def test_teardown_invalidates_pending_fetches():
    ctx = EngineContext()
    token = ctx.next_fetch_token()
    ctx.update(enabled=True, displayed=DisplayedSource("a.js", "x"))

    ctx.teardown()

    assert not ctx.is_current_fetch(token)
    assert not ctx.enabled
    assert ctx.displayed_source() is None


def test_element_ref_resolves_only_while_attached(page):
    el = page.root.get_element_by_id("title")
    ref = ElementRef(el)

    assert ref.resolve(page) is el
    assert ref.refers_to(el)
    assert not ref.refers_to(page.root.get_element_by_id("header"))

    page.navigate("https://console.example/other", "<html><body></body></html>")

    assert ref.resolve(page) is None


def test_displayed_source_is_read_only_snapshot():
    ctx = EngineContext()
    ctx.update(displayed=DisplayedSource("a.js", "text"))

    snapshot = ctx.displayed_source()

    assert (ctx.displayed_path, ctx.displayed_text) == ("a.js", "text")
    with pytest.raises(Exception):
        snapshot.text = "changed"
