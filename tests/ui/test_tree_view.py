import pytest

from sourcelens.core.models import DirectoryNode
from sourcelens.core.tree_builder import build_file_tree
from sourcelens.ui.tree_view import (
    EMPTY_MESSAGE,
    LOCK_ICON,
    NODE_SELECTED,
    TREE_FILE_HOVER_SELECTED,
    TREE_FILE_SELECTED,
    FileTreeView,
    centered_scroll_top,
)


@pytest.fixture
def view(sample_map):
    clicked = []
    v = FileTreeView(row_height=20, visible_height=40, on_file_clicked=clicked.append)
    v.clicked = clicked
    v.render(build_file_tree(sample_map))
    return v


def test_rows_follow_directories_first_order(view):
    assert [(row.depth, row.name) for row in view.rows] == [
        (0, "src"),
        (1, "components"),
        (2, "Header.jsx"),
        (2, "Search.jsx"),
        (1, "legacy"),
        (2, "Old.jsx"),
        (1, "App.jsx"),
    ]
    assert view.file_row("src/App.jsx").label == "App.jsx (2 loc)"


def test_empty_tree_shows_message():
    view = FileTreeView()
    view.render(DirectoryNode(path=""))

    assert view.is_empty
    assert view.empty_message == EMPTY_MESSAGE


def test_collapsing_directory_hides_descendants(view):
    view.toggle_directory("src/components")

    names = [row.name for row in view.visible_rows()]
    assert "Header.jsx" not in names
    assert "legacy" in names

    view.toggle_directory("src/components")
    assert len(view.visible_rows()) == 7


def test_hover_mark_uses_transient_style(view):
    assert view.mark_file("src/components/Header.jsx", hover=True)

    row = view.file_row("src/components/Header.jsx")
    assert row.classes == {TREE_FILE_HOVER_SELECTED, NODE_SELECTED}
    assert not row.lock_icon


def test_lock_mark_adds_icon_and_expands_ancestors(view):
    view.toggle_directory("src/legacy")

    view.mark_file("src/legacy/Old.jsx", hover=False)

    row = view.file_row("src/legacy/Old.jsx")
    assert view.dir_row("src/legacy").expanded
    assert row.classes == {TREE_FILE_SELECTED, NODE_SELECTED}
    assert row.label.endswith(LOCK_ICON)


def test_mark_centers_row_in_viewport(view):
    view.mark_file("src/components/Header.jsx", hover=True)
    assert view.scroll_top == 30

    view.mark_file("src/App.jsx", hover=False)
    assert view.scroll_top == 100


def test_unknown_file_is_not_marked(view, caplog):
    with caplog.at_level("WARNING"):
        assert not view.mark_file("src/Nope.jsx", hover=False)

    assert "file row not found" in caplog.text


def test_clearing_removes_styles_and_icons(view):
    view.mark_file("src/App.jsx", hover=False)
    view.mark_file("src/components/Header.jsx", hover=True)

    view.clear_selection()
    view.remove_lock_icons()

    assert all(not row.classes and not row.lock_icon for row in view.rows)


def test_file_click_reports_path(view):
    view.click_file("src/App.jsx")
    view.click_file("src")

    assert view.clicked == ["src/App.jsx"]


def test_collapse_clamps_scroll(view):
    view.mark_file("src/App.jsx", hover=False)

    view.toggle_directory("src")

    assert view.scroll_top == 0


@pytest.mark.parametrize(
    "offset, expected",
    [(0, 0), (200, 160), (1000, 600)],
)
def test_centered_scroll_top_is_clamped(offset, expected):
    assert centered_scroll_top(offset, 20, 100, 700) == expected
