from sourcelens.config.settings import EngineSettings
from sourcelens.core.context import EngineContext
from sourcelens.core.models import DirectoryNode
from sourcelens.ui.panel_controller import PanelController


def make_controller(**settings):
    ctx = EngineContext()
    return ctx, PanelController(ctx, EngineSettings(**settings))


def test_getters_follow_lifecycle():
    ctx, panels = make_controller()
    assert panels.get_tree_view() is None

    panels.initialize()
    tree_view = panels.get_tree_view()
    assert tree_view is not None
    assert panels.get_source_panel() is not None
    assert ctx.initialized

    panels.initialize()
    assert panels.get_tree_view() is tree_view

    panels.teardown()
    assert panels.get_tree_view() is None
    assert panels.get_source_panel() is None
    assert not ctx.initialized


def test_render_without_container_logs_error(caplog):
    _ctx, panels = make_controller()

    with caplog.at_level("ERROR"):
        assert not panels.render_tree(DirectoryNode(path=""))

    assert "tree container is missing" in caplog.text


def test_tree_view_uses_configured_geometry():
    _ctx, panels = make_controller(tree_row_height=24, tree_visible_height=240)
    panels.initialize()

    assert panels.get_tree_view().row_height == 24
    assert panels.get_tree_view().visible_height == 240


def test_resize_is_clamped():
    ctx, panels = make_controller(panel_min_width=200, panel_max_width_ratio=0.8)

    assert panels.resize_right_panel(100, 1000) == 475
    assert panels.resize_right_panel(1000, 1000) == 800
    assert panels.resize_right_panel(-5000, 1000) == 200
    assert ctx.panel_geometry.right_panel_width == 200


def test_tabs_and_height():
    ctx, panels = make_controller()

    panels.set_active_tab("aiChat")
    panels.set_active_tab("settings")
    panels.set_panel_height("30%")

    assert ctx.active_tab == "aiChat"
    assert ctx.panel_geometry.height == "30%"


def test_configured_geometry_seeds_context():
    ctx, panels = make_controller(panel_height="30%", panel_right_width=420)

    assert ctx.panel_geometry.height == "30%"
    assert ctx.panel_geometry.right_panel_width == 420

    panels.initialize()
    panels.resize_right_panel(-20, 1000)
    panels.teardown()
    panels.initialize()
    assert ctx.panel_geometry.right_panel_width == 400


def test_sash_position_leaves_stored_width_clamped():
    _ctx, panels = make_controller(panel_right_width=300, panel_min_width=200, panel_max_width_ratio=0.5)

    assert panels.sash_position(1000) == 700
    assert panels.sash_position(500) == 250
