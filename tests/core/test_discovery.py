import lxml.html

from sourcelens.core.discovery import SourceScanner
from sourcelens.core.models import DirectoryNode, FileNode
from sourcelens.core.page import HostPage


def _scanner(context, page, settings):
    rendered = []
    scanner = SourceScanner(context, page, settings, on_tree_changed=rendered.append)
    return scanner, rendered


def test_collect_merges_structured_and_raw_passes(context, page, settings, sample_map):
    scanner, _ = _scanner(context, page, settings)

    assert scanner.collect() == sample_map


def test_leading_separator_collapses_to_one_key(context, settings):
    page = HostPage.from_html(
        '<div data-source-file="/a/b.js" data-source-line="2">'
        '<span data-source-file="a/b.js" data-source-line="1">x</span></div>'
    )
    scanner, _ = _scanner(context, page, settings)

    assert scanner.collect() == {"a/b.js": (1, 2)}


def test_elements_missing_an_attribute_are_ignored(context, settings):
    page = HostPage.from_html(
        '<div><p data-source-file="a.js">no line</p><p data-source-line="3">no file</p>'
        '<p data-source-file="b.js" data-source-line="0">line zero</p></div>'
    )
    scanner, _ = _scanner(context, page, settings)

    assert scanner.collect() == {}


def test_escaped_attribute_values_are_unescaped(context, settings):
    page = HostPage.from_html('<p data-source-file="src/a&amp;b.js" data-source-line="4">x</p>')
    scanner, _ = _scanner(context, page, settings)

    assert scanner.collect() == {"src/a&b.js": (4,)}


def test_unchanged_document_rebuilds_once(context, page, settings):
    scanner, rendered = _scanner(context, page, settings)

    scanner.scan()
    scanner.scan()

    assert scanner.rebuild_count == 1
    assert len(rendered) == 1
    assert isinstance(context.file_tree, DirectoryNode)
    assert "src" in context.file_tree.children


def test_document_change_triggers_rebuild(context, page, settings):
    scanner, rendered = _scanner(context, page, settings)
    scanner.scan()

    main = page.root.get_element_by_id("main")
    main.append(lxml.html.fragment_fromstring('<b data-source-file="src/New.jsx" data-source-line="9">new</b>'))
    result = scanner.scan()

    assert scanner.rebuild_count == 2
    assert result["src/New.jsx"] == (9,)
    assert context.file_tree.children["src"].children["New.jsx"] == FileNode("src/New.jsx", (9,))
    assert rendered[-1] is context.file_tree


def test_empty_page_yields_empty_tree(context, settings):
    page = HostPage.from_html("<html><body><p>nothing here</p></body></html>")
    scanner, rendered = _scanner(context, page, settings)

    assert scanner.scan() == {}
    assert context.file_tree.children == {}
    assert len(rendered) == 1


def test_disabled_engine_does_not_scan(context, page, settings):
    context.update(enabled=False)
    scanner, rendered = _scanner(context, page, settings)

    assert scanner.scan() == {}
    assert scanner.rebuild_count == 0
    assert rendered == []


def test_invalidate_forces_next_rebuild(context, page, settings):
    scanner, rendered = _scanner(context, page, settings)
    scanner.scan()

    scanner.invalidate()
    scanner.scan()

    assert scanner.rebuild_count == 2


def test_scan_failure_is_logged_and_resets_tree(context, page, settings, monkeypatch, caplog):
    scanner, rendered = _scanner(context, page, settings)
    scanner.scan()

    def broken():
        raise RuntimeError("document unavailable")

    monkeypatch.setattr(page, "serialize", broken)
    with caplog.at_level("ERROR", logger="sourcelens.core.discovery"):
        result = scanner.scan()

    assert result == {}
    assert context.file_tree.children == {}
    assert rendered[-1].children == {}
    assert any("Scan failed" in r.getMessage() for r in caplog.records)
