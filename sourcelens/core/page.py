from __future__ import annotations

"""Host page model.

`HostPage` wraps the live document as an ``lxml.html`` tree. The engine never
owns page elements: it keeps references, and before acting on one it asks the
page whether the element is still attached to the current document.
"""

import logging
from typing import Iterator, List, Optional

import lxml.html
from lxml import etree as ET

from .models import SourceLocation, normalize_path

logger = logging.getLogger(__name__)

__all__ = ["HostPage", "TEXT_ENTRY_TAGS"]

TEXT_ENTRY_TAGS = frozenset({"input", "textarea", "select"})


class HostPage:
    """The document the engine correlates against.

    Parameters
    ----------
    root
        Root ``lxml.html`` element of the document.
    url
        Current location of the page.
    """

    def __init__(self, root: lxml.html.HtmlElement, url: str = "about:blank") -> None:
        self._root = root
        self.url = url
        self.focused: Optional[lxml.html.HtmlElement] = None
        self.scrolled_to: Optional[lxml.html.HtmlElement] = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def from_html(cls, markup: str, url: str = "about:blank") -> "HostPage":
        return cls(lxml.html.document_fromstring(markup), url)

    @classmethod
    def from_file(cls, path: str) -> "HostPage":
        root = lxml.html.parse(path).getroot()
        return cls(root, url=f"file://{path}")

    @property
    def root(self) -> lxml.html.HtmlElement:
        return self._root

    # ------------------------------------------------------------------
    # Document access
    # ------------------------------------------------------------------
    def serialize(self) -> str:
        """Full serialized markup, as a raw-text scan sees it."""
        return lxml.html.tostring(self._root, encoding="unicode")

    def annotated_elements(self, file_attr: str, line_attr: str) -> List[lxml.html.HtmlElement]:
        return self._root.xpath(f"//*[@{file_attr} and @{line_attr}]")

    def location_of(
        self, element: Optional[ET._Element], file_attr: str, line_attr: str
    ) -> Optional[SourceLocation]:
        if element is None or not isinstance(element.tag, str):
            return None
        return SourceLocation.from_attributes(element.get(file_attr), element.get(line_attr))

    def elements_for_file(self, path: str, file_attr: str) -> List[lxml.html.HtmlElement]:
        """Every element whose normalized source path equals *path*."""
        wanted = normalize_path(path)
        return [
            el for el in self._root.xpath(f"//*[@{file_attr}]")
            if normalize_path(el.get(file_attr, "").strip()) == wanted
        ]

    def lines_for_file(self, path: str, file_attr: str, line_attr: str) -> List[int]:
        lines = set()
        for el in self.elements_for_file(path, file_attr):
            loc = SourceLocation.from_attributes(el.get(file_attr), el.get(line_attr))
            if loc is not None:
                lines.add(loc.line_number)
        return sorted(lines)

    def is_attached(self, element: Optional[ET._Element]) -> bool:
        if element is None:
            return False
        return element.getroottree().getroot() is self._root

    def elements_with_class(self, class_name: str) -> Iterator[lxml.html.HtmlElement]:
        expr = f"//*[contains(concat(' ', normalize-space(@class), ' '), ' {class_name} ')]"
        return iter(self._root.xpath(expr))

    def is_text_entry(self, element: Optional[ET._Element]) -> bool:
        """True for controls where key presses belong to the user's typing."""
        if element is None or not isinstance(element.tag, str):
            return False
        if element.tag.lower() in TEXT_ENTRY_TAGS:
            return True
        editable = element.get("contenteditable")
        return editable is not None and editable.strip().lower() != "false"

    # ------------------------------------------------------------------
    # Viewport / navigation
    # ------------------------------------------------------------------
    def scroll_into_view(self, element: lxml.html.HtmlElement) -> None:
        self.scrolled_to = element
        logger.debug("Scrolled page element <%s> into view", element.tag)

    def navigate(self, url: str, markup: Optional[str] = None) -> None:
        """Move to *url*; with *markup*, the document is replaced too."""
        self.url = url
        if markup is not None:
            self._root = lxml.html.document_fromstring(markup)
            self.focused = None
            self.scrolled_to = None
