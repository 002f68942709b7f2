"""LxmlPageElement implementation of the PageElement protocol.

This is the standard document handle returned by every render client. It
wraps an lxml HtmlElement, validates result counts, and resolves relative
URLs against the document URL.
"""

from __future__ import annotations

from urllib.parse import urljoin

from lxml import etree, html
from lxml.html import HtmlElement

from newsharvest.common.exceptions import (
    HTMLStructuralAssumptionException,
)
from newsharvest.common.selector_utils import is_xpath

_VISIBLE_TEXT = ".//text()[not(ancestor::script) and not(ancestor::style)]"

_BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "br", "dd", "div",
        "dl", "dt", "figcaption", "figure", "footer", "h1", "h2", "h3",
        "h4", "h5", "h6", "header", "hr", "li", "main", "nav", "ol", "p",
        "pre", "section", "table", "td", "th", "tr", "ul",
    }
)


class LxmlPageElement:
    """PageElement backed by a parsed lxml tree.

    Attributes:
        _element: The underlying lxml HtmlElement.
        _url: The document URL, used for error context and URL resolution.
    """

    def __init__(self, element: HtmlElement, url: str = "") -> None:
        self._element = element
        self._url = url

    @classmethod
    def from_html(cls, content: str, url: str = "") -> LxmlPageElement:
        """Parse an HTML string into a document-level element.

        Args:
            content: Serialized HTML, typically ``page.content()``.
            url: URL the HTML was rendered from.

        Returns:
            LxmlPageElement wrapping the document root.
        """
        if not content.strip():
            content = "<html></html>"
        return cls(html.document_fromstring(content), url)

    @property
    def url(self) -> str:
        return self._url

    def _check_count(
        self,
        selector: str,
        selector_type: str,
        description: str,
        actual_count: int,
        min_count: int,
        max_count: int | None,
    ) -> None:
        if actual_count < min_count or (
            max_count is not None and actual_count > max_count
        ):
            raise HTMLStructuralAssumptionException(
                selector=selector,
                selector_type=selector_type,
                description=description,
                expected_min=min_count,
                expected_max=max_count,
                actual_count=actual_count,
                request_url=self._url,
            )

    def query(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[LxmlPageElement]:
        if is_xpath(selector):
            return self.query_xpath(selector, description, min_count, max_count)
        return self.query_css(selector, description, min_count, max_count)

    def query_xpath(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[LxmlPageElement]:
        """Query elements by XPath selector.

        Non-element results (strings, numbers) are filtered out.

        Raises:
            HTMLStructuralAssumptionException: If the expression is invalid or
                the count doesn't match expectations.
        """
        try:
            results = self._element.xpath(selector)
        except etree.XPathError as e:
            raise HTMLStructuralAssumptionException(
                selector=selector,
                selector_type="xpath",
                description=description,
                expected_min=min_count,
                expected_max=max_count,
                actual_count=0,
                request_url=self._url,
            ) from e

        if not isinstance(results, list):
            results = []
        elements = [
            LxmlPageElement(r, self._url)
            for r in results
            if isinstance(r, HtmlElement)
        ]
        self._check_count(
            selector, "xpath", description, len(elements), min_count, max_count
        )
        return elements

    def query_css(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[LxmlPageElement]:
        """Query elements by CSS selector.

        Raises:
            HTMLStructuralAssumptionException: If the selector is invalid or
                the count doesn't match expectations.
        """
        # lxml's cssselect() raises cssselect's own error types for bad input
        try:
            results = self._element.cssselect(selector)
        except Exception as e:
            raise HTMLStructuralAssumptionException(
                selector=selector,
                selector_type="css",
                description=description,
                expected_min=min_count,
                expected_max=max_count,
                actual_count=0,
                request_url=self._url,
            ) from e

        self._check_count(
            selector, "css", description, len(results), min_count, max_count
        )
        return [LxmlPageElement(r, self._url) for r in results]

    def inner_text(self) -> str:
        """Approximate the browser's innerText.

        Script and style text is dropped, runs of spaces collapse, and blank
        lines are removed. The result is stripped.
        """
        chunks: list[str] = []
        for piece in self._element.xpath(_VISIBLE_TEXT):
            owner = piece.getparent()
            owner_tag = (
                owner.tag.lower()
                if owner is not None and isinstance(owner.tag, str)
                else ""
            )
            # Text starting or following a block element begins a new line
            if owner_tag in _BLOCK_TAGS:
                chunks.append("\n")
            chunks.append(str(piece))
        lines = (
            " ".join(line.split()) for line in "".join(chunks).splitlines()
        )
        return "\n".join(line for line in lines if line)

    def get_attribute(self, name: str) -> str | None:
        return self._element.get(name)

    def parent(self) -> LxmlPageElement | None:
        parent = self._element.getparent()
        if parent is None:
            return None
        return LxmlPageElement(parent, self._url)

    def absolute_url(self, href: str) -> str:
        return urljoin(self._url, href.strip())
