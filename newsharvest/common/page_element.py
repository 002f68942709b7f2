"""PageElement protocol for read-only extraction from rendered documents.

PageElement is always backed by static parsed HTML (LXML). The render client
is responsible for obtaining the HTML by serializing a rendered Playwright
DOM; extraction code never touches the live browser.
"""

from __future__ import annotations

from typing import Protocol


class PageElement(Protocol):
    """Protocol for querying a DOM snapshot.

    Query methods validate result counts and raise
    HTMLStructuralAssumptionException if the actual count doesn't match
    expectations. Pass ``min_count=0`` for queries where nothing found is an
    acceptable outcome.
    """

    @property
    def url(self) -> str:
        """URL of the document this element belongs to."""
        ...

    def query(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[PageElement]:
        """Query elements by CSS or XPath, chosen from the selector's shape.

        Args:
            selector: CSS selector, or XPath expression starting with ``/``,
                ``./`` or ``(``.
            description: Human-readable description of what's being selected.
            min_count: Minimum number of elements expected (default: 1).
            max_count: Maximum number of elements expected (None = unlimited).

        Returns:
            List of matching PageElement instances in document order.

        Raises:
            HTMLStructuralAssumptionException: If count doesn't match
                expectations or the selector is invalid.
        """
        ...

    def query_css(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[PageElement]:
        """Query elements by CSS selector."""
        ...

    def query_xpath(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[PageElement]:
        """Query elements by XPath selector."""
        ...

    def inner_text(self) -> str:
        """Visible text: script/style excluded, whitespace normalized per line."""
        ...

    def get_attribute(self, name: str) -> str | None:
        """Value of an attribute, or None if it doesn't exist."""
        ...

    def parent(self) -> PageElement | None:
        """The parent element, or None at the document root."""
        ...

    def absolute_url(self, href: str) -> str:
        """Resolve a possibly relative URL against the document URL."""
        ...
