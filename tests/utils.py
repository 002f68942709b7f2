"""Test utilities for the harvest pipeline tests.

This module provides an in-memory render client and small helpers so that
pipeline stages can be tested against HTML strings without a browser.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from newsharvest.common.exceptions import (
    NavigationException,
    NavigationTimeoutException,
)
from newsharvest.common.lxml_page_element import LxmlPageElement
from newsharvest.data_types import ArticleStub, RenderedPage

logger = logging.getLogger(__name__)


class FakeRenderClient:
    """Render client serving HTML strings from a dict.

    Args:
        pages: Map of URL to HTML.
        failures: Map of URL to the number of leading attempts that time
            out before the page is served.
        delay: Seconds each render sleeps, to force task interleaving.

    Unknown URLs fail with NavigationException on every attempt.

    Example:
        client = FakeRenderClient({"https://x/": "<html>...</html>"})
        page = await client.render("https://x/", 1000)
        assert client.attempts("https://x/") == 1
    """

    def __init__(
        self,
        pages: dict[str, str],
        failures: dict[str, int] | None = None,
        delay: float = 0,
    ) -> None:
        self.pages = pages
        self.failures = dict(failures or {})
        self.delay = delay
        self.calls: list[str] = []
        self.ready_selectors: list[str | None] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def attempts(self, url: str) -> int:
        return self.calls.count(url)

    async def render(
        self,
        url: str,
        timeout_ms: int,
        ready_selector: str | None = None,
        ready_timeout_ms: int | None = None,
    ) -> RenderedPage:
        self.calls.append(url)
        self.ready_selectors.append(ready_selector)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if self.failures.get(url, 0) > 0:
                self.failures[url] -= 1
                raise NavigationTimeoutException(url, timeout_ms)
            if url not in self.pages:
                raise NavigationException(url, "net::ERR_NAME_NOT_RESOLVED")
            return RenderedPage(url=url, html=self.pages[url], requested_url=url)
        finally:
            self.in_flight -= 1


def document(content: str, url: str = "https://news.example.com/") -> LxmlPageElement:
    """Parse an HTML string into a document element."""
    return LxmlPageElement.from_html(content, url)


def stub(path: str, title: str = "Title", **kwargs: Any) -> ArticleStub:
    """Build a stub for a path on the test site."""
    return ArticleStub(
        title=title, url=f"https://news.example.com{path}", **kwargs
    )


def collect_progress() -> tuple[Callable[[Any], Awaitable[None]], list[Any]]:
    """Create an async progress callback that collects events in a list.

    Returns:
        A tuple of (async_callback_function, events_list).
    """
    events: list[Any] = []

    async def callback(event: Any) -> None:
        events.append(event)

    return callback, events
