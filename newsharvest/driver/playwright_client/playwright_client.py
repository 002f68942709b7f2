"""Playwright render client.

Pages are rendered in a real browser and then serialized. Extraction code
never sees a live browser handle:

1. Navigate to the URL and wait for the DOM to be ready
2. Optionally wait for a readiness selector
3. Serialize the DOM with ``page.content()``
4. Return a RenderedPage that parses into an LxmlPageElement

One browser context is shared by every render of a run; each render gets
its own page, so concurrent renders do not interfere. Heavy resources
(images, media, fonts, stylesheets, ad and analytics scripts) are blocked
at the routing layer.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import urlsplit

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Route,
    async_playwright,
)
from playwright.async_api import (
    Error as PlaywrightError,
)
from playwright.async_api import (
    TimeoutError as PlaywrightTimeoutError,
)

from newsharvest.common.exceptions import (
    NavigationException,
    NavigationTimeoutException,
)
from newsharvest.common.selector_utils import (
    can_playwright_wait,
    first_selector,
    playwright_selector,
)
from newsharvest.config import BrowserConfig
from newsharvest.data_types import RenderedPage

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


class RenderClient(Protocol):
    """Anything that can turn a URL into a rendered DOM snapshot.

    Implementations raise TransientException subclasses for acquisition
    failures so that callers can retry them.
    """

    async def render(
        self,
        url: str,
        timeout_ms: int,
        ready_selector: str | None = None,
        ready_timeout_ms: int | None = None,
    ) -> RenderedPage: ...


def should_block(resource_type: str, url: str, config: BrowserConfig) -> bool:
    """Decide whether a browser subrequest is aborted.

    Args:
        resource_type: Playwright resource type ("image", "script", ...).
        url: Request URL.
        config: Blocking settings.

    Returns:
        True if the request should be aborted.
    """
    if resource_type in config.blocked_resource_types:
        return True
    if any(pattern in url for pattern in config.blocked_url_patterns):
        return True
    if config.block_stylesheets and (
        resource_type == "stylesheet"
        or urlsplit(url).path.endswith(".css")
    ):
        return True
    return False


class PlaywrightRenderClient:
    """Render client backed by a Playwright browser context.

    Args:
        browser_context: Context shared by every render.
        config: Browser and blocking settings.

    Example:
        async with PlaywrightRenderClient.open(BrowserConfig()) as client:
            page = await client.render("https://example.com/news", 60000)
            document = page.document()
    """

    def __init__(
        self, browser_context: BrowserContext, config: BrowserConfig
    ) -> None:
        self.browser_context = browser_context
        self.config = config

    @classmethod
    @asynccontextmanager
    async def open(
        cls, config: BrowserConfig | None = None
    ) -> AsyncIterator[PlaywrightRenderClient]:
        """Start a browser and yield a render client bound to it.

        The context, browser and Playwright instance are torn down in
        reverse order on exit, even if the body raises.
        """
        config = config or BrowserConfig()
        playwright = await async_playwright().start()
        try:
            browser_launcher = getattr(playwright, config.browser_type)
            browser: Browser = await browser_launcher.launch(
                headless=config.headless
            )
            try:
                context_kwargs: dict[str, Any] = {
                    "viewport": {
                        "width": config.viewport_width,
                        "height": config.viewport_height,
                    },
                    "locale": config.locale,
                }
                if config.user_agent:
                    context_kwargs["user_agent"] = config.user_agent

                browser_context = await browser.new_context(**context_kwargs)
                try:
                    yield cls(browser_context, config)
                finally:
                    await browser_context.close()
            finally:
                await browser.close()
        finally:
            await playwright.stop()

    async def _route(self, route: Route) -> None:
        request = route.request
        if should_block(request.resource_type, request.url, self.config):
            await route.abort()
        else:
            await route.continue_()

    async def render(
        self,
        url: str,
        timeout_ms: int,
        ready_selector: str | None = None,
        ready_timeout_ms: int | None = None,
    ) -> RenderedPage:
        """Navigate to ``url`` and snapshot the DOM.

        A readiness selector that never appears is not an error: the page
        is snapshotted as-is and the cascades decide what they can find.

        Raises:
            NavigationTimeoutException: If navigation exceeds ``timeout_ms``.
            NavigationException: If the browser reports any other failure.
        """
        page: Page | None = None
        try:
            page = await self.browser_context.new_page()
            await page.route("**/*", self._route)
            await page.goto(
                url, wait_until="domcontentloaded", timeout=timeout_ms
            )

            if ready_selector:
                await self._wait_ready(
                    page,
                    first_selector(ready_selector),
                    ready_timeout_ms
                    if ready_timeout_ms is not None
                    else self.config.ready_timeout_ms,
                )

            html_content = await page.content()
            logger.debug(
                f"Rendered {url} ({len(html_content)} chars)",
                extra={"url": url, "final_url": page.url},
            )
            return RenderedPage(
                url=page.url or url, html=html_content, requested_url=url
            )

        except PlaywrightTimeoutError as e:
            logger.warning(f"Playwright timeout for {url}: {e}")
            raise NavigationTimeoutException(url, timeout_ms) from e

        except PlaywrightError as e:
            logger.warning(f"Playwright error for {url}: {e.message}")
            raise NavigationException(url, e.message) from e

        finally:
            if page is not None:
                await page.close()

    async def _wait_ready(
        self, page: Page, selector: str, timeout_ms: int
    ) -> None:
        if not can_playwright_wait(selector):
            logger.debug(f"Cannot wait on selector {selector!r}, skipping")
            return
        try:
            await page.wait_for_selector(
                playwright_selector(selector), timeout=timeout_ms
            )
        except PlaywrightTimeoutError:
            logger.warning(
                f"Selector {selector!r} did not appear within {timeout_ms}ms "
                f"on {page.url}, continuing with the current DOM"
            )
