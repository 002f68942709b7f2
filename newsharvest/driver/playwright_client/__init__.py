"""Playwright-based render client for JavaScript-heavy news sites.

Pages are rendered in a browser and returned as DOM snapshots, so extraction
code stays pure and can be tested against saved HTML.
"""

from newsharvest.driver.playwright_client.playwright_client import (
    PlaywrightRenderClient,
    RenderClient,
    should_block,
)

__all__ = ["PlaywrightRenderClient", "RenderClient", "should_block"]
