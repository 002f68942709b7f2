"""Run configuration.

Configuration is plain data validated with pydantic. Files are JSON and may
use either snake_case or camelCase keys (``max_articles`` or
``maxArticles``). Selector cascades are part of the configuration; the
pipeline code is site-agnostic.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from newsharvest.common.cascade import (
    ContentCascade,
    ListingCascade,
    SectionCascade,
)
from newsharvest.common.classifier import DEFAULT_CATEGORY

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="forbid",
    )


class RetryPolicy(_ConfigModel):
    """Retry budget for a single navigation call.

    Attributes:
        max_attempts: Total attempts including the first (at least 1).
        delay_ms: Pause between attempts in milliseconds.
    """

    max_attempts: int = Field(3, ge=1)
    delay_ms: int = Field(1000, ge=0)


class BrowserConfig(_ConfigModel):
    """Settings for the Playwright render client."""

    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    headless: bool = True
    user_agent: str | None = DEFAULT_USER_AGENT
    viewport_width: int = Field(1280, gt=0)
    viewport_height: int = Field(720, gt=0)
    locale: str = "ru-RU"
    blocked_resource_types: frozenset[str] = frozenset(
        {"image", "media", "font"}
    )
    blocked_url_patterns: tuple[str, ...] = ("advertising", "analytics")
    block_stylesheets: bool = True
    ready_timeout_ms: int = Field(10000, ge=0)


class OutputConfig(_ConfigModel):
    """Where the run writes its files. A None path disables that output."""

    json_path: Path | None = Path("articles.json")
    csv_path: Path | None = Path("articles.csv")
    failed_path: Path | None = Path("failed-articles.json")
    stats_path: Path | None = Path("parsing-stats.json")
    error_log_path: Path | None = Path("error-log.txt")
    csv_bom: bool = True


class SelectorConfig(_ConfigModel):
    listing: ListingCascade = ListingCascade()
    detail: ContentCascade = ContentCascade()
    sections: SectionCascade = SectionCascade()


class HarvestConfig(_ConfigModel):
    """Everything a harvest run needs.

    Attributes:
        url: Listing page to harvest.
        fallback_urls: Listing pages tried in order when ``url`` yields no
            articles.
        site_name: Author used when an article names none.
        max_articles: Keep at most this many stubs, in discovery order.
        categories: Category filter terms; empty keeps everything.
        timeout_ms: Navigation timeout for listing pages.
        article_timeout_ms: Navigation timeout for article pages.
        retry_policy: Retry budget per navigation.
        selectors: Listing, detail and section cascades.
        category_rules: Ordered ``(url_substring, label)`` rules.
        default_category: Label when no rule matches.
        fetch_details: Visit each article page; False keeps listing data only.
        concurrency: Maximum detail fetches in flight at once.
        debug_dir: Save HTML snapshots here when set.
        debug_article_limit: Snapshot only the first N article pages.
    """

    url: str
    fallback_urls: tuple[str, ...] = ()
    site_name: str = ""
    max_articles: int = Field(10, gt=0)
    categories: frozenset[str] = frozenset()
    timeout_ms: int = Field(60000, gt=0)
    article_timeout_ms: int = Field(30000, gt=0)
    retry_policy: RetryPolicy = RetryPolicy()
    selectors: SelectorConfig = SelectorConfig()
    category_rules: tuple[tuple[str, str], ...] = ()
    default_category: str = DEFAULT_CATEGORY
    fetch_details: bool = True
    concurrency: int = Field(4, ge=1)
    debug_dir: Path | None = None
    debug_article_limit: int = Field(3, ge=0)
    outputs: OutputConfig = OutputConfig()
    browser: BrowserConfig = BrowserConfig()

    @property
    def listing_urls(self) -> list[str]:
        """Primary listing URL followed by fallbacks, without repeats."""
        urls: list[str] = []
        for url in (self.url, *self.fallback_urls):
            if url not in urls:
                urls.append(url)
        return urls

    def with_overrides(self, **overrides: Any) -> HarvestConfig:
        """Return a validated copy with top-level fields replaced.

        None values are ignored, so CLI options that were not given leave
        the configuration untouched.
        """
        data = self.model_dump()
        data.update(
            {key: value for key, value in overrides.items() if value is not None}
        )
        return HarvestConfig.model_validate(data)


def load_config(path: str | Path) -> HarvestConfig:
    """Load and validate a JSON configuration file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        pydantic.ValidationError: If the configuration is invalid.
    """
    text = Path(path).read_text(encoding="utf-8")
    return HarvestConfig.model_validate_json(text)
