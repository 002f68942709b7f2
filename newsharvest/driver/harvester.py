"""Harvest orchestration.

A run is a single fork/join:

1. Acquire the listing page (primary URL, then fallbacks) and parse stubs
2. Fan out one detail fetch per stub, joined in listing order
3. Enrich every record
4. Compute aggregate statistics

Per-article failures are isolated into degraded records. Failing to acquire
any listing page aborts the run with ListingUnavailableException, since
there is no unit of work left to isolate.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from newsharvest.common.classifier import CategoryClassifier
from newsharvest.common.enrichment import (
    DEFAULT_TRANSFORMS,
    Transform,
    enrich_all,
)
from newsharvest.common.error_log import ErrorLog
from newsharvest.common.exceptions import (
    ListingUnavailableException,
    TransientException,
)
from newsharvest.common.serialization import (
    write_csv,
    write_json,
    write_stats,
)
from newsharvest.config import HarvestConfig, OutputConfig
from newsharvest.data_types import ArticleRecord, ArticleStub
from newsharvest.driver.detail_fetcher import DetailFetcher, ProgressCallback
from newsharvest.driver.listing import ListingExtractor
from newsharvest.driver.playwright_client import RenderClient

logger = logging.getLogger(__name__)


@dataclass
class HarvestStats:
    """Aggregate counters for a finished run.

    Attributes:
        total_articles: Number of records produced.
        articles_with_content: Records with non-empty content.
        articles_with_tags: Records with at least one tag.
        articles_with_images: Records with an image URL.
        articles_with_videos: Records flagged as having video.
        categories_count: ``(label, count)`` pairs in first-seen order.
        sentiment_stats: Record counts per sentiment label.
        execution_time_ms: Wall time of the run.
        degraded_articles: Records whose detail fetch failed.
    """

    total_articles: int = 0
    articles_with_content: int = 0
    articles_with_tags: int = 0
    articles_with_images: int = 0
    articles_with_videos: int = 0
    categories_count: list[tuple[str, int]] = field(default_factory=list)
    sentiment_stats: dict[str, int] = field(
        default_factory=lambda: {"positive": 0, "negative": 0, "neutral": 0}
    )
    execution_time_ms: int = 0
    degraded_articles: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "totalArticles": self.total_articles,
            "articlesWithContent": self.articles_with_content,
            "articlesWithTags": self.articles_with_tags,
            "articlesWithImages": self.articles_with_images,
            "articlesWithVideos": self.articles_with_videos,
            "categoriesCount": [
                [label, count] for label, count in self.categories_count
            ],
            "sentimentStats": dict(self.sentiment_stats),
            "executionTimeMs": self.execution_time_ms,
            "degradedArticles": self.degraded_articles,
        }


def compute_stats(
    records: Sequence[ArticleRecord], execution_time_ms: int = 0
) -> HarvestStats:
    """Count what a run produced."""
    sentiments = {"positive": 0, "negative": 0, "neutral": 0}
    for record in records:
        if record.sentiment is not None:
            label = record.sentiment.sentiment
            sentiments[label] = sentiments.get(label, 0) + 1

    categories = Counter(record.category for record in records)
    return HarvestStats(
        total_articles=len(records),
        articles_with_content=sum(1 for r in records if r.content),
        articles_with_tags=sum(1 for r in records if r.tags),
        articles_with_images=sum(1 for r in records if r.image_url),
        articles_with_videos=sum(1 for r in records if r.has_video),
        categories_count=list(categories.items()),
        sentiment_stats=sentiments,
        execution_time_ms=execution_time_ms,
        degraded_articles=sum(1 for r in records if r.is_degraded),
    )


@dataclass
class HarvestResult:
    """Records and statistics of a finished run.

    Attributes:
        records: Records in listing order, degraded ones included.
        stats: Aggregate counters.
        listing_url: The listing page the stubs came from.
    """

    records: list[ArticleRecord]
    stats: HarvestStats
    listing_url: str

    @property
    def degraded(self) -> list[ArticleRecord]:
        return [record for record in self.records if record.is_degraded]


class Harvester:
    """Run the harvest pipeline for one configuration.

    Args:
        config: Run configuration.
        render_client: Client used for every page render.
        transforms: Enrichment transforms applied in order.
        error_log: Failure log; defaults to one appending to
            ``config.outputs.error_log_path``.
        on_progress: Awaited once per completed article.

    Example:
        async with PlaywrightRenderClient.open(config.browser) as client:
            result = await Harvester(config, client).run()
        write_outputs(result, config.outputs)
    """

    def __init__(
        self,
        config: HarvestConfig,
        render_client: RenderClient,
        transforms: Sequence[Transform] = DEFAULT_TRANSFORMS,
        error_log: ErrorLog | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self.render_client = render_client
        self.transforms = tuple(transforms)
        self.error_log = (
            error_log
            if error_log is not None
            else ErrorLog(config.outputs.error_log_path)
        )
        self.on_progress = on_progress
        self.classifier = CategoryClassifier(
            config.category_rules, config.default_category
        )
        self.listing = ListingExtractor(
            render_client,
            config.selectors.listing,
            config.retry_policy,
            config.timeout_ms,
            classifier=self.classifier,
            category_filter=config.categories,
            max_articles=config.max_articles,
            debug_dir=config.debug_dir,
        )
        self.details = DetailFetcher(
            render_client,
            config.selectors.detail,
            config.retry_policy,
            config.article_timeout_ms,
            classifier=self.classifier,
            site_name=config.site_name,
            concurrency=config.concurrency,
            error_log=self.error_log,
            on_progress=on_progress,
            debug_dir=config.debug_dir,
            debug_article_limit=config.debug_article_limit,
        )

    async def acquire_listing(self) -> tuple[str, list[ArticleStub]]:
        """Try each listing URL in order until one yields stubs.

        A page that loads but holds no articles moves on to the next URL.
        If none yields stubs, the first page that loaded is reported with
        an empty stub list.

        Raises:
            ListingUnavailableException: If no listing page could be loaded.
        """
        urls = self.config.listing_urls
        first_loaded: str | None = None
        last_error: TransientException | None = None

        for url in urls:
            try:
                stubs = await self.listing.extract(url)
            except TransientException as e:
                self.error_log.record("Failed to load listing page", e, url=url)
                last_error = e
                continue

            if stubs:
                return url, stubs
            logger.warning(f"Listing page {url} yielded no articles")
            if first_loaded is None:
                first_loaded = url

        if first_loaded is None:
            raise ListingUnavailableException(urls, last_error) from last_error
        return first_loaded, []

    def _listing_only(self, stubs: Sequence[ArticleStub]) -> list[ArticleRecord]:
        return [
            ArticleRecord.from_stub(
                stub,
                self.classifier.resolve(stub.url, stub.category_hint),
                self.config.site_name,
            )
            for stub in stubs
        ]

    async def run(self) -> HarvestResult:
        """Harvest once.

        Returns:
            HarvestResult with records in listing order.

        Raises:
            ListingUnavailableException: If no listing page could be loaded.
        """
        started = time.monotonic()
        listing_url, stubs = await self.acquire_listing()

        if self.config.fetch_details and stubs:
            records = await self.details.fetch_all(stubs)
        else:
            records = self._listing_only(stubs)

        records = enrich_all(records, self.transforms)
        elapsed_ms = int((time.monotonic() - started) * 1000)
        stats = compute_stats(records, elapsed_ms)

        logger.info(
            f"Harvested {stats.total_articles} articles from {listing_url} "
            f"in {elapsed_ms}ms ({stats.degraded_articles} degraded)"
        )
        return HarvestResult(records, stats, listing_url)


def write_outputs(result: HarvestResult, outputs: OutputConfig) -> list[Path]:
    """Write the configured output files for a run.

    Nothing is written for a run without records. The failed-records file
    is only written when some records are degraded.

    Returns:
        Paths of the files that were written.
    """
    written: list[Path] = []
    if not result.records:
        logger.warning("Nothing to serialize, no output files written")
        return written

    if outputs.json_path is not None and write_json(
        result.records, outputs.json_path
    ):
        written.append(outputs.json_path)
    if outputs.csv_path is not None and write_csv(
        result.records, outputs.csv_path, include_bom=outputs.csv_bom
    ):
        written.append(outputs.csv_path)

    degraded = result.degraded
    if outputs.failed_path is not None and degraded:
        write_json(degraded, outputs.failed_path)
        written.append(outputs.failed_path)

    if outputs.stats_path is not None:
        write_stats(result.stats.to_dict(), outputs.stats_path)
        written.append(outputs.stats_path)
    return written
