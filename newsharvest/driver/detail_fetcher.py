"""Per-article detail fetching with failure isolation.

Every stub is rendered on its own page, inside the retry loop, and read
with the content cascade. A stub whose page cannot be loaded or read
becomes a degraded record (empty content, ``error`` set) instead of an
exception, so one broken article never costs the rest of the batch.

Fetches run concurrently up to a fixed cap and are joined in listing order,
whatever order they finish in.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from newsharvest.common.cascade import (
    ContentCascade,
    extract_optional,
    resolve,
)
from newsharvest.common.classifier import CategoryClassifier
from newsharvest.common.error_log import ErrorLog
from newsharvest.common.exceptions import EvaluationFault
from newsharvest.common.page_element import PageElement
from newsharvest.config import RetryPolicy
from newsharvest.data_types import ArticleRecord, ArticleStub, RenderedPage
from newsharvest.driver.listing import absolute_http_url
from newsharvest.driver.playwright_client import RenderClient
from newsharvest.driver.retry import with_retry
from newsharvest.driver.snapshots import save_snapshot

logger = logging.getLogger(__name__)


@dataclass
class ProgressEvent:
    """Event emitted as detail fetches complete.

    Attributes:
        event_type: Type of event ("article_completed").
        timestamp: When the event occurred.
        data: Event-specific data.
    """

    event_type: str
    timestamp: datetime
    data: dict[str, Any]

    def to_json(self) -> str:
        return json.dumps(
            {
                "event_type": self.event_type,
                "timestamp": self.timestamp.isoformat(),
                "data": self.data,
            },
            ensure_ascii=False,
        )


ProgressCallback = Callable[[ProgressEvent], Awaitable[None]]


def extract_details(
    document: PageElement, cascade: ContentCascade, site_name: str = ""
) -> dict[str, Any]:
    """Read an article page with the content cascade.

    Every field falls back to its default when its cascade misses: empty
    content, ``site_name`` as author, no tags, no video.

    Returns:
        ArticleRecord field values keyed by field name.
    """
    body = resolve(document, cascade.content, "content")
    content = body.elements[0].inner_text() if body else ""

    tags: list[str] = []
    for tag in resolve(document, cascade.tags, "tags").elements:
        text = tag.inner_text()
        if text and text not in tags:
            tags.append(text)

    image = extract_optional(document, cascade.image)
    return {
        "content": content,
        "author": extract_optional(document, cascade.author) or site_name,
        "tags": tuple(tags),
        "published_at": extract_optional(document, cascade.published_at),
        "image_url": absolute_http_url(document, image) if image else None,
        "has_video": bool(resolve(document, cascade.video, "video")),
        "summary": extract_optional(document, cascade.summary),
    }


class DetailFetcher:
    """Fetch article pages and turn stubs into records.

    Args:
        render_client: Client used to render article pages.
        cascade: Content cascade for article pages.
        retry_policy: Retry budget per article navigation.
        timeout_ms: Navigation timeout per article.
        classifier: Resolves each record's category.
        site_name: Author used when an article names none.
        concurrency: Maximum fetches in flight at once.
        error_log: Where per-article failures are recorded.
        on_progress: Awaited once per completed article.
        debug_dir: Save rendered article pages here when set.
        debug_article_limit: Only the first N articles (by listing order)
            are saved.

    Example:
        fetcher = DetailFetcher(client, ContentCascade(), RetryPolicy(), 30000)
        records = await fetcher.fetch_all(stubs)
    """

    def __init__(
        self,
        render_client: RenderClient,
        cascade: ContentCascade,
        retry_policy: RetryPolicy,
        timeout_ms: int,
        classifier: CategoryClassifier | None = None,
        site_name: str = "",
        concurrency: int = 4,
        error_log: ErrorLog | None = None,
        on_progress: ProgressCallback | None = None,
        debug_dir: Path | None = None,
        debug_article_limit: int = 3,
    ) -> None:
        if concurrency < 1:
            raise ValueError(
                f"concurrency must be at least 1, got {concurrency}"
            )
        self.render_client = render_client
        self.cascade = cascade
        self.retry_policy = retry_policy
        self.timeout_ms = timeout_ms
        self.classifier = classifier or CategoryClassifier()
        self.site_name = site_name
        self.concurrency = concurrency
        self.error_log = error_log if error_log is not None else ErrorLog()
        self.on_progress = on_progress
        self.debug_dir = debug_dir
        self.debug_article_limit = debug_article_limit
        self.completed = 0

    async def _render(self, url: str) -> RenderedPage:
        return await with_retry(
            lambda: self.render_client.render(
                url, self.timeout_ms, ready_selector=self.cascade.ready_selector
            ),
            self.retry_policy,
            url,
        )

    def _degraded(
        self,
        stub: ArticleStub,
        category: str,
        message: str,
        error: BaseException,
    ) -> ArticleRecord:
        entry = self.error_log.record(message, error, url=stub.url)
        return ArticleRecord.degraded(
            stub, category, self.site_name, f"{message}: {entry.error}"
        )

    async def fetch(
        self, stub: ArticleStub, index: int | None = None
    ) -> ArticleRecord:
        """Fetch one article. Never raises for per-article failures.

        Args:
            stub: The listing entry to fetch.
            index: Listing position, used for debug snapshot naming.

        Returns:
            A full record, or a degraded one carrying the failure cause.
        """
        category = self.classifier.resolve(stub.url, stub.category_hint)
        logger.debug(f"Fetching article {stub.url}")

        try:
            page = await self._render(stub.url)
        except Exception as e:
            return self._degraded(stub, category, "Failed to load article", e)

        if (
            self.debug_dir is not None
            and index is not None
            and index < self.debug_article_limit
        ):
            save_snapshot(page, self.debug_dir, f"article-{index + 1}")

        try:
            details = extract_details(
                page.document(), self.cascade, self.site_name
            )
        except Exception as e:
            fault = EvaluationFault("article extraction", stub.url, e)
            fault.__cause__ = e
            return self._degraded(
                stub, category, "Failed to extract article", fault
            )

        return ArticleRecord.from_stub(
            stub, category, details.pop("author"), **details
        )

    async def _fetch_counted(
        self,
        semaphore: asyncio.Semaphore,
        stub: ArticleStub,
        index: int,
        total: int,
    ) -> ArticleRecord:
        async with semaphore:
            record = await self.fetch(stub, index)

        self.completed += 1
        status = "FAILED" if record.is_degraded else "OK"
        logger.info(
            f"[{self.completed}/{total}] {status} {record.title[:60]}",
            extra={"url": record.url},
        )
        if self.on_progress:
            await self.on_progress(
                ProgressEvent(
                    event_type="article_completed",
                    timestamp=datetime.now(timezone.utc),
                    data={
                        "completed": self.completed,
                        "total": total,
                        "url": record.url,
                        "degraded": record.is_degraded,
                    },
                )
            )
        return record

    async def fetch_all(
        self, stubs: Sequence[ArticleStub]
    ) -> list[ArticleRecord]:
        """Fetch every stub concurrently, at most ``concurrency`` at a time.

        Returns:
            One record per stub, in the same order as ``stubs``.
        """
        self.completed = 0
        semaphore = asyncio.Semaphore(self.concurrency)
        total = len(stubs)
        logger.info(
            f"Fetching {total} articles with up to {self.concurrency} "
            "concurrent pages"
        )
        return list(
            await asyncio.gather(
                *(
                    self._fetch_counted(semaphore, stub, index, total)
                    for index, stub in enumerate(stubs)
                )
            )
        )
