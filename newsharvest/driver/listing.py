"""Listing extraction: from a listing page to a list of article stubs.

The listing cascade decides which elements are articles. Each element is
then read field by field, and the resulting stubs are filtered by category,
deduplicated by URL (first seen wins) and truncated to the article budget,
in that order. Discovery order is priority order throughout.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import urlsplit

from newsharvest.common.cascade import (
    FieldSpec,
    ListingCascade,
    ListingStrategy,
    SectionCascade,
    extract_optional,
    resolve,
    resolve_listing,
)
from newsharvest.common.classifier import CategoryClassifier
from newsharvest.common.exceptions import EvaluationFault
from newsharvest.common.page_element import PageElement
from newsharvest.config import RetryPolicy
from newsharvest.data_types import ArticleStub, RenderedPage
from newsharvest.driver.playwright_client import RenderClient
from newsharvest.driver.retry import with_retry
from newsharvest.driver.snapshots import save_snapshot

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"


def absolute_http_url(element: PageElement, href: str | None) -> str | None:
    """Resolve ``href`` against the document URL.

    Returns:
        The absolute URL, or None unless it is an http(s) URL with a host.
    """
    if not href or not href.strip():
        return None
    url = element.absolute_url(href.strip())
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return url


def matches_category_filter(category: str, terms: Iterable[str]) -> bool:
    """True if ``terms`` is empty or ``category`` contains any term.

    Matching is a case-insensitive substring test, so "Полит" matches
    "Политика".
    """
    terms = [term.casefold() for term in terms if term.strip()]
    if not terms:
        return True
    category = category.casefold()
    return any(term in category for term in terms)


def _as_text(spec: FieldSpec) -> FieldSpec:
    return spec.model_copy(update={"attributes": ()})


def _stub_from_card(
    element: PageElement, strategy: ListingStrategy
) -> ArticleStub | None:
    url = absolute_http_url(element, extract_optional(element, strategy.link))
    if url is None:
        return None

    title = extract_optional(element, strategy.title) or extract_optional(
        element, _as_text(strategy.link)
    )
    if not title:
        if strategy.require_title:
            return None
        title = UNTITLED
    image = extract_optional(element, strategy.image)
    return ArticleStub(
        title=title,
        url=url,
        category_hint=extract_optional(element, strategy.category),
        published_at=extract_optional(element, strategy.date),
        image_url=absolute_http_url(element, image) if image else None,
        summary=extract_optional(element, strategy.summary),
    )


def _stub_from_anchor(
    anchor: PageElement, cascade: ListingCascade
) -> ArticleStub | None:
    url = absolute_http_url(anchor, anchor.get_attribute("href"))
    if url is None:
        return None

    fallback = cascade.fallback
    card = anchor.parent() or anchor
    category = extract_optional(card, fallback.category) if fallback else None
    image = extract_optional(card, fallback.image) if fallback else None
    return ArticleStub(
        title=anchor.inner_text() or UNTITLED,
        url=url,
        category_hint=category,
        image_url=absolute_http_url(anchor, image) if image else None,
    )


def parse_listing(
    document: PageElement,
    cascade: ListingCascade,
    category_filter: Iterable[str] = (),
    max_articles: int | None = None,
    classifier: CategoryClassifier | None = None,
) -> list[ArticleStub]:
    """Build article stubs from a rendered listing page.

    Args:
        document: The listing page.
        cascade: Listing strategies in priority order, plus the fallback.
        category_filter: Terms matched against each stub's category; empty
            keeps everything.
        max_articles: Keep at most this many stubs; None keeps all.
        classifier: Resolves a stub's category from its hint or URL.

    Returns:
        Stubs in discovery order with unique URLs.
    """
    classifier = classifier or CategoryClassifier()
    terms = list(category_filter)

    match = resolve_listing(document, cascade)
    if not match:
        logger.warning(f"No article elements found on {document.url}")
        return []

    stubs: dict[str, ArticleStub] = {}
    for position, element in enumerate(match.elements):
        try:
            if match.used_fallback:
                stub = _stub_from_anchor(element, cascade)
            else:
                strategy = cascade.strategies[match.strategy_index]
                stub = _stub_from_card(element, strategy)
        except Exception as e:
            fault = EvaluationFault(
                f"listing element {position}", document.url, e
            )
            logger.warning(fault.message, extra={"url": document.url})
            continue

        if stub is None:
            logger.debug(f"Listing element {position} has no usable link")
            continue
        category = classifier.resolve(stub.url, stub.category_hint)
        if not matches_category_filter(category, terms):
            continue
        if stub.url in stubs:
            continue

        stubs[stub.url] = stub
        if max_articles is not None and len(stubs) >= max_articles:
            break

    logger.info(
        f"Found {len(stubs)} articles on {document.url} "
        f"(strategy {match.strategy_index}, {len(match)} elements)"
    )
    return list(stubs.values())


def discover_sections(
    document: PageElement,
    cascade: SectionCascade,
    base_url: str | None = None,
) -> list[tuple[str, str]]:
    """List a site's category sections from its navigation menu.

    Links to other hosts, the site root and links whose label contains an
    excluded label are skipped.

    Returns:
        ``(name, url)`` pairs in menu order, one per URL.
    """
    base_host = urlsplit(base_url or document.url).netloc
    match = resolve(document, cascade.strategies, "sections")

    sections: dict[str, str] = {}
    for link in match.elements:
        name = link.inner_text()
        url = absolute_http_url(link, link.get_attribute("href"))
        if not name or url is None:
            continue
        parts = urlsplit(url)
        if base_host and parts.netloc != base_host:
            continue
        if parts.path in ("", "/"):
            continue
        label = name.casefold()
        if any(
            excluded.casefold() in label for excluded in cascade.excluded_labels
        ):
            continue
        sections.setdefault(url, name)
    return [(name, url) for url, name in sections.items()]


class ListingExtractor:
    """Render listing pages and turn them into stubs.

    Args:
        render_client: Client used to render the listing page.
        cascade: Listing cascade.
        retry_policy: Retry budget for the listing navigation.
        timeout_ms: Navigation timeout.
        classifier: Category classifier used for filtering.
        category_filter: Category filter terms.
        max_articles: Stub budget.
        debug_dir: Save the rendered listing here when set.
    """

    def __init__(
        self,
        render_client: RenderClient,
        cascade: ListingCascade,
        retry_policy: RetryPolicy,
        timeout_ms: int,
        classifier: CategoryClassifier | None = None,
        category_filter: Iterable[str] = (),
        max_articles: int | None = None,
        debug_dir: Path | None = None,
    ) -> None:
        self.render_client = render_client
        self.cascade = cascade
        self.retry_policy = retry_policy
        self.timeout_ms = timeout_ms
        self.classifier = classifier or CategoryClassifier()
        self.category_filter = tuple(category_filter)
        self.max_articles = max_articles
        self.debug_dir = debug_dir

    async def render(
        self, url: str, ready_selector: str | None = None
    ) -> RenderedPage:
        """Render a page with the listing timeout and retry policy.

        Raises:
            TransientException: If every attempt failed.
        """
        return await with_retry(
            lambda: self.render_client.render(
                url, self.timeout_ms, ready_selector=ready_selector
            ),
            self.retry_policy,
            url,
        )

    async def extract(self, url: str) -> list[ArticleStub]:
        """Render ``url`` and parse its stubs.

        Raises:
            TransientException: If the page could not be rendered.
        """
        logger.info(f"Loading listing page {url}")
        page = await self.render(url, self.cascade.ready_selector)
        if self.debug_dir is not None:
            save_snapshot(page, self.debug_dir, "listing")

        return parse_listing(
            page.document(),
            self.cascade,
            category_filter=self.category_filter,
            max_articles=self.max_articles,
            classifier=self.classifier,
        )
