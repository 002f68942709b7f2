"""Built-in configurations for known news sites.

Selector catalogs are plain configuration: each preset is an ordinary
HarvestConfig and can be overridden field by field, or dumped to JSON and
edited when a site's markup drifts.
"""

from __future__ import annotations

from newsharvest.common.cascade import (
    AnchorFallback,
    ContentCascade,
    FieldSpec,
    ListingCascade,
    ListingStrategy,
    SectionCascade,
)
from newsharvest.config import HarvestConfig, SelectorConfig

_MEDUZA_CARD_FIELDS = {
    "title": FieldSpec(
        candidates=(".NewsBlock-title", ".NewsCard-title", "h2", "h3")
    ),
    "category": FieldSpec(
        candidates=(".Tag", ".Rubric", "[class*='tag']", "[class*='rubric']")
    ),
    "date": FieldSpec(candidates=(".Timestamp", "time", "[datetime]")),
    "image": FieldSpec(
        candidates=("img", ".Image", ".Media"), attributes=("src", "data-src")
    ),
    "summary": FieldSpec(
        candidates=(".NewsBlock-lead", ".NewsCard-lead", "p")
    ),
}

MEDUZA = HarvestConfig(
    url="https://meduza.io/",
    fallback_urls=("https://meduza.io/news",),
    site_name="Meduza.io",
    max_articles=50,
    timeout_ms=90000,
    article_timeout_ms=30000,
    selectors=SelectorConfig(
        listing=ListingCascade(
            strategies=tuple(
                ListingStrategy(selector=selector, **_MEDUZA_CARD_FIELDS)
                for selector in (
                    ".NewsBlock-first",
                    ".NewsBlock",
                    ".NewsCard",
                    ".SimpleBlock",
                    "[data-testid='news-tape-item']",
                )
            ),
            fallback=AnchorFallback(
                containers=(".NewsTape", ".Tape", ".Content", "main"),
                href_patterns=("/news/", "/feature/", "/story/"),
            ),
        ),
        detail=ContentCascade(
            content=(
                ".GeneralMaterial-article",
                ".RichBlock",
                ".Material-body",
                "article",
            ),
            author=FieldSpec(candidates=(".MaterialNote-authors",)),
            tags=(".Tags-tag",),
            video=(
                ".VideoBlock",
                "iframe[src*='youtube']",
                "iframe[src*='vimeo']",
            ),
        ),
        sections=SectionCascade(
            strategies=(
                ".Header-menu a",
                ".Header-tabs a",
                "nav a",
                "[data-testid='menu-item']",
            ),
            excluded_labels=("Подписаться", "Поиск"),
        ),
    ),
)

RBC = HarvestConfig(
    url="https://www.rbc.ru/",
    site_name="РБК",
    max_articles=10,
    timeout_ms=60000,
    article_timeout_ms=30000,
    category_rules=(
        ("/politics/", "Политика"),
        ("/economics/", "Экономика"),
        ("/society/", "Общество"),
        ("/rbcfreenews/", "Срочные новости"),
    ),
    selectors=SelectorConfig(
        listing=ListingCascade(
            strategies=(
                ListingStrategy(
                    selector=(
                        "a[href*='/rbcfreenews/'], a[href*='/society/'], "
                        "a[href*='/politics/'], a[href*='/economics/']"
                    ),
                    title=FieldSpec(candidates=(".",)),
                    link=FieldSpec(candidates=(".",), attributes=("href",)),
                    category=FieldSpec(),
                    date=FieldSpec(),
                    image=FieldSpec(),
                    require_title=True,
                ),
            ),
            fallback=None,
        ),
        detail=ContentCascade(
            content=(".article__text", ".article__body", ".article"),
            author=FieldSpec(
                candidates=(".article__authors", ".article__author")
            ),
            tags=(".article__tags a",),
            published_at=FieldSpec(
                candidates=(".article__date", "time"),
                attributes=("datetime",),
                text_fallback=True,
            ),
            image=FieldSpec(
                candidates=(
                    ".article__main-image img",
                    ".article__picture img",
                ),
                attributes=("src",),
            ),
            video=("video", "iframe[src*='youtube']"),
        ),
    ),
)

PRESETS: dict[str, HarvestConfig] = {
    "meduza": MEDUZA,
    "rbc": RBC,
}
