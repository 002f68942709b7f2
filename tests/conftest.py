"""Shared fixtures for harvest pipeline tests."""

from pathlib import Path

import pytest

from newsharvest.common.cascade import (
    AnchorFallback,
    ContentCascade,
    FieldSpec,
    ListingCascade,
    ListingStrategy,
    SectionCascade,
)
from newsharvest.config import (
    HarvestConfig,
    OutputConfig,
    RetryPolicy,
    SelectorConfig,
)
from tests.utils import FakeRenderClient

SITE = "https://news.example.com"

LISTING_HTML = """
<html>
<head><title>Example News</title><style>.x { color: red }</style></head>
<body>
    <nav>
        <a href="/">Главная</a>
        <a href="/politics/">Политика</a>
        <a href="/economics/">Экономика</a>
        <a href="https://partner.example.org/promo">Партнёры</a>
        <a href="/search">Поиск</a>
    </nav>
    <div class="NewsTape">
        <div class="NewsCard">
            <a href="/news/1"><h3 class="NewsCard-title">Рост экономики</h3></a>
            <span class="Tag">Экономика</span>
            <time datetime="2024-03-01T10:00:00Z">1 марта</time>
            <img src="/img/1.jpg">
            <p class="NewsCard-lead">Лид первой новости</p>
        </div>
        <div class="NewsCard">
            <a href="/politics/2"><h3 class="NewsCard-title">Выборы</h3></a>
        </div>
        <div class="NewsCard">
            <a href="/news/1"><h3 class="NewsCard-title">Рост экономики (повтор)</h3></a>
            <span class="Tag">Экономика</span>
        </div>
        <div class="NewsCard">
            <h3 class="NewsCard-title">Карточка без ссылки</h3>
        </div>
        <div class="NewsCard">
            <a href="/news/3"><h3>Кризис</h3></a>
        </div>
    </div>
</body>
</html>
"""

ARTICLE_1_HTML = """
<html><body>
<article class="Material">
    <h1>Рост экономики</h1>
    <div class="Material-body"><p>Рост рост кризис</p></div>
    <span class="MaterialNote-authors">Иван Петров</span>
    <a class="Tags-tag" href="/tag/economy">экономика</a>
    <a class="Tags-tag" href="/tag/markets">рынки</a>
    <time datetime="2024-03-01T10:00:00Z">1 марта</time>
    <img class="Lead" src="/img/lead-1.jpg">
    <iframe src="https://www.youtube.com/embed/abc"></iframe>
</article>
</body></html>
"""

ARTICLE_2_HTML = """
<html><body>
<article>
    <p>Конфликт и спад</p>
</article>
</body></html>
"""


@pytest.fixture
def listing_cascade() -> ListingCascade:
    """Two card strategies (the first never matches) plus an anchor fallback."""
    return ListingCascade(
        strategies=(
            ListingStrategy(selector=".NewsBlock"),
            ListingStrategy(
                selector=".NewsCard",
                title=FieldSpec(candidates=(".NewsCard-title", "h3")),
                summary=FieldSpec(candidates=(".NewsCard-lead",)),
            ),
        ),
        fallback=AnchorFallback(
            containers=(".NewsTape",), href_patterns=("/news/",)
        ),
    )


@pytest.fixture
def content_cascade() -> ContentCascade:
    return ContentCascade(
        content=(".Material-body", "article"),
        author=FieldSpec(candidates=(".MaterialNote-authors",)),
        tags=(".Tags-tag",),
        image=FieldSpec(candidates=("img.Lead",), attributes=("src",)),
    )


@pytest.fixture
def section_cascade() -> SectionCascade:
    return SectionCascade(
        strategies=(".Header-menu a", "nav a"),
        excluded_labels=("Поиск",),
    )


@pytest.fixture
def site_pages() -> dict[str, str]:
    """Listing and article pages served by the fake render client.

    ``/news/3`` is listed but never served, so fetching it always fails.
    """
    return {
        f"{SITE}/": LISTING_HTML,
        f"{SITE}/news/1": ARTICLE_1_HTML,
        f"{SITE}/politics/2": ARTICLE_2_HTML,
    }


@pytest.fixture
def render_client(site_pages: dict[str, str]) -> FakeRenderClient:
    return FakeRenderClient(site_pages)


@pytest.fixture
def no_delay_retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, delay_ms=0)


@pytest.fixture
def output_config(tmp_path: Path) -> OutputConfig:
    return OutputConfig(
        json_path=tmp_path / "articles.json",
        csv_path=tmp_path / "articles.csv",
        failed_path=tmp_path / "failed-articles.json",
        stats_path=tmp_path / "parsing-stats.json",
        error_log_path=tmp_path / "error-log.txt",
    )


@pytest.fixture
def harvest_config(
    listing_cascade: ListingCascade,
    content_cascade: ContentCascade,
    section_cascade: SectionCascade,
    no_delay_retry: RetryPolicy,
    output_config: OutputConfig,
) -> HarvestConfig:
    return HarvestConfig(
        url=f"{SITE}/",
        site_name="Example News",
        max_articles=10,
        retry_policy=no_delay_retry,
        selectors=SelectorConfig(
            listing=listing_cascade,
            detail=content_cascade,
            sections=section_cascade,
        ),
        category_rules=(("/politics/", "Политика"),),
        concurrency=2,
        outputs=output_config,
    )
