"""Data types for the harvest pipeline.

These types flow between the pipeline stages:

1. RenderedPage - a DOM snapshot produced by a render client
2. ArticleStub - a listing entry, before any detail fetch
3. ArticleRecord - the harvested article, possibly degraded
4. Sentiment - output of the reference enrichment transform

Stubs and records are immutable. Every stage that changes a record returns
a new copy, so concurrent detail fetches never share mutable state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from newsharvest.common.lxml_page_element import LxmlPageElement


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


@dataclass(frozen=True)
class RenderedPage:
    """A snapshot of a rendered document.

    Attributes:
        url: Final URL after redirects.
        html: Serialized DOM as returned by the browser.
        requested_url: URL that was asked for.
    """

    url: str
    html: str
    requested_url: str = ""

    def document(self) -> LxmlPageElement:
        """Parse the snapshot into a queryable PageElement."""
        return LxmlPageElement.from_html(self.html, self.url)


@dataclass(frozen=True)
class ArticleStub:
    """A minimal article reference discovered on a listing page.

    Attributes:
        title: Visible title, ``"Untitled"`` when none could be found.
        url: Absolute article URL.
        category_hint: Category label read from the listing markup, if any.
        published_at: Date text shown on the listing card, if any.
        image_url: Card image URL, if any.
        summary: Card lead/summary text, if any.
    """

    title: str
    url: str
    category_hint: str | None = None
    published_at: str | None = None
    image_url: str | None = None
    summary: str | None = None


class SentimentLabel(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class Sentiment(BaseModel):
    """Lexical sentiment counts for an article body.

    ``neutral`` is ``tokens - positive - negative`` and can be negative
    when tokens match both lexicons.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    positive: int
    negative: int
    neutral: int
    sentiment: SentimentLabel


class ArticleRecord(BaseModel):
    """A harvested article.

    A record with ``error`` set is degraded: its detail fetch failed and
    ``content`` is empty. Presence in the output does not imply that detail
    extraction succeeded.

    Serialized keys are camelCase; optional fields that are unset are
    omitted, so records in one run can have different key sets.
    """

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, use_enum_values=True
    )

    title: str
    url: str
    category_hint: str | None = Field(None, alias="categoryHint")
    category: str
    content: str = ""
    author: str
    tags: tuple[str, ...] = ()
    published_at: str | None = Field(None, alias="publishedAt")
    image_url: str | None = Field(None, alias="imageUrl")
    has_video: bool = Field(False, alias="hasVideo")
    summary: str | None = None
    sentiment: Sentiment | None = None
    parsed_at: str = Field(default_factory=utc_now_iso, alias="parsedAt")
    error: str | None = None

    @property
    def is_degraded(self) -> bool:
        return self.error is not None

    @classmethod
    def from_stub(
        cls,
        stub: ArticleStub,
        category: str,
        author: str,
        **details: Any,
    ) -> ArticleRecord:
        """Build a record from a stub plus extracted details.

        Stub values fill in for details that were not extracted.
        """
        fields: dict[str, Any] = {
            "title": stub.title,
            "url": stub.url,
            "category_hint": stub.category_hint,
            "category": category,
            "author": author,
            "published_at": stub.published_at or None,
            "image_url": stub.image_url or None,
            "summary": stub.summary or None,
        }
        for key, value in details.items():
            if value is None or value == "":
                continue
            fields[key] = value
        return cls(**fields)

    @classmethod
    def degraded(
        cls, stub: ArticleStub, category: str, author: str, error: str
    ) -> ArticleRecord:
        """Build the record for an article whose detail fetch failed."""
        return cls.from_stub(stub, category, author).model_copy(
            update={"content": "", "error": error or "unknown error"}
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dict with camelCase keys."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
