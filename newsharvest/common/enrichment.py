"""Enrichment transforms applied to harvested records.

A transform takes a record and returns an updated copy. Transforms are
composed in sequence by ``enrich``; one that raises is logged and skipped,
and the record continues through the remaining transforms unchanged.
Enrichment never drops a record.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence

from newsharvest.data_types import ArticleRecord, Sentiment, SentimentLabel

logger = logging.getLogger(__name__)

Transform = Callable[[ArticleRecord], ArticleRecord]

POSITIVE_LEXICON: tuple[str, ...] = (
    "рост",
    "успех",
    "подъем",
    "положительный",
    "хороший",
    "выгод",
    "развити",
)

NEGATIVE_LEXICON: tuple[str, ...] = (
    "падение",
    "снижение",
    "кризис",
    "проблема",
    "конфликт",
    "спад",
    "риск",
)


def score_text(
    text: str,
    positive: Sequence[str] = POSITIVE_LEXICON,
    negative: Sequence[str] = NEGATIVE_LEXICON,
) -> Sentiment:
    """Count lexicon hits in a text.

    The text is case-folded and split on whitespace. A token counts as
    positive if it contains any positive stem, and as negative if it
    contains any negative stem; it can count as both. ``neutral`` is the
    token count minus both tallies and goes below zero when many tokens
    count twice.

    Example::

        score_text("рост рост кризис")
        # Sentiment(positive=2, negative=1, neutral=0, sentiment="positive")
    """
    tokens = text.casefold().split()
    positive_score = sum(
        1 for token in tokens if any(stem in token for stem in positive)
    )
    negative_score = sum(
        1 for token in tokens if any(stem in token for stem in negative)
    )

    if positive_score > negative_score:
        label = SentimentLabel.POSITIVE
    elif negative_score > positive_score:
        label = SentimentLabel.NEGATIVE
    else:
        label = SentimentLabel.NEUTRAL

    return Sentiment(
        positive=positive_score,
        negative=negative_score,
        neutral=len(tokens) - positive_score - negative_score,
        sentiment=label,
    )


def score_sentiment(record: ArticleRecord) -> ArticleRecord:
    """Attach lexical sentiment to a record. Degraded records are left alone."""
    if record.is_degraded:
        return record
    return record.model_copy(update={"sentiment": score_text(record.content)})


def make_sentiment_scorer(
    positive: Sequence[str], negative: Sequence[str]
) -> Transform:
    """Build a sentiment transform with custom lexicons."""
    positive = tuple(stem.casefold() for stem in positive)
    negative = tuple(stem.casefold() for stem in negative)

    def scorer(record: ArticleRecord) -> ArticleRecord:
        if record.is_degraded:
            return record
        return record.model_copy(
            update={"sentiment": score_text(record.content, positive, negative)}
        )

    scorer.__name__ = "score_sentiment"
    return scorer


DEFAULT_TRANSFORMS: tuple[Transform, ...] = (score_sentiment,)


def enrich(
    record: ArticleRecord,
    transforms: Iterable[Transform] = DEFAULT_TRANSFORMS,
) -> ArticleRecord:
    """Run transforms over a record in order.

    Args:
        record: Record to enrich.
        transforms: Transforms to apply; each receives the previous output.

    Returns:
        The enriched record. Fields a failed transform would have set stay
        as they were.
    """
    for transform in transforms:
        name = getattr(transform, "__name__", repr(transform))
        try:
            record = transform(record)
        except Exception as e:
            logger.warning(
                f"Enrichment step {name} failed for {record.url}: {e}",
                extra={"url": record.url, "transform": name},
            )
    return record


def enrich_all(
    records: Iterable[ArticleRecord],
    transforms: Sequence[Transform] = DEFAULT_TRANSFORMS,
) -> list[ArticleRecord]:
    """Enrich every record, preserving order."""
    return [enrich(record, transforms) for record in records]
