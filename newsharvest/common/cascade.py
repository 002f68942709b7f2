"""Selector cascades and the generic resolver that evaluates them.

A cascade is an ordered list of extraction strategies. Strategies are tried
in declared order and the first one that matches anything wins; later
strategies are never queried once an earlier one has matched. Specific,
high-precision selectors go first. When every strategy misses, listing
cascades fall back to "any anchor whose href contains a known path
pattern", which survives a full redesign at the cost of precision.

Nothing found is a valid outcome, not an error: the resolver returns
NO_MATCH and field extraction returns the field's default.

Cascades are frozen pydantic models so that they can be loaded from JSON
configuration. Site-specific selector catalogs live in
``newsharvest.presets``; nothing here knows about any particular site.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from newsharvest.common.exceptions import (
    HTMLStructuralAssumptionException,
)
from newsharvest.common.page_element import PageElement

logger = logging.getLogger(__name__)

# Matches the element itself when it is a link, otherwise its nearest
# enclosing link.
NEAREST_LINK = "(./ancestor-or-self::a[@href])[last()]"


class _CascadeModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="forbid",
    )


class FieldSpec(_CascadeModel):
    """Ordered candidate sub-selectors for one field of a matched element.

    Attributes:
        candidates: Selectors relative to the matched element, tried in
            order. ``"."`` means the element itself.
        attributes: Attributes to read from the first node a candidate
            matches, in order. Empty means read the node's visible text.
        text_fallback: When attributes are given and none is set, use the
            node's visible text instead.
        default: Value used when every candidate misses.
    """

    candidates: tuple[str, ...] = ()
    attributes: tuple[str, ...] = ()
    text_fallback: bool = False
    default: str = ""


class ListingStrategy(_CascadeModel):
    """One way of finding article cards on a listing page.

    Attributes:
        selector: Primary selector matching one element per article.
        title, link, category, date, image, summary: Field cascades
            evaluated inside each matched element.
        require_title: Drop elements without a title instead of naming
            them "Untitled".
    """

    selector: str
    title: FieldSpec = FieldSpec(
        candidates=("h1", "h2", "h3", "[class*='title']"),
    )
    link: FieldSpec = FieldSpec(
        candidates=("a[href]", NEAREST_LINK), attributes=("href",)
    )
    category: FieldSpec = FieldSpec(
        candidates=(".Tag", ".Rubric", "[class*='tag']", "[class*='rubric']"),
    )
    date: FieldSpec = FieldSpec(
        candidates=("time", "[datetime]", ".Timestamp"),
    )
    image: FieldSpec = FieldSpec(
        candidates=("img",), attributes=("src", "data-src")
    )
    summary: FieldSpec = FieldSpec()
    require_title: bool = False


class AnchorFallback(_CascadeModel):
    """Last-resort listing heuristic: anchors with recognizable paths.

    Attributes:
        containers: Selectors for regions to search, tried in order; the
            first region holding any matching anchor is used. When no
            region holds one the whole document is searched.
        href_patterns: Substrings an anchor's href must contain (any one).
        category: Field cascade evaluated in the anchor's parent element.
        image: Field cascade evaluated in the anchor's parent element.
    """

    containers: tuple[str, ...] = ()
    href_patterns: tuple[str, ...] = ("/news/", "/article/", "/story/")
    category: FieldSpec = FieldSpec(
        candidates=(".Tag", ".Rubric", "[class*='tag']", "[class*='rubric']"),
    )
    image: FieldSpec = FieldSpec(
        candidates=("img",), attributes=("src", "data-src")
    )


class ListingCascade(_CascadeModel):
    """Ordered listing strategies plus the generic anchor fallback."""

    strategies: tuple[ListingStrategy, ...] = ()
    fallback: AnchorFallback | None = AnchorFallback()

    @property
    def ready_selector(self) -> str | None:
        """Selector to wait for before snapshotting a listing page."""
        if self.strategies:
            return self.strategies[0].selector
        return None


class ContentCascade(_CascadeModel):
    """Cascades for the fields of an article page.

    Attributes:
        content: Selectors for the article body; the first that matches
            supplies the text of its first element.
        author: Field cascade evaluated against the document.
        tags: Selectors for tag elements; the first that matches supplies
            every matched element's text.
        published_at: Field cascade, ``datetime`` attribute preferred.
        image: Field cascade for the lead image.
        video: Selectors whose presence marks the article as having video.
        summary: Field cascade for the lead paragraph.
    """

    content: tuple[str, ...] = ("article",)
    author: FieldSpec = FieldSpec()
    tags: tuple[str, ...] = ()
    published_at: FieldSpec = FieldSpec(
        candidates=("time",), attributes=("datetime",), text_fallback=True
    )
    image: FieldSpec = FieldSpec(attributes=("src", "data-src"))
    video: tuple[str, ...] = (
        "video",
        "iframe[src*='youtube']",
        "iframe[src*='vimeo']",
    )
    summary: FieldSpec = FieldSpec()

    @property
    def ready_selector(self) -> str | None:
        """Selector to wait for before snapshotting an article page."""
        if self.content:
            return self.content[0]
        return None


class SectionCascade(_CascadeModel):
    """Cascade for a site's navigation menu.

    Attributes:
        strategies: Selectors for menu links, tried in order.
        excluded_labels: Link labels containing any of these are skipped.
    """

    strategies: tuple[str, ...] = ("nav a",)
    excluded_labels: tuple[str, ...] = Field(default_factory=tuple)


@dataclass(frozen=True)
class CascadeMatch:
    """Outcome of resolving a cascade.

    Attributes:
        elements: Matched elements in document order; empty for NO_MATCH.
        strategy_index: Index of the strategy that matched. The anchor
            fallback reports ``len(strategies)``. None for NO_MATCH.
        used_fallback: True when the anchor fallback produced the match.
    """

    elements: tuple[PageElement, ...] = ()
    strategy_index: int | None = None
    used_fallback: bool = False

    def __bool__(self) -> bool:
        return bool(self.elements)

    def __len__(self) -> int:
        return len(self.elements)


NO_MATCH = CascadeMatch()


def resolve(
    document: PageElement,
    selectors: Sequence[str],
    description: str = "cascade",
) -> CascadeMatch:
    """Return the matches of the first selector that matches anything.

    Selectors that fail to compile count as misses.

    Args:
        document: Element to query.
        selectors: Selectors in priority order.
        description: What is being looked for (for logs and errors).

    Returns:
        CascadeMatch for the winning selector, or NO_MATCH.
    """
    for index, selector in enumerate(selectors):
        try:
            elements = document.query(
                selector, f"{description} [{index}]", min_count=0
            )
        except HTMLStructuralAssumptionException as e:
            logger.warning(
                f"Skipping invalid selector {selector!r} for {description}: {e.message}"
            )
            continue
        if elements:
            logger.debug(
                f"{description}: {len(elements)} elements via strategy "
                f"{index} ({selector!r})"
            )
            return CascadeMatch(tuple(elements), index)
    return NO_MATCH


def _matching_anchors(
    scope: PageElement, fallback: AnchorFallback
) -> list[PageElement]:
    return [
        anchor
        for anchor in scope.query_css(
            "a[href]", "fallback anchors", min_count=0
        )
        if any(
            pattern in (anchor.get_attribute("href") or "")
            for pattern in fallback.href_patterns
        )
    ]


def find_fallback_anchors(
    document: PageElement, fallback: AnchorFallback
) -> list[PageElement]:
    """Find anchors whose href contains one of the fallback path patterns.

    Every element of every container selector is searched in order and the
    first one holding a matching anchor wins. When no container does, the
    whole document is searched.
    """
    for index, selector in enumerate(fallback.containers):
        try:
            containers = document.query(
                selector, f"containers [{index}]", min_count=0
            )
        except HTMLStructuralAssumptionException as e:
            logger.warning(
                f"Skipping invalid container selector {selector!r}: {e.message}"
            )
            continue
        for container in containers:
            anchors = _matching_anchors(container, fallback)
            if anchors:
                return anchors
    return _matching_anchors(document, fallback)


def resolve_listing(
    document: PageElement, cascade: ListingCascade
) -> CascadeMatch:
    """Resolve a listing cascade, falling back to the anchor heuristic.

    Args:
        document: The listing page.
        cascade: Strategies in priority order, plus an optional fallback.

    Returns:
        The first strategy's matches, the fallback anchors, or NO_MATCH.
    """
    match = resolve(
        document,
        [strategy.selector for strategy in cascade.strategies],
        "listing",
    )
    if match or cascade.fallback is None:
        return match

    logger.info(
        "No listing strategy matched, falling back to href patterns "
        f"{list(cascade.fallback.href_patterns)}"
    )
    anchors = find_fallback_anchors(document, cascade.fallback)
    if not anchors:
        return NO_MATCH
    return CascadeMatch(
        tuple(anchors), len(cascade.strategies), used_fallback=True
    )


def _read_value(node: PageElement, spec: FieldSpec) -> str:
    for attribute in spec.attributes:
        value = node.get_attribute(attribute)
        if value and value.strip():
            return value.strip()
    if spec.attributes and not spec.text_fallback:
        return ""
    return node.inner_text()


def extract_field(element: PageElement, spec: FieldSpec) -> str:
    """Extract one field using its candidate cascade.

    Each candidate is queried relative to ``element``; only its first
    match is read. The first non-empty value wins. Candidates with
    invalid selectors are misses.

    Returns:
        The extracted value, or ``spec.default``.
    """
    value = extract_optional(element, spec)
    return value if value is not None else spec.default


def extract_optional(element: PageElement, spec: FieldSpec) -> str | None:
    """Like extract_field, but None when every candidate misses."""
    for candidate in spec.candidates:
        try:
            nodes = element.query(candidate, "field candidate", min_count=0)
        except HTMLStructuralAssumptionException:
            continue
        if not nodes:
            continue
        value = _read_value(nodes[0], spec)
        if value:
            return value
    return None
