"""URL-based category classification.

Rules are ``(path_substring, label)`` pairs checked in order. The order
matters: when a URL contains two rule substrings, the rule listed first
wins.
"""

from __future__ import annotations

from collections.abc import Iterable

DEFAULT_CATEGORY = "Новости"


class CategoryClassifier:
    """Map article URLs to canonical category labels.

    Example::

        classifier = CategoryClassifier(
            [("/politics/", "Politics"), ("/economics/", "Economy")],
            default="News",
        )
        classifier.classify("https://example.com/politics/123")  # "Politics"
    """

    def __init__(
        self,
        rules: Iterable[tuple[str, str]] = (),
        default: str = DEFAULT_CATEGORY,
    ) -> None:
        self.rules: tuple[tuple[str, str], ...] = tuple(
            (substring, label) for substring, label in rules
        )
        self.default = default

    def classify(self, url: str) -> str:
        """Return the label of the first rule whose substring is in ``url``.

        Total: never raises, returns ``self.default`` when nothing matches.
        """
        for substring, label in self.rules:
            if substring and substring in url:
                return label
        return self.default

    def resolve(self, url: str, category_hint: str | None = None) -> str:
        """Pick the category for a stub.

        A label read from the listing markup takes precedence over the
        URL rules.
        """
        if category_hint and category_hint.strip():
            return category_hint.strip()
        return self.classify(url)
