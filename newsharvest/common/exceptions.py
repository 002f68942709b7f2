"""Exception types for harvest errors.

Two families of failures exist. Transient exceptions come from page
acquisition (network trouble, browser errors, timeouts) and may go away on
retry. Assumption exceptions mean the markup no longer looks the way the
selectors expect; retrying will not help.

Extraction misses (a cascade that found nothing) are deliberately not
represented here: they are ordinary empty values.
"""

from typing import Any


class ScraperAssumptionException(Exception):
    """Base class for markup assumption violations.

    Selectors encode assumptions about a site's structure. When a checked
    query or an extraction function fails on a document, the failure is
    reported with the URL of the document and any useful context.
    """

    def __init__(
        self,
        message: str,
        request_url: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the violation.
            request_url: URL of the document being examined.
            context: Optional dict of additional context (selector, counts, etc).
        """
        self.message = message
        self.request_url = request_url
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        if self.request_url:
            parts.append(f"URL: {self.request_url}")

        if self.context:
            parts.append("Context:")
            for key, value in self.context.items():
                parts.append(f"  {key}: {value}")

        return "\n".join(parts)


class HTMLStructuralAssumptionException(ScraperAssumptionException):
    """Raised when a checked selector returns an unexpected number of results.

    Cascade resolution always queries with ``min_count=0``, so this is only
    raised by callers that explicitly demand a count, or when the selector
    itself cannot be compiled.

    Attributes:
        selector: The XPath or CSS selector that was used.
        selector_type: Type of selector ("xpath" or "css").
        actual_count: Number of results found.
    """

    def __init__(
        self,
        selector: str,
        selector_type: str,
        description: str,
        expected_min: int,
        expected_max: int | None,
        actual_count: int,
        request_url: str,
    ) -> None:
        self.selector = selector
        self.selector_type = selector_type
        self.description = description
        self.expected_min = expected_min
        self.expected_max = expected_max
        self.actual_count = actual_count

        if expected_max is None:
            expected_str = f"at least {expected_min}"
        elif expected_min == expected_max:
            expected_str = f"exactly {expected_min}"
        else:
            expected_str = f"between {expected_min} and {expected_max}"

        message = (
            f"HTML structure mismatch: Expected {expected_str} "
            f"elements for '{description}', but found {actual_count}"
        )
        context = {
            "selector": selector,
            "selector_type": selector_type,
            "actual_count": actual_count,
        }
        super().__init__(message, request_url, context)


class EvaluationFault(ScraperAssumptionException):
    """Raised when an extraction function fails while reading a document.

    This is the equivalent of a null dereference inside a DOM evaluation:
    the function assumed a node or attribute that was not there. Callers
    catch it at the narrowest enclosing scope (one element of a listing,
    one article) and treat the unit as an extraction miss.
    """

    def __init__(
        self, stage: str, request_url: str, cause: BaseException
    ) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(
            f"Extraction failed during {stage}: {cause}",
            request_url,
            {"cause_type": type(cause).__name__},
        )


class TransientException(Exception):
    """Base class for page acquisition errors that might resolve on retry.

    The retry loop in ``newsharvest.driver.retry`` retries exactly this
    family; anything else propagates on the first attempt.
    """

    pass


class NavigationException(TransientException):
    """Raised when the render client fails to load a page.

    Attributes:
        url: The URL that failed to load.
        reason: Engine-provided description of the failure.
        message: Human-readable error message.
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        self.message = f"Navigation to {url} failed: {reason}"
        super().__init__(self.message)


class NavigationTimeoutException(TransientException):
    """Raised when a page load exceeds its timeout.

    Attributes:
        url: The URL that timed out.
        timeout_ms: The timeout in milliseconds.
        message: Human-readable error message.
    """

    def __init__(self, url: str, timeout_ms: int) -> None:
        self.url = url
        self.timeout_ms = timeout_ms
        self.message = f"Navigation to {url} timed out after {timeout_ms}ms"
        super().__init__(self.message)


class ListingUnavailableException(Exception):
    """Raised when no listing page could be acquired.

    Unlike per-article failures this aborts the run: without a listing there
    is no unit of work to isolate.
    """

    def __init__(self, urls: list[str], cause: BaseException | None) -> None:
        self.urls = urls
        self.cause = cause
        tried = ", ".join(urls)
        self.message = f"Could not acquire listing page (tried: {tried})"
        if cause is not None:
            self.message += f": {cause}"
        super().__init__(self.message)
