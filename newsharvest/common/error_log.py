"""Append-only error log for operator follow-up.

Every failure the pipeline recovers from is recorded here, one entry per
failure, with a timestamp, a message, the offending URL and the traceback.
The same failure is also sent to the module logger.
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass
from pathlib import Path

from newsharvest.data_types import utc_now_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorEntry:
    """A single recorded failure."""

    timestamp: str
    message: str
    url: str
    error: str
    trace: str

    def format(self) -> str:
        url_part = f" (URL: {self.url})" if self.url else ""
        return (
            f"\n[{self.timestamp}] {self.message}{url_part}: {self.error}\n"
            f"{self.trace}"
        )


class ErrorLog:
    """Collects failure entries and appends them to a file.

    Args:
        path: Log file to append to. None keeps entries in memory only.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self.entries: list[ErrorEntry] = []

    def __len__(self) -> int:
        return len(self.entries)

    def record(
        self, message: str, error: BaseException, url: str = ""
    ) -> ErrorEntry:
        """Record a failure.

        Args:
            message: What the pipeline was doing.
            error: The exception that was caught.
            url: The URL being processed, if any.

        Returns:
            The entry that was appended.
        """
        entry = ErrorEntry(
            timestamp=utc_now_iso(),
            message=message,
            url=url,
            error=str(error) or type(error).__name__,
            trace="".join(
                traceback.format_exception(
                    type(error), error, error.__traceback__
                )
            ),
        )
        self.entries.append(entry)
        logger.error(
            f"{message}: {entry.error}",
            extra={"url": url, "error_type": type(error).__name__},
        )

        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(entry.format())
        return entry
