"""Debug HTML snapshots.

When a run is configured with a debug directory, the listing page and the
first few article pages are written there exactly as they were rendered,
so selector cascades can be developed against the same DOM offline.
"""

from __future__ import annotations

import logging
from pathlib import Path

from newsharvest.data_types import RenderedPage

logger = logging.getLogger(__name__)


def save_snapshot(page: RenderedPage, directory: Path, name: str) -> Path:
    """Write a rendered page to ``directory/name.html``.

    A snapshot that cannot be written is logged and otherwise ignored; it
    never affects the harvest.

    Returns:
        The path the snapshot was (or would have been) written to.
    """
    path = directory / f"{name}.html"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        path.write_text(page.html, encoding="utf-8")
    except OSError as e:
        logger.warning(f"Could not save debug snapshot {path}: {e}")
        return path
    logger.debug(f"Saved debug snapshot of {page.url} to {path}")
    return path
