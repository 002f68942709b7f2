"""JSON and CSV serialization for harvested records.

Records in one run are heterogeneous: optional keys are omitted when unset,
and degraded records carry an ``error`` key the others lack. The CSV header
is therefore the sorted union of keys across all records, not the keys of
the first record.

Writers refuse to produce empty files. Called with no records they log a
warning and return False.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from newsharvest.data_types import ArticleRecord

logger = logging.getLogger(__name__)

UTF8_BOM = "\ufeff"
LIST_SEPARATOR = "; "

Row = Mapping[str, Any]


def _as_rows(records: Sequence[ArticleRecord | Row]) -> list[dict[str, Any]]:
    return [
        record.to_dict() if isinstance(record, ArticleRecord) else dict(record)
        for record in records
    ]


def to_json(records: Sequence[ArticleRecord | Row]) -> str:
    """Render records as a pretty-printed JSON array.

    Keys keep the record's field order, indentation is two spaces, and
    non-ASCII text is written as-is. The output depends only on the
    records, so serializing the same records twice is byte-identical.
    """
    return json.dumps(_as_rows(records), indent=2, ensure_ascii=False)


def csv_header(rows: Sequence[Row]) -> list[str]:
    """Sorted union of the keys of every row."""
    keys: set[str] = set()
    for row in rows:
        keys.update(row.keys())
    return sorted(keys)


def csv_cell(value: Any) -> str:
    """Render one value as CSV cell text (before quoting).

    Missing values are empty, lists are joined with ``"; "``, mappings
    become compact JSON, booleans are lowercase like their JSON form.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return LIST_SEPARATOR.join(csv_cell(item) for item in value)
    if isinstance(value, Mapping):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def to_csv(
    records: Sequence[ArticleRecord | Row], include_bom: bool = False
) -> str:
    """Render records as CSV text.

    Every field, header included, is double-quoted with internal quotes
    doubled. Rows are separated by ``\\n``.

    Args:
        records: Records to render.
        include_bom: Prefix a UTF-8 byte-order mark so spreadsheet
            applications detect the encoding.
    """
    rows = _as_rows(records)
    header = csv_header(rows)

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(header)
    for row in rows:
        writer.writerow([csv_cell(row.get(key)) for key in header])

    text = buffer.getvalue().removesuffix("\n")
    return UTF8_BOM + text if include_bom else text


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def write_json(
    records: Sequence[ArticleRecord | Row], path: str | Path
) -> bool:
    """Write records to a JSON file.

    Returns:
        True if the file was written, False if there was nothing to write.
    """
    if not records:
        logger.warning(f"Nothing to serialize, skipping JSON output {path}")
        return False
    _write_text(Path(path), to_json(records))
    logger.info(f"Saved {len(records)} records to {path}")
    return True


def write_csv(
    records: Sequence[ArticleRecord | Row],
    path: str | Path,
    include_bom: bool = True,
) -> bool:
    """Write records to a CSV file.

    Returns:
        True if the file was written, False if there was nothing to write.
    """
    if not records:
        logger.warning(f"Nothing to serialize, skipping CSV output {path}")
        return False
    _write_text(Path(path), to_csv(records, include_bom=include_bom))
    logger.info(f"Saved {len(records)} records to {path}")
    return True


def write_stats(stats: Mapping[str, Any], path: str | Path) -> None:
    """Write a statistics summary as pretty-printed JSON."""
    _write_text(
        Path(path), json.dumps(dict(stats), indent=2, ensure_ascii=False)
    )
    logger.info(f"Saved statistics to {path}")
