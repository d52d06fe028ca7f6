# salesledger/interchange.py
"""
JSON and CSV interchange for the item ledger.

- serialize_items / parse_items: the JSON array shape shared by the
  durable slot, the exported file and the import file.
- build_csv: item table plus a trailing TOTALS row.
- export_json / export_csv / read_import_file: the same, against files.
"""
import csv
import io
import json
import os
from pathlib import Path
from typing import Any, Callable, Iterable, List

from .logger import get_logger
from .models import Item, LedgerError, new_item_id
from .totals import compute_totals, per_item_profit

logger = get_logger(__name__)

JSON_EXPORT_FILENAME = "amazon-items.json"
CSV_EXPORT_FILENAME = "amazon-items.csv"

CSV_HEADER = ["name", "price", "cost", "amazonFees", "sold", "profit"]

INVALID_FILE_MESSAGE = "Invalid JSON file"
NOT_AN_ARRAY_MESSAGE = "Uploaded JSON must be an array of items"


class ImportRejected(LedgerError):
    """An import payload was refused; str(exc) is meant for the user."""


def format_number(value: Any) -> str:
    """Integral numbers without a decimal point, everything else as str()."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def serialize_items(items: Iterable[Item], indent: int | None = None) -> str:
    return json.dumps(
        [it.to_dict() for it in items], indent=indent, ensure_ascii=False
    )


def parse_items(
    text: str, id_factory: Callable[[], str] = new_item_id
) -> List[Item]:
    """
    Parse a JSON array of item objects into sanitized Items.
    Entries without an id get one from `id_factory`.
    Raises ImportRejected when the text is not JSON, the top level is
    not an array, or an entry is not an object.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ImportRejected(INVALID_FILE_MESSAGE) from e

    if not isinstance(data, list):
        raise ImportRejected(NOT_AN_ARRAY_MESSAGE)

    items: List[Item] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            logger.debug("Entry %d is %s, not an object.", index, type(entry).__name__)
            raise ImportRejected(INVALID_FILE_MESSAGE)
        items.append(Item.from_dict(entry, id_factory=id_factory))
    return items


def build_csv(items: Iterable[Item]) -> str:
    items = list(items)
    totals = compute_totals(items)

    rows = [CSV_HEADER]
    for it in items:
        rows.append(
            [
                it.name,
                format_number(it.price),
                format_number(it.cost),
                format_number(it.amazon_fees),
                format_number(it.sold),
                format_number(per_item_profit(it)),
            ]
        )
    rows.append(
        [
            "TOTALS",
            format_number(totals.revenue),
            format_number(totals.cost),
            format_number(totals.fees),
            format_number(totals.sold),
            format_number(totals.profit),
        ]
    )

    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    # Rows are newline-joined; no terminator after the totals row
    return buf.getvalue()[:-1]


def _target(directory: str | os.PathLike, filename: str) -> Path:
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    return path / filename


def export_json(items: Iterable[Item], directory: str | os.PathLike = ".") -> Path:
    path = _target(directory, JSON_EXPORT_FILENAME)
    path.write_text(serialize_items(items, indent=2), encoding="utf-8")
    logger.info("Exported JSON to %s", path)
    return path


def export_csv(items: Iterable[Item], directory: str | os.PathLike = ".") -> Path:
    path = _target(directory, CSV_EXPORT_FILENAME)
    path.write_text(build_csv(items), encoding="utf-8")
    logger.info("Exported CSV to %s", path)
    return path


def read_import_file(
    path: str | os.PathLike, id_factory: Callable[[], str] = new_item_id
) -> List[Item]:
    """Read and parse a user-supplied JSON file. Nothing is applied here."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ImportRejected(INVALID_FILE_MESSAGE) from e
    except OSError as e:
        raise ImportRejected(f"Cannot read {path}: {e.strerror or e}") from e
    return parse_items(text, id_factory=id_factory)
