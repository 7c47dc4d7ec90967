"""Delimited-text serialization of output rows in schema column order"""
import csv
import io
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from . import config
from .schema import BRICKFOX_FIELDS, TargetFieldMeta
from .units import format_decimal

# Spellings of a tab accepted where a real tab is awkward to type
TAB_ALIASES = ("\\t", "tab", "TAB")


def normalize_delimiter(delimiter: Optional[str]) -> str:
    """
    Resolve the column delimiter, falling back to config.CSV_DELIMITER

    Raises:
        ValueError: if the delimiter is not a single character
    """
    delimiter = delimiter or config.CSV_DELIMITER
    if delimiter in TAB_ALIASES:
        return "\t"
    if len(delimiter) != 1:
        raise ValueError(f"Delimiter must be a single character, got {delimiter!r}")
    return delimiter


def format_value(value: Any, meta: Optional[TargetFieldMeta] = None) -> str:
    """Render a single cell: None -> "", booleans lower-case, prices with two decimals"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        number = Decimal(str(value))
        if meta is not None and meta.type == "price":
            return f"{number:.2f}"
        return format_decimal(number)
    return str(value)


def to_delimited_text(rows: Iterable[Dict[str, Any]],
                      schema: Optional[List[TargetFieldMeta]] = None,
                      delimiter: Optional[str] = None) -> str:
    """
    Serialize rows to delimited text

    Header is the schema key order; each row is written in exactly that order.
    Cells containing the delimiter, a quote or a line break are quoted with
    inner quotes doubled.

    Raises:
        ValueError: if the delimiter is not a single character
    """
    schema = schema if schema is not None else BRICKFOX_FIELDS
    delimiter = normalize_delimiter(delimiter)

    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow([meta.key for meta in schema])
    for row in rows:
        writer.writerow([format_value(row.get(meta.key), meta) for meta in schema])
    return buffer.getvalue()
