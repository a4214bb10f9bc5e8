from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Union

from .models import Cell

_DATE_TAG = "$date"
_DATETIME_TAG = "$datetime"


def normalize_value(value: Any) -> str:
    """Return ``value`` as trimmed upper-case text for identifier comparison.

    Integral floats (``100.0`` as read back from a spreadsheet) compare as
    their integer form so ``"100"`` and ``100.0`` match.
    """
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, datetime):
        value = value.date()
    return str(value).strip().upper()


def format_date(value: Cell) -> str:
    """Render a date cell as ``dd/mm/yyyy``; other values pass through as text."""
    if isinstance(value, (date, datetime)):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value).strftime("%d/%m/%Y")
        except ValueError:
            return value
    return str(value)


def parse_input_date(value: Union[str, date, None]) -> date | None:
    """Parse an ISO ``YYYY-MM-DD`` string into a :class:`date`.

    Returns ``None`` for empty input. Raises ``ValueError`` for malformed text.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def encode_cell(value: Cell) -> Any:
    """Encode a cell for JSON, tagging dates so they round-trip."""
    if isinstance(value, datetime):
        return {_DATETIME_TAG: value.isoformat()}
    if isinstance(value, date):
        return {_DATE_TAG: value.isoformat()}
    return value


def decode_cell(value: Any) -> Cell:
    if isinstance(value, dict):
        if _DATETIME_TAG in value:
            return datetime.fromisoformat(value[_DATETIME_TAG])
        if _DATE_TAG in value:
            return date.fromisoformat(value[_DATE_TAG])
        return str(value)
    if value is None:
        return ""
    return value


def encode_record(record: Dict[str, Cell]) -> Dict[str, Any]:
    return {key: encode_cell(value) for key, value in record.items()}


def decode_record(record: Dict[str, Any]) -> Dict[str, Cell]:
    return {key: decode_cell(value) for key, value in record.items()}


__all__ = [
    "normalize_value",
    "format_date",
    "parse_input_date",
    "encode_cell",
    "decode_cell",
    "encode_record",
    "decode_record",
]
