"""Schema growth for repeated observation and image fields.

Extra observations and images are stored as additional flat columns
("Observaciones 2", "Imagen 3", ...) so the exported workbook stays a plain
table. All header growth goes through :func:`ensure_column`, which backfills
existing records to keep every record's key set equal to the headers.
"""

from __future__ import annotations

import logging
import re

from .models import Sheet
from .schema import normalize_header

logger = logging.getLogger(__name__)

_TRAILING_NUMBER = re.compile(r"(\d+)\s*$")


def ensure_column(name: str, sheet: Sheet) -> bool:
    """Append column ``name`` to ``sheet`` if it is missing.

    Every existing record gets ``""`` for the new column. Returns ``True``
    when the column was added and ``False`` when it already existed.
    """
    if name in sheet.headers:
        return False
    sheet.headers.append(name)
    for record in sheet.records:
        record[name] = ""
    logger.info(
        "Added column %r to sheet %r", name, sheet.name, extra={"rows": len(sheet.records)}
    )
    return True


def next_numbered_column(prefix: str, sheet: Sheet) -> str:
    """Return the next free ``"<prefix> <N>"`` column name.

    Headers that start with ``prefix`` (accent/case-insensitive) and end in
    an integer contribute their suffix; the result is one past the highest.
    The un-numbered first column counts as 1, so numbering starts at 2.
    """
    stem = normalize_header(prefix).strip()
    highest = 1
    for header in sheet.headers:
        if not normalize_header(header).startswith(stem):
            continue
        match = _TRAILING_NUMBER.search(header)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix} {highest + 1}"


def add_numbered_column(prefix: str, sheet: Sheet) -> str:
    """Create the next numbered column for ``prefix`` and return its name."""
    name = next_numbered_column(prefix, sheet)
    ensure_column(name, sheet)
    return name


__all__ = ["ensure_column", "next_numbered_column", "add_numbered_column"]
