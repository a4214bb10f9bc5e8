from __future__ import annotations

import logging
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pyexcel

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_NAME = "Equipos_Actualizados.xlsx"


def _trim_row(row: Sequence[Any], width: int) -> List[Any]:
    cells = list(row[:width])
    return cells + [""] * (width - len(cells))


def rows_from_array(array: Sequence[Sequence[Any]]) -> List[Dict[str, Any]]:
    """Turn a header row plus data rows into flat row objects.

    Blank header cells are named ``__EMPTY``, ``__EMPTY_1``... and repeated
    header names get a ``_1``, ``_2`` suffix so keys stay unique. Fully empty
    data rows are skipped.
    """
    if not array:
        return []
    headers: List[str] = []
    for cell in array[0]:
        name = str(cell).strip() if cell is not None else ""
        base = name or "__EMPTY"
        name = base
        n = 0
        while name in headers:
            n += 1
            name = f"{base}_{n}"
        headers.append(name)
    rows = []
    for raw in array[1:]:
        cells = _trim_row(raw, len(headers))
        if all(c is None or c == "" for c in cells):
            continue
        rows.append({h: ("" if c is None else c) for h, c in zip(headers, cells)})
    return rows


def read_workbook(path: Path) -> "OrderedDict[str, List[Dict[str, Any]]]":
    """Read every sheet of ``path`` as a list of row objects, in sheet order."""
    book = pyexcel.get_book_dict(file_name=str(path))
    document: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
    for name, array in book.items():
        document[name] = rows_from_array(array)
    logger.info(
        "Read %s: %s",
        path,
        ", ".join(f"{name} ({len(rows)} rows)" for name, rows in document.items()) or "no sheets",
    )
    return document


def write_workbook(
    output_path: Path,
    sheets: Mapping[str, Sequence[Mapping[str, Any]]],
    headers: Optional[Mapping[str, Sequence[str]]] = None,
) -> Path:
    """Write sheets of row objects to ``output_path`` (one named sheet each).

    Column order comes from ``headers`` when given, otherwise from the first
    row of each sheet. Sheets without rows still get their header row.
    """
    bookdict: "OrderedDict[str, List[List[Any]]]" = OrderedDict()
    for name, rows in sheets.items():
        columns = list((headers or {}).get(name) or (rows[0].keys() if rows else []))
        table = [columns] + [[row.get(col, "") for col in columns] for row in rows]
        bookdict[name] = table
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if output_path.suffix.lower() == ".csv":
        if len(bookdict) != 1:
            raise ValueError("CSV export holds a single sheet; use .xlsx for workbooks")
        pyexcel.save_as(array=next(iter(bookdict.values())), dest_file_name=str(output_path))
    else:
        pyexcel.save_book_as(bookdict=bookdict, dest_file_name=str(output_path))
    logger.info("Wrote %d sheet(s) to %s", len(bookdict), output_path)
    return output_path


__all__ = ["DEFAULT_EXPORT_NAME", "rows_from_array", "read_workbook", "write_workbook"]
