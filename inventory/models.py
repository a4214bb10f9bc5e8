"""Data model for inventory workbooks.

A :class:`Workbook` is an ordered mapping of sheet name to :class:`Sheet`.
Each sheet keeps an ordered header list and a list of records; every record
is a plain ``dict`` whose key set equals the sheet's headers exactly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

Cell = Union[str, int, float, date]
Record = Dict[str, Cell]

# Bumped when the snapshot layout changes; version 1 was the single-sheet shape.
SCHEMA_VERSION = 2


class InventoryError(Exception):
    """Base class for inventory contract violations."""


class OutOfRangeError(InventoryError, IndexError):
    """Raised when a row index does not exist in the sheet."""


class WorkbookNotLoadedError(InventoryError, RuntimeError):
    """Raised when an operation needs a workbook and none is loaded."""


class SheetNotFoundError(InventoryError, KeyError):
    """Raised for an unknown sheet name."""


class UnknownColumnError(InventoryError, KeyError):
    """Raised when a patch names a column that is not a header."""


class IncompleteRecordError(InventoryError, ValueError):
    """Raised when a record's keys differ from the sheet headers."""


@dataclass
class Sheet:
    """A named table with ordered headers and fixed-shape records."""

    name: str
    headers: List[str] = field(default_factory=list)
    records: List[Record] = field(default_factory=list)

    @classmethod
    def from_rows(cls, name: str, rows: Sequence[Mapping[str, Any]]) -> "Sheet":
        """Build a sheet from flat row objects.

        Headers come from the first row's key order. Later rows are reshaped
        to that header set, missing keys filled with ``""``.
        """
        if not rows:
            return cls(name=name)
        headers = [str(key) for key in rows[0].keys()]
        records = [
            {header: _cell(row.get(header, "")) for header in headers} for row in rows
        ]
        return cls(name=name, headers=headers, records=records)

    def blank_record(self) -> Record:
        return {header: "" for header in self.headers}

    def check_index(self, index: int) -> None:
        if not isinstance(index, int) or index < 0 or index >= len(self.records):
            raise OutOfRangeError(
                f"Row {index} is out of range for sheet '{self.name}' "
                f"({len(self.records)} rows)"
            )

    def to_rows(self) -> List[Record]:
        """Return one row object per record in header order."""
        return [{header: record[header] for header in self.headers} for record in self.records]

    def __len__(self) -> int:
        return len(self.records)


@dataclass
class Workbook:
    """Ordered collection of sheets with a current-sheet pointer."""

    sheets: Dict[str, Sheet] = field(default_factory=dict)
    current_sheet: Optional[str] = None

    @property
    def sheet_names(self) -> List[str]:
        return list(self.sheets)

    @property
    def is_empty(self) -> bool:
        return not self.sheets

    def add_sheet(self, sheet: Sheet) -> Sheet:
        self.sheets[sheet.name] = sheet
        if self.current_sheet is None:
            self.current_sheet = sheet.name
        return sheet

    def sheet(self, name: Optional[str] = None) -> Sheet:
        """Return sheet ``name`` or the current sheet."""
        key = name if name is not None else self.current_sheet
        if key is None or key not in self.sheets:
            raise SheetNotFoundError(f"No sheet named {key!r}")
        return self.sheets[key]

    def __iter__(self) -> Iterator[Sheet]:
        return iter(self.sheets.values())


@dataclass
class Snapshot:
    """A serialized workbook with save metadata."""

    workbook: Dict[str, Any]
    saved_at: str
    schema_version: int = SCHEMA_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "saved_at": self.saved_at,
            "workbook": self.workbook,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Snapshot":
        # Version 1 snapshots stored the single sheet at the top level.
        if "workbook" not in data:
            return cls(
                workbook=dict(data),
                saved_at=str(data.get("savedAt", data.get("saved_at", ""))),
                schema_version=int(data.get("schema_version", 1)),
            )
        return cls(
            workbook=dict(data["workbook"]),
            saved_at=str(data.get("saved_at", "")),
            schema_version=int(data.get("schema_version", SCHEMA_VERSION)),
        )


def _cell(value: Any) -> Cell:
    if value is None:
        return ""
    if isinstance(value, (str, int, float, date)):
        return value
    return str(value)


__all__ = [
    "Cell",
    "Record",
    "SCHEMA_VERSION",
    "InventoryError",
    "OutOfRangeError",
    "WorkbookNotLoadedError",
    "SheetNotFoundError",
    "UnknownColumnError",
    "IncompleteRecordError",
    "Sheet",
    "Workbook",
    "Snapshot",
]
