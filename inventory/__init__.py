"""Inventory record reconciliation.

Resolve spreadsheet columns to logical roles, look equipment up by scanned
or typed identifiers, grow the schema for extra observations and images,
and keep the workbook persisted as versioned snapshots.
"""

from .identity import LookupResult, MatchTier, duplicate_identifiers, filter_records, find
from .models import (
    IncompleteRecordError,
    InventoryError,
    OutOfRangeError,
    Sheet,
    SheetNotFoundError,
    Snapshot,
    UnknownColumnError,
    Workbook,
    WorkbookNotLoadedError,
)
from .mutator import add_numbered_column, ensure_column, next_numbered_column
from .schema import LogicalRole, resolve, resolve_any, resolve_role, role_columns
from .session import (
    ImageOutcome,
    InventorySession,
    RegistrationOutcome,
    ScanOutcome,
    SchemaSettings,
)
from .store import PersistResult, RecordStore, RestoreResult

__all__ = [
    "LookupResult",
    "MatchTier",
    "duplicate_identifiers",
    "filter_records",
    "find",
    "IncompleteRecordError",
    "InventoryError",
    "OutOfRangeError",
    "Sheet",
    "SheetNotFoundError",
    "Snapshot",
    "UnknownColumnError",
    "Workbook",
    "WorkbookNotLoadedError",
    "add_numbered_column",
    "ensure_column",
    "next_numbered_column",
    "LogicalRole",
    "resolve",
    "resolve_any",
    "resolve_role",
    "role_columns",
    "ImageOutcome",
    "InventorySession",
    "RegistrationOutcome",
    "ScanOutcome",
    "SchemaSettings",
    "PersistResult",
    "RecordStore",
    "RestoreResult",
]
