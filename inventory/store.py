"""In-memory workbook ownership and snapshot persistence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from src.core.protocols import WORKBOOK_KEY, PersistenceGateway, StorageError

from .cells import decode_record, encode_record
from .models import (
    SCHEMA_VERSION,
    Cell,
    IncompleteRecordError,
    Record,
    Sheet,
    Snapshot,
    UnknownColumnError,
    Workbook,
    WorkbookNotLoadedError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistResult:
    """Outcome of a write through the persistence gateway."""

    ok: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class RestoreResult:
    """Outcome of :meth:`RecordStore.restore`."""

    workbook: Workbook
    ok: bool = True
    migrated: bool = False
    error: Optional[str] = None


def workbook_to_dict(workbook: Workbook) -> Dict[str, Any]:
    return {
        "current_sheet": workbook.current_sheet,
        "sheets": [
            {
                "name": sheet.name,
                "headers": list(sheet.headers),
                "records": [encode_record(record) for record in sheet.records],
            }
            for sheet in workbook
        ],
    }


def workbook_from_dict(data: Mapping[str, Any]) -> Workbook:
    workbook = Workbook()
    for entry in data.get("sheets", []):
        headers = [str(h) for h in entry.get("headers", [])]
        records = []
        for raw in entry.get("records", []):
            decoded = decode_record(raw)
            records.append({h: decoded.get(h, "") for h in headers})
        workbook.add_sheet(Sheet(name=str(entry["name"]), headers=headers, records=records))
    current = data.get("current_sheet")
    if current in workbook.sheets:
        workbook.current_sheet = current
    return workbook


def _migrate_legacy(data: Mapping[str, Any]) -> Workbook:
    """Map the single-sheet version 1 layout onto a one-sheet workbook."""
    name = str(data.get("sheetName") or "Sheet1")
    rows = [decode_record(row) for row in data.get("rows", data.get("data", []))]
    headers = [str(h) for h in data.get("headers", [])]
    if not headers and rows:
        headers = list(rows[0].keys())
    sheet = Sheet(
        name=name,
        headers=headers,
        records=[{h: row.get(h, "") for h in headers} for row in rows],
    )
    workbook = Workbook()
    workbook.add_sheet(sheet)
    return workbook


class RecordStore:
    """Owns the workbook and synchronizes it with a persistence gateway.

    Mutations are applied in memory only; callers decide when to call
    :meth:`persist`. A failed persist never rolls back in-memory state.
    """

    def __init__(self, gateway: PersistenceGateway, key: str = WORKBOOK_KEY):
        self.gateway = gateway
        self.key = key
        self._workbook: Optional[Workbook] = None

    @property
    def workbook(self) -> Workbook:
        if self._workbook is None:
            raise WorkbookNotLoadedError("No workbook loaded; import or restore first")
        return self._workbook

    @property
    def is_loaded(self) -> bool:
        return self._workbook is not None

    def sheet(self, name: Optional[str] = None) -> Sheet:
        return self.workbook.sheet(name)

    def load(self, document: Mapping[str, Sequence[Mapping[str, Any]]]) -> Workbook:
        """Build the workbook from parsed sheets (name -> list of row objects)."""
        workbook = Workbook()
        for name, rows in document.items():
            workbook.add_sheet(Sheet.from_rows(str(name), list(rows or [])))
        self._workbook = workbook
        logger.info(
            "Loaded workbook with %d sheet(s): %s",
            len(workbook.sheets),
            ", ".join(f"{s.name} ({len(s)} rows)" for s in workbook),
        )
        return workbook

    def mutate(self, sheet_name: Optional[str], index: int, patch: Mapping[str, Cell]) -> Record:
        """Apply a partial update to one record and return it.

        Raises:
            OutOfRangeError: ``index`` is not a row of the sheet
            UnknownColumnError: ``patch`` names a column that is not a header
        """
        sheet = self.sheet(sheet_name)
        sheet.check_index(index)
        unknown = [key for key in patch if key not in sheet.headers]
        if unknown:
            raise UnknownColumnError(f"Columns not in sheet '{sheet.name}': {unknown}")
        record = sheet.records[index]
        record.update(patch)
        logger.debug("Updated row %d of %r: %s", index, sheet.name, sorted(patch))
        return record

    def append(self, sheet_name: Optional[str], record: Mapping[str, Cell]) -> int:
        """Append a complete record and return its index."""
        sheet = self.sheet(sheet_name)
        if set(record) != set(sheet.headers):
            missing = [h for h in sheet.headers if h not in record]
            extra = [k for k in record if k not in sheet.headers]
            raise IncompleteRecordError(
                f"Record does not match headers of '{sheet.name}' "
                f"(missing={missing}, extra={extra})"
            )
        sheet.records.append({h: record[h] for h in sheet.headers})
        logger.info("Appended row %d to %r", len(sheet.records) - 1, sheet.name)
        return len(sheet.records) - 1

    def new_record(self, sheet_name: Optional[str] = None) -> Record:
        """Return a record for ``sheet_name`` with every field set to ``""``."""
        return self.sheet(sheet_name).blank_record()

    def switch_sheet(self, name: str) -> PersistResult:
        """Make ``name`` the current sheet after saving the workbook state."""
        workbook = self.workbook
        target = workbook.sheet(name)
        result = self.persist()
        previous = workbook.current_sheet
        workbook.current_sheet = target.name
        logger.info("Switched sheet %r -> %r", previous, target.name)
        if previous != target.name:
            # Record the new pointer too; the pre-switch save already holds the edits.
            result = self.persist()
        return result

    def snapshot(self) -> Snapshot:
        return Snapshot(
            workbook=workbook_to_dict(self.workbook),
            saved_at=datetime.now(timezone.utc).isoformat(),
            schema_version=SCHEMA_VERSION,
        )

    def persist(self) -> PersistResult:
        """Write the full workbook as the current snapshot (last write wins)."""
        snapshot = self.snapshot()
        if not self.gateway.put(self.key, snapshot.to_dict()):
            logger.warning("Snapshot save failed; in-memory workbook kept", extra={"key": self.key})
            return PersistResult(ok=False, error="snapshot write failed")
        logger.debug("Persisted snapshot %r at %s", self.key, snapshot.saved_at)
        return PersistResult(ok=True)

    def restore(self) -> RestoreResult:
        """Load the current snapshot, migrating older layouts.

        Returns an empty workbook when nothing has been saved yet. On read
        failure the in-memory workbook, if any, is left untouched.
        """
        try:
            data = self.gateway.get(self.key)
        except StorageError as e:
            logger.warning("Snapshot restore failed: %s", e, extra={"key": self.key})
            return RestoreResult(workbook=self._workbook or Workbook(), ok=False, error=str(e))

        if data is None:
            self._workbook = Workbook()
            return RestoreResult(workbook=self._workbook)

        try:
            if not isinstance(data, Mapping):
                raise TypeError(f"snapshot is a {type(data).__name__}, not an object")
            snapshot = Snapshot.from_dict(data)
            migrated = snapshot.schema_version < SCHEMA_VERSION
            if migrated:
                workbook = _migrate_legacy(snapshot.workbook)
                logger.info(
                    "Migrated snapshot from schema v%d to v%d",
                    snapshot.schema_version,
                    SCHEMA_VERSION,
                )
            else:
                workbook = workbook_from_dict(snapshot.workbook)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Snapshot %r is malformed: %s", self.key, e)
            return RestoreResult(workbook=self._workbook or Workbook(), ok=False, error=str(e))

        self._workbook = workbook
        return RestoreResult(workbook=workbook, migrated=migrated)

    def clear(self) -> PersistResult:
        """Drop the workbook and delete its snapshot."""
        self._workbook = None
        if not self.gateway.delete(self.key):
            try:
                lingering = self.gateway.get(self.key) is not None
            except StorageError:
                lingering = True
            if lingering:
                logger.warning("Snapshot %r could not be deleted", self.key)
                return PersistResult(ok=False, error="snapshot delete failed")
        logger.info("Cleared workbook %r", self.key)
        return PersistResult(ok=True)

    def export(self) -> Dict[str, List[Record]]:
        """Return sheet name -> row objects in header order, in sheet order."""
        return {sheet.name: sheet.to_rows() for sheet in self.workbook}

    def export_headers(self) -> Dict[str, List[str]]:
        return {sheet.name: list(sheet.headers) for sheet in self.workbook}

    def save_image(self, filename: str, data: bytes) -> PersistResult:
        if not self.gateway.put_blob(filename, data):
            logger.warning("Image %r could not be stored", filename)
            return PersistResult(ok=False, error=f"image write failed: {filename}")
        return PersistResult(ok=True)

    def load_image(self, filename: str) -> Optional[bytes]:
        return self.gateway.get_blob(filename)


__all__ = [
    "PersistResult",
    "RestoreResult",
    "RecordStore",
    "workbook_to_dict",
    "workbook_from_dict",
]
