"""Field workflows built on the record store.

An :class:`InventorySession` is owned by whatever front end drives it (CLI,
web view, tests). It holds the store, the selected row and the schema
settings, and exposes the command pipeline::

    decode_identifier -> find -> (update | register) -> persist

Every method runs to completion on the calling thread. Workflows that a
technician expects to be durable (registration, image capture, verification
scans, imports) persist on success; plain edits leave persisting to the
caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from io_utils.identifiers import decode_identifier, image_filename

from .cells import normalize_value, parse_input_date
from .identity import LookupResult, filter_records, find
from .models import Record, Sheet
from .mutator import add_numbered_column, ensure_column
from .schema import ROLE_CANDIDATES, LogicalRole, resolve_role, role_columns
from .store import PersistResult, RecordStore

logger = logging.getLogger(__name__)


@dataclass
class SchemaSettings:
    """Role candidates and names used when creating new columns."""

    candidates: Dict[LogicalRole, Sequence[str]] = field(
        default_factory=lambda: dict(ROLE_CANDIDATES)
    )
    observation_prefix: str = "Observaciones"
    image_prefix: str = "Imagen"
    verified_column: str = "Verificado"

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "SchemaSettings":
        """Build settings from the ``[schema]`` configuration section."""
        candidates = dict(ROLE_CANDIDATES)
        for role_name, names in (cfg.get("candidates") or {}).items():
            candidates[LogicalRole(role_name)] = tuple(names)
        return cls(
            candidates=candidates,
            observation_prefix=cfg.get("observation_prefix", cls.observation_prefix),
            image_prefix=cfg.get("image_prefix", cls.image_prefix),
            verified_column=cfg.get("verified_column", cls.verified_column),
        )


@dataclass(frozen=True)
class ScanOutcome:
    identifier: str
    result: LookupResult

    @property
    def index(self) -> Optional[int]:
        return self.result.index


@dataclass(frozen=True)
class RegistrationOutcome:
    """Result of :meth:`InventorySession.register`.

    ``status`` is ``"created"``, ``"updated"`` or ``"schema-unresolved"``
    (the sheet has no serial column, nothing was changed).
    """

    status: str
    index: Optional[int] = None
    serial: str = ""
    image: Optional[str] = None
    persisted: Optional[PersistResult] = None


@dataclass(frozen=True)
class ImageOutcome:
    """Result of :meth:`InventorySession.attach_image`.

    The record cell only references ``filename`` when the blob was stored.
    """

    filename: str
    column: str
    stored: PersistResult
    persisted: PersistResult

    @property
    def attached(self) -> bool:
        return self.stored.ok


class InventorySession:
    """Caller-owned state for one technician working one workbook."""

    def __init__(
        self,
        store: RecordStore,
        settings: Optional[SchemaSettings] = None,
    ):
        self.store = store
        self.settings = settings or SchemaSettings()
        self.selected: Optional[int] = None

    # -- schema helpers -------------------------------------------------

    @property
    def sheet(self) -> Sheet:
        return self.store.sheet()

    def column(self, role: LogicalRole, sheet: Optional[Sheet] = None) -> Optional[str]:
        """Resolve ``role`` against the current headers (never cached)."""
        sheet = self.sheet if sheet is None else sheet
        return resolve_role(role, sheet.headers, self.settings.candidates)

    def columns(self, role: LogicalRole, sheet: Optional[Sheet] = None) -> List[str]:
        sheet = self.sheet if sheet is None else sheet
        return role_columns(role, sheet.headers, self.settings.candidates)

    def location_options(self) -> List[str]:
        """Distinct non-empty locations in the current sheet, sorted."""
        key = self.column(LogicalRole.LOCATION)
        if key is None:
            return []
        values = {str(r[key]).strip() for r in self.sheet.records if str(r[key]).strip()}
        return sorted(values)

    def observations(self, index: int) -> Dict[str, Any]:
        """Observation column -> value for row ``index``."""
        sheet = self.sheet
        sheet.check_index(index)
        return {col: sheet.records[index][col] for col in self.columns(LogicalRole.OBSERVATION)}

    # -- import / export ------------------------------------------------

    def import_document(self, document: Mapping[str, Sequence[Mapping[str, Any]]]) -> PersistResult:
        """Replace the workbook with an imported document and save it."""
        self.store.load(document)
        self.selected = None
        return self.store.persist()

    def restore(self):
        self.selected = None
        return self.store.restore()

    def clear(self) -> PersistResult:
        self.selected = None
        return self.store.clear()

    def switch_sheet(self, name: str) -> PersistResult:
        self.selected = None
        return self.store.switch_sheet(name)

    # -- lookup ---------------------------------------------------------

    def lookup(self, query: str) -> LookupResult:
        result = find(query, self.sheet, self.settings.candidates)
        if result.index is not None:
            self.selected = result.index
        return result

    def scan(self, raw: str) -> ScanOutcome:
        """Decode a scanned symbol and look the identifier up."""
        identifier = decode_identifier(raw)
        result = self.lookup(identifier)
        logger.info("Scan %r -> %s %s", identifier, result.tier.value, result.matches)
        return ScanOutcome(identifier=identifier, result=result)

    def filter(self, query: str) -> List[int]:
        return filter_records(query, self.sheet, self.settings.candidates)

    # -- edits ----------------------------------------------------------

    def update(
        self,
        index: int,
        calibration_date: Union[str, date, None] = None,
        location: Optional[str] = None,
        observations: Optional[Mapping[str, str]] = None,
    ) -> Record:
        """Edit the calibration date, location and observations of a row.

        Observation keys that are not observation columns of the sheet are
        ignored. Roles the sheet does not have are skipped.
        """
        sheet = self.sheet
        sheet.check_index(index)
        patch: Dict[str, Any] = {}

        new_date = parse_input_date(calibration_date)
        date_key = self.column(LogicalRole.CALIBRATION_DATE)
        if new_date is not None:
            if date_key is None:
                logger.warning("No calibration date column; date not saved")
            else:
                patch[date_key] = new_date

        if location:
            loc_key = self.column(LogicalRole.LOCATION)
            if loc_key is None:
                logger.warning("No location column; location not saved")
            else:
                patch[loc_key] = location

        obs_columns = set(self.columns(LogicalRole.OBSERVATION))
        for col, text in (observations or {}).items():
            if col in obs_columns:
                patch[col] = (text or "").strip()
            else:
                logger.debug("Ignoring %r: not an observation column", col)

        self.selected = index
        return self.store.mutate(sheet.name, index, patch)

    def add_observation_slot(self) -> str:
        """Create the next observation column and return its name."""
        sheet = self.sheet
        existing = self.columns(LogicalRole.OBSERVATION, sheet)
        if not existing:
            name = self.settings.observation_prefix
            ensure_column(name, sheet)
            return name
        return add_numbered_column(self.settings.observation_prefix, sheet)

    def _free_image_column(self, sheet: Sheet, index: int) -> str:
        columns = self.columns(LogicalRole.IMAGE, sheet)
        for col in columns:
            if sheet.records[index][col] in ("", None):
                return col
        if not columns:
            ensure_column(self.settings.image_prefix, sheet)
            return self.settings.image_prefix
        return add_numbered_column(self.settings.image_prefix, sheet)

    def attach_image(self, index: int, data: bytes) -> ImageOutcome:
        """Store an image for row ``index`` in its next free image slot."""
        sheet = self.sheet
        sheet.check_index(index)
        column = self._free_image_column(sheet, index)
        slot = self.columns(LogicalRole.IMAGE, sheet).index(column) + 1
        serial_key = self.column(LogicalRole.SERIAL, sheet)
        serial = sheet.records[index][serial_key] if serial_key else ""
        if normalize_value(serial) == "":
            serial = f"equipo_{index}"
        filename = image_filename(str(serial), slot)

        stored = self.store.save_image(filename, data)
        if stored.ok:
            self.store.mutate(sheet.name, index, {column: filename})
            logger.info("Attached %s to row %d (%s)", filename, index, column)
        else:
            logger.warning("Image %s not stored; row %d left unchanged", filename, index)
        persisted = self.store.persist()
        return ImageOutcome(filename=filename, column=column, stored=stored, persisted=persisted)

    def images(self, index: int) -> Dict[str, Optional[bytes]]:
        """Filename -> stored bytes (``None`` if missing) for row ``index``."""
        sheet = self.sheet
        sheet.check_index(index)
        result = {}
        for col in self.columns(LogicalRole.IMAGE, sheet):
            name = sheet.records[index][col]
            if name:
                result[str(name)] = self.store.load_image(str(name))
        return result

    # -- registration / verification -----------------------------------

    def register(
        self,
        serial: str,
        location: str,
        observation: str = "",
        image: Optional[bytes] = None,
    ) -> RegistrationOutcome:
        """Register equipment by serial, or update it if the serial exists.

        Raises:
            ValueError: ``serial`` or ``location`` is blank
        """
        serial = (serial or "").strip().upper()
        location = (location or "").strip()
        observation = (observation or "").strip()
        if not serial:
            raise ValueError("A serial number is required")
        if not location:
            raise ValueError("A location is required")

        sheet = self.sheet
        serial_key = self.column(LogicalRole.SERIAL, sheet)
        if serial_key is None:
            logger.warning(
                "No serial column in sheet %r; available: %s", sheet.name, sheet.headers
            )
            return RegistrationOutcome(status="schema-unresolved", serial=serial)

        obs_key = self.column(LogicalRole.OBSERVATION, sheet)
        existing = [
            i for i, r in enumerate(sheet.records) if normalize_value(r[serial_key]) == serial
        ]
        if existing:
            index = existing[0]
            if obs_key:
                self.store.mutate(sheet.name, index, {obs_key: observation})
            status = "updated"
        else:
            record = self.store.new_record(sheet.name)
            record[serial_key] = serial
            loc_key = self.column(LogicalRole.LOCATION, sheet)
            if loc_key:
                record[loc_key] = location
            if obs_key:
                record[obs_key] = observation
            date_key = self.column(LogicalRole.CALIBRATION_DATE, sheet)
            if date_key:
                record[date_key] = date.today()
            index = self.store.append(sheet.name, record)
            status = "created"

        filename = None
        if image is not None:
            attached = self.attach_image(index, image)
            persisted = attached.persisted
            if attached.attached:
                filename = attached.filename
        else:
            persisted = self.store.persist()
        self.selected = index
        logger.info("Registration %s: %s at row %d", status, serial, index)
        return RegistrationOutcome(
            status=status, index=index, serial=serial, image=filename, persisted=persisted
        )

    def verify(self, raw: str, when: Optional[date] = None) -> ScanOutcome:
        """Scan an identifier and stamp the matched row as verified."""
        outcome = self.scan(raw)
        if outcome.index is None:
            return outcome
        sheet = self.sheet
        column = self.column(LogicalRole.VERIFIED, sheet)
        if column is None:
            column = self.settings.verified_column
            ensure_column(column, sheet)
        self.store.mutate(sheet.name, outcome.index, {column: when or date.today()})
        self.store.persist()
        return outcome


__all__ = [
    "SchemaSettings",
    "ScanOutcome",
    "RegistrationOutcome",
    "ImageOutcome",
    "InventorySession",
]
