"""Tiered resolution of a scanned or typed identifier to sheet rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Mapping, Optional, Sequence

from .cells import normalize_value
from .models import Sheet
from .schema import LogicalRole, resolve_role

logger = logging.getLogger(__name__)


class MatchTier(str, Enum):
    EXACT_ID = "exact-id"
    EXACT_SECONDARY = "exact-secondary"
    PARTIAL = "partial"
    NONE = "none"


@dataclass(frozen=True)
class LookupResult:
    """Outcome of :func:`find`.

    ``matches`` lists row indices in sheet order. For the exact tiers the
    first index is the selected row; further indices are duplicates of the
    same identifier. Partial matches are suggestions only.
    """

    tier: MatchTier
    matches: List[int] = field(default_factory=list)

    @property
    def is_exact(self) -> bool:
        return self.tier in (MatchTier.EXACT_ID, MatchTier.EXACT_SECONDARY)

    @property
    def index(self) -> Optional[int]:
        """Selected row for an exact match, else ``None``."""
        if self.is_exact and self.matches:
            return self.matches[0]
        return None

    @property
    def has_duplicates(self) -> bool:
        return self.is_exact and len(self.matches) > 1


NO_MATCH = LookupResult(MatchTier.NONE, [])


def _exact(target: str, column: str, sheet: Sheet) -> List[int]:
    return [
        index
        for index, record in enumerate(sheet.records)
        if normalize_value(record.get(column)) == target
    ]


def find(
    query: str,
    sheet: Sheet,
    candidates: Optional[Mapping[LogicalRole, Sequence[str]]] = None,
) -> LookupResult:
    """Resolve ``query`` against ``sheet``.

    Tiers, first success wins: exact match on the id column (header #0),
    exact match on the serial column, then substring matches on the serial
    column as suggestions.
    """
    target = normalize_value(query)
    if not target or not sheet.records:
        return NO_MATCH

    id_key = resolve_role(LogicalRole.ID, sheet.headers)
    if id_key is not None:
        matches = _exact(target, id_key, sheet)
        if matches:
            _log_hit(MatchTier.EXACT_ID, target, matches)
            return LookupResult(MatchTier.EXACT_ID, matches)

    serial_key = resolve_role(LogicalRole.SERIAL, sheet.headers, candidates)
    if serial_key is None:
        return NO_MATCH

    matches = _exact(target, serial_key, sheet)
    if matches:
        _log_hit(MatchTier.EXACT_SECONDARY, target, matches)
        return LookupResult(MatchTier.EXACT_SECONDARY, matches)

    partial = [
        index
        for index, record in enumerate(sheet.records)
        if target in normalize_value(record.get(serial_key))
    ]
    if partial:
        logger.debug("Query %r has %d partial suggestions", target, len(partial))
        return LookupResult(MatchTier.PARTIAL, partial)
    return NO_MATCH


def _log_hit(tier: MatchTier, target: str, matches: List[int]) -> None:
    if len(matches) > 1:
        logger.warning(
            "Identifier %r matches %d rows (%s); using row %d",
            target,
            len(matches),
            tier.value,
            matches[0],
        )
    else:
        logger.debug("Identifier %r resolved at %s to row %d", target, tier.value, matches[0])


def filter_records(
    query: str,
    sheet: Sheet,
    candidates: Optional[Mapping[LogicalRole, Sequence[str]]] = None,
) -> List[int]:
    """Return indices whose serial contains ``query``.

    A blank query, or a sheet without a serial column, keeps every row.
    """
    target = normalize_value(query)
    serial_key = resolve_role(LogicalRole.SERIAL, sheet.headers, candidates)
    if not target or serial_key is None:
        return list(range(len(sheet.records)))
    return [
        index
        for index, record in enumerate(sheet.records)
        if target in normalize_value(record.get(serial_key))
    ]


def duplicate_identifiers(
    sheet: Sheet,
    role: LogicalRole = LogicalRole.SERIAL,
    candidates: Optional[Mapping[LogicalRole, Sequence[str]]] = None,
) -> dict[str, List[int]]:
    """Map each non-empty identifier that occurs more than once to its rows."""
    key = resolve_role(role, sheet.headers, candidates)
    if key is None:
        return {}
    seen: dict[str, List[int]] = {}
    for index, record in enumerate(sheet.records):
        value = normalize_value(record.get(key))
        if value:
            seen.setdefault(value, []).append(index)
    return {value: rows for value, rows in seen.items() if len(rows) > 1}


__all__ = [
    "MatchTier",
    "LookupResult",
    "NO_MATCH",
    "find",
    "filter_records",
    "duplicate_identifiers",
]
