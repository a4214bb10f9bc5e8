"""Logical column roles and header resolution.

Spreadsheets of record name their columns inconsistently ("Nº Serie",
"N° de serie", "Ubicación Técnica"...). A logical role is resolved against
the current headers by accent- and case-insensitive substring matching;
the first header in header order wins. Resolution is always recomputed from
the headers passed in, so schema growth never leaves a stale mapping.
"""

from __future__ import annotations

import logging
import unicodedata
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class LogicalRole(str, Enum):
    """Semantic roles a column may play."""

    ID = "id"
    SERIAL = "serial"
    EQUIPMENT_NAME = "equipment-name"
    LOCATION = "location"
    CALIBRATION_DATE = "calibration-date"
    OBSERVATION = "observation"
    IMAGE = "image"
    VERIFIED = "verified"


# Candidate logical names per role, in priority order.
ROLE_CANDIDATES: Dict[LogicalRole, Tuple[str, ...]] = {
    LogicalRole.SERIAL: ("serie",),
    LogicalRole.EQUIPMENT_NAME: ("equipo",),
    LogicalRole.LOCATION: ("ubicacion", "tecnica", "location"),
    LogicalRole.CALIBRATION_DATE: ("calibracion", "fecha"),
    LogicalRole.OBSERVATION: ("observacion",),
    LogicalRole.IMAGE: ("imagen", "foto"),
    LogicalRole.VERIFIED: ("verificado", "verified"),
}


def normalize_header(text: str) -> str:
    """Lower-case ``text`` and strip diacritics."""
    decomposed = unicodedata.normalize("NFD", str(text).lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def resolve(logical_name: str, headers: Sequence[str]) -> Optional[str]:
    """Return the first header whose normalized form contains ``logical_name``.

    Returns ``None`` when no header matches. A blank logical name never
    matches any header.
    """
    needle = normalize_header(logical_name)
    if not needle:
        return None
    for header in headers:
        if needle in normalize_header(header):
            return header
    return None


def resolve_any(logical_names: Iterable[str], headers: Sequence[str]) -> Optional[str]:
    """Try ``logical_names`` in order and return the first resolved header."""
    for name in logical_names:
        header = resolve(name, headers)
        if header is not None:
            return header
    return None


def resolve_role(
    role: LogicalRole,
    headers: Sequence[str],
    candidates: Optional[Mapping[LogicalRole, Sequence[str]]] = None,
) -> Optional[str]:
    """Resolve a :class:`LogicalRole` to a concrete header.

    The ``id`` role is header #0 by convention. ``candidates`` overrides the
    default candidate names (see ``[schema]`` in the configuration).
    """
    role = LogicalRole(role)
    if role is LogicalRole.ID:
        return headers[0] if headers else None
    names = (candidates or ROLE_CANDIDATES).get(role) or ROLE_CANDIDATES.get(role, ())
    header = resolve_any(names, headers)
    if header is None:
        logger.debug("Role %s not resolvable in headers %s", role.value, list(headers))
    return header


def role_columns(
    role: LogicalRole,
    headers: Sequence[str],
    candidates: Optional[Mapping[LogicalRole, Sequence[str]]] = None,
) -> List[str]:
    """Return every header matching ``role`` in header order.

    Used for repeated roles (observation and image slots) where the first
    column is the primary slot and numbered columns follow. Matches of every
    candidate are merged, so a sheet whose photos live under "Foto" keeps
    that column in the family once "Imagen 2" is added next to it.
    """
    role = LogicalRole(role)
    if role is LogicalRole.ID:
        return list(headers[:1])
    configured = (candidates or ROLE_CANDIDATES).get(role) or ROLE_CANDIDATES.get(role, ())
    names = [normalize_header(name) for name in configured if normalize_header(name)]
    return [h for h in headers if any(name in normalize_header(h) for name in names)]


__all__ = [
    "LogicalRole",
    "ROLE_CANDIDATES",
    "normalize_header",
    "resolve",
    "resolve_any",
    "resolve_role",
    "role_columns",
]
