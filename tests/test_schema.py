"""
Tests for logical role resolution against spreadsheet headers.
"""

import pytest

from inventory.schema import (
    LogicalRole,
    normalize_header,
    resolve,
    resolve_any,
    resolve_role,
    role_columns,
)

HEADERS = ["ID", "Equipo", "Nº Serie", "Ubicación Técnica", "Fecha Calibración", "Observaciones"]


class TestResolve:
    """Tests for substring resolution of logical names."""

    def test_accent_and_case_insensitive(self):
        """Accents and case are ignored on both sides."""
        assert resolve("ubicación", ["Ubicacion Tecnica"]) == "Ubicacion Tecnica"
        assert resolve("UBICACION", HEADERS) == "Ubicación Técnica"

    def test_substring_match(self):
        assert resolve("serie", HEADERS) == "Nº Serie"

    def test_first_header_wins(self):
        """Ties go to the first header in header order."""
        headers = ["Fecha Alta", "Fecha Calibracion"]
        assert resolve("fecha", headers) == "Fecha Alta"

    def test_no_match_returns_none(self):
        assert resolve("imagen", HEADERS) is None

    def test_empty_headers(self):
        assert resolve("serie", []) is None

    def test_blank_logical_name(self):
        assert resolve("", HEADERS) is None

    def test_deterministic(self):
        """Repeated calls with unchanged headers give the same answer."""
        results = {resolve("observacion", HEADERS) for _ in range(5)}
        assert results == {"Observaciones"}

    def test_recomputed_after_header_change(self):
        headers = ["ID", "Equipo"]
        assert resolve("serie", headers) is None
        headers.append("Serie")
        assert resolve("serie", headers) == "Serie"


class TestResolveAny:
    def test_falls_back_in_priority_order(self):
        """Location falls back from 'ubicacion' to 'tecnica' to 'location'."""
        assert resolve_any(["ubicacion", "tecnica", "location"], ["Area Tecnica"]) == "Area Tecnica"
        assert resolve_any(["ubicacion", "tecnica", "location"], ["Location"]) == "Location"

    def test_none_when_nothing_matches(self):
        assert resolve_any(["ubicacion", "tecnica"], ["ID"]) is None


class TestResolveRole:
    def test_id_is_first_header(self):
        assert resolve_role(LogicalRole.ID, HEADERS) == "ID"
        assert resolve_role(LogicalRole.ID, []) is None

    def test_calibration_prefers_calibracion(self):
        headers = ["ID", "Fecha Alta", "Fecha Calibración"]
        assert resolve_role(LogicalRole.CALIBRATION_DATE, headers) == "Fecha Calibración"

    def test_calibration_falls_back_to_fecha(self):
        assert resolve_role(LogicalRole.CALIBRATION_DATE, ["ID", "Fecha"]) == "Fecha"

    def test_image_accepts_foto(self):
        assert resolve_role(LogicalRole.IMAGE, ["ID", "Foto"]) == "Foto"

    def test_accepts_string_role(self):
        assert resolve_role("serial", HEADERS) == "Nº Serie"

    def test_custom_candidates(self):
        candidates = {LogicalRole.SERIAL: ("matricula",)}
        assert resolve_role(LogicalRole.SERIAL, ["ID", "Matrícula"], candidates) == "Matrícula"


class TestRoleColumns:
    def test_lists_numbered_columns_in_order(self):
        headers = ["ID", "Observaciones", "Serie", "Observaciones 2", "Observaciones 3"]
        assert role_columns(LogicalRole.OBSERVATION, headers) == [
            "Observaciones",
            "Observaciones 2",
            "Observaciones 3",
        ]

    def test_empty_when_role_missing(self):
        assert role_columns(LogicalRole.IMAGE, HEADERS) == []

    def test_merges_matches_of_every_candidate(self):
        """A "Foto" column and an added "Imagen 2" form one slot family."""
        headers = ["ID", "Foto", "Serie", "Imagen 2", "Fotografia Placa"]
        assert role_columns(LogicalRole.IMAGE, headers) == ["Foto", "Imagen 2", "Fotografia Placa"]

    def test_blank_candidates_ignored(self):
        candidates = {LogicalRole.IMAGE: ("", "foto")}
        assert role_columns(LogicalRole.IMAGE, ["ID", "Foto"], candidates) == ["Foto"]


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Ubicación", "ubicacion"),
        ("CALIBRACIÓN", "calibracion"),
        ("Nº Serie", "nº serie"),
        ("ñandú", "nandu"),
    ],
)
def test_normalize_header(text, expected):
    assert normalize_header(text) == expected
