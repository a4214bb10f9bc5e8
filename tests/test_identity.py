"""
Tests for tiered identifier lookup.
"""

from inventory.identity import MatchTier, duplicate_identifiers, filter_records, find
from inventory.models import Sheet

HEADERS = ["ID", "Equipo", "Serie", "Ubicacion"]


def make_sheet(rows):
    return Sheet.from_rows("Equipos", [dict(zip(HEADERS, row)) for row in rows])


SHEET_ROWS = [
    ("1", "Bomba", "ABC-123", "Piso 1"),
    ("2", "Motor", "ABC-1234", "Piso 2"),
    ("3", "Valvula", "XYZ-9", "Piso 1"),
    (4, "Tablero", "", "Piso 3"),
]


class TestFind:
    def test_exact_id(self):
        result = find("3", make_sheet(SHEET_ROWS))
        assert result.tier is MatchTier.EXACT_ID
        assert result.index == 2

    def test_numeric_id_cell(self):
        """Numeric cells compare by their text form."""
        assert find("4", make_sheet(SHEET_ROWS)).index == 3

    def test_integral_float_id(self):
        sheet = Sheet.from_rows("S", [{"ID": 100.0, "Serie": "A"}])
        assert find("100", sheet).index == 0

    def test_exact_secondary_is_case_and_space_insensitive(self):
        result = find(" abc-123 ", make_sheet(SHEET_ROWS))
        assert result.tier is MatchTier.EXACT_SECONDARY
        assert result.matches == [0]
        assert result.index == 0

    def test_id_tier_wins_over_serial(self):
        rows = [("X1", "A", "1", ""), ("1", "B", "Z", "")]
        result = find("1", make_sheet(rows))
        assert result.tier is MatchTier.EXACT_ID
        assert result.index == 1

    def test_partial_suggestions_are_not_selected(self):
        result = find("abc", make_sheet(SHEET_ROWS))
        assert result.tier is MatchTier.PARTIAL
        assert result.matches == [0, 1]
        assert result.index is None

    def test_none(self):
        result = find("nothing", make_sheet(SHEET_ROWS))
        assert result.tier is MatchTier.NONE
        assert result.matches == []

    def test_empty_sheet(self):
        result = find("ABC", Sheet(name="Vacia"))
        assert result.tier is MatchTier.NONE

    def test_blank_query(self):
        assert find("   ", make_sheet(SHEET_ROWS)).tier is MatchTier.NONE

    def test_no_serial_column(self):
        sheet = Sheet.from_rows("S", [{"ID": "1", "Equipo": "Bomba"}])
        assert find("1", sheet).tier is MatchTier.EXACT_ID
        assert find("Bomba", sheet).tier is MatchTier.NONE

    def test_duplicates_return_first(self):
        rows = [("1", "A", "DUP", ""), ("2", "B", "DUP", "")]
        result = find("dup", make_sheet(rows))
        assert result.index == 0
        assert result.matches == [0, 1]
        assert result.has_duplicates


class TestFilterRecords:
    def test_filters_by_serial(self):
        assert filter_records("xyz", make_sheet(SHEET_ROWS)) == [2]

    def test_blank_query_keeps_all(self):
        assert filter_records("", make_sheet(SHEET_ROWS)) == [0, 1, 2, 3]


def test_duplicate_identifiers():
    rows = [("1", "A", "S-1", ""), ("2", "B", "s-1 ", ""), ("3", "C", "", ""), ("4", "D", "", "")]
    assert duplicate_identifiers(make_sheet(rows)) == {"S-1": [0, 1]}
