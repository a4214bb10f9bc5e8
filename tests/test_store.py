"""
Tests for RecordStore: workbook ownership, mutation and snapshots.
"""

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from inventory.models import (
    IncompleteRecordError,
    OutOfRangeError,
    SheetNotFoundError,
    UnknownColumnError,
    WorkbookNotLoadedError,
)
from inventory.store import RecordStore
from src.core.protocols import WORKBOOK_KEY, StorageError
from src.core.storage import JSONStorage

DOCUMENT = {
    "Equipos": [
        {"ID": "1", "Equipo": "Bomba", "Serie": "ABC-100", "Fecha Calibracion": date(2024, 1, 1)},
        {"ID": "2", "Equipo": "Motor", "Serie": "ABC-200", "Fecha Calibracion": ""},
    ],
    "Bajas": [
        {"ID": 7, "Serie": "OLD-1", "Revisado": datetime(2023, 5, 6, 7, 8, 9), "Peso": 1.5},
    ],
    "Vacia": [],
}


@pytest.fixture
def gateway(tmp_path):
    return JSONStorage(data_dir=tmp_path)


@pytest.fixture
def store(gateway):
    store = RecordStore(gateway)
    store.load(DOCUMENT)
    return store


class TestLoad:
    def test_headers_from_first_row(self, store):
        assert store.sheet("Equipos").headers == ["ID", "Equipo", "Serie", "Fecha Calibracion"]

    def test_sheet_order_and_current(self, store):
        assert store.workbook.sheet_names == ["Equipos", "Bajas", "Vacia"]
        assert store.workbook.current_sheet == "Equipos"

    def test_empty_sheet_is_not_an_error(self, store):
        sheet = store.sheet("Vacia")
        assert sheet.headers == []
        assert sheet.records == []

    def test_rows_reshaped_to_headers(self, gateway):
        store = RecordStore(gateway)
        store.load({"S": [{"A": 1, "B": 2}, {"A": 3}]})
        assert store.sheet("S").records[1] == {"A": 3, "B": ""}

    def test_operations_before_load(self, gateway):
        store = RecordStore(gateway)
        with pytest.raises(WorkbookNotLoadedError):
            store.mutate(None, 0, {})


class TestMutate:
    def test_partial_update(self, store):
        record = store.mutate("Equipos", 0, {"Equipo": "Bomba 2"})
        assert record["Equipo"] == "Bomba 2"
        assert record["Serie"] == "ABC-100"

    def test_current_sheet_default(self, store):
        store.mutate(None, 1, {"Serie": "ABC-201"})
        assert store.sheet("Equipos").records[1]["Serie"] == "ABC-201"

    @pytest.mark.parametrize("index", [-1, 2, 99])
    def test_out_of_range(self, store, index):
        with pytest.raises(OutOfRangeError):
            store.mutate("Equipos", index, {"Equipo": "x"})

    def test_unknown_column(self, store):
        with pytest.raises(UnknownColumnError):
            store.mutate("Equipos", 0, {"Nueva": "x"})

    def test_unknown_sheet(self, store):
        with pytest.raises(SheetNotFoundError):
            store.mutate("Nope", 0, {})


class TestAppend:
    def test_append_complete_record(self, store):
        record = store.new_record("Equipos")
        record["Serie"] = "XYZ-200"
        assert store.append("Equipos", record) == 2
        assert store.sheet("Equipos").records[2]["Serie"] == "XYZ-200"

    def test_rejects_incomplete_record(self, store):
        with pytest.raises(IncompleteRecordError):
            store.append("Equipos", {"Serie": "XYZ"})

    def test_rejects_extra_keys(self, store):
        record = store.new_record("Equipos")
        record["Extra"] = "x"
        with pytest.raises(IncompleteRecordError):
            store.append("Equipos", record)


class TestPersistence:
    def test_round_trip(self, store, gateway):
        before = store.export()
        assert store.persist().ok

        restored = RecordStore(gateway).restore()
        assert restored.ok
        assert not restored.migrated
        wb = restored.workbook
        assert wb.sheet_names == ["Equipos", "Bajas", "Vacia"]
        assert wb.current_sheet == "Equipos"
        assert {s.name: s.to_rows() for s in wb} == before
        assert wb.sheet("Equipos").headers == ["ID", "Equipo", "Serie", "Fecha Calibracion"]

    def test_dates_survive_round_trip(self, store, gateway):
        store.persist()
        wb = RecordStore(gateway).restore().workbook
        assert wb.sheet("Equipos").records[0]["Fecha Calibracion"] == date(2024, 1, 1)
        assert wb.sheet("Bajas").records[0]["Revisado"] == datetime(2023, 5, 6, 7, 8, 9)
        assert wb.sheet("Bajas").records[0]["Peso"] == 1.5

    def test_snapshot_metadata(self, store, gateway):
        store.persist()
        raw = gateway.get(WORKBOOK_KEY)
        assert raw["schema_version"] == 2
        assert raw["saved_at"]

    def test_restore_without_snapshot(self, gateway):
        result = RecordStore(gateway).restore()
        assert result.ok
        assert result.workbook.is_empty

    def test_restore_legacy_snapshot(self, gateway):
        gateway.put(
            WORKBOOK_KEY,
            {
                "sheetName": "Hoja1",
                "headers": ["ID", "Serie"],
                "rows": [{"ID": "1", "Serie": "A"}, {"ID": "2"}],
                "savedAt": "2024-01-01T00:00:00Z",
            },
        )
        result = RecordStore(gateway).restore()
        assert result.ok
        assert result.migrated
        assert result.workbook.sheet_names == ["Hoja1"]
        assert result.workbook.sheet("Hoja1").records == [
            {"ID": "1", "Serie": "A"},
            {"ID": "2", "Serie": ""},
        ]

    def test_failed_persist_keeps_memory_state(self, store):
        store.gateway = MagicMock()
        store.gateway.put.return_value = False
        store.mutate("Equipos", 0, {"Equipo": "Cambiado"})
        result = store.persist()
        assert not result.ok
        assert store.sheet("Equipos").records[0]["Equipo"] == "Cambiado"

    def test_failed_restore_is_reported(self, store):
        store.gateway = MagicMock()
        store.gateway.get.side_effect = StorageError("disk gone")
        result = store.restore()
        assert not result.ok
        assert "disk gone" in result.error

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            "not a snapshot",
            {"schema_version": "two", "saved_at": "", "workbook": {}},
            {"schema_version": 2, "saved_at": "", "workbook": [1]},
        ],
    )
    def test_malformed_snapshot_is_reported(self, store, payload):
        store.gateway.put(WORKBOOK_KEY, payload)
        result = store.restore()
        assert not result.ok
        assert result.error
        assert store.workbook.sheet_names == ["Equipos", "Bajas", "Vacia"]
        assert result.workbook is store.workbook

    def test_last_write_wins(self, store, gateway):
        other = RecordStore(gateway)
        other.load({"Otra": [{"A": 1}]})
        store.persist()
        other.persist()
        assert RecordStore(gateway).restore().workbook.sheet_names == ["Otra"]

    def test_clear(self, store, gateway):
        store.persist()
        assert store.clear().ok
        assert gateway.get(WORKBOOK_KEY) is None
        assert not store.is_loaded


class TestSwitchSheet:
    def test_switch_saves_and_moves_pointer(self, store, gateway):
        store.mutate("Equipos", 0, {"Equipo": "Editado"})
        assert store.switch_sheet("Bajas").ok
        assert store.workbook.current_sheet == "Bajas"

        wb = RecordStore(gateway).restore().workbook
        assert wb.current_sheet == "Bajas"
        assert wb.sheet("Equipos").records[0]["Equipo"] == "Editado"

    def test_unknown_sheet(self, store):
        with pytest.raises(SheetNotFoundError):
            store.switch_sheet("Nope")
        assert store.workbook.current_sheet == "Equipos"


class TestExport:
    def test_header_order_preserved(self, store):
        record = store.new_record("Equipos")
        record["Serie"] = "XYZ-200"
        store.append("Equipos", record)
        rows = store.export()["Equipos"]
        assert len(rows) == 3
        assert all(list(r) == ["ID", "Equipo", "Serie", "Fecha Calibracion"] for r in rows)

    def test_export_headers_for_empty_sheets(self, store):
        assert store.export_headers()["Vacia"] == []


class TestImages:
    def test_save_and_load(self, store):
        assert store.save_image("ABC_1.jpg", b"img").ok
        assert store.load_image("ABC_1.jpg") == b"img"
        assert store.load_image("missing.jpg") is None
