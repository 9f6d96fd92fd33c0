"""Tests for snapshot storage, the report sink and CSV export."""

import pandas as pd
import pytest

from pipeline.errors import PipelineInputError, SnapshotError
from pipeline.store import (
    JsonReportSink,
    JsonSnapshotStore,
    export_snapshot_to_csv,
    load_raw_records,
    record_to_row,
)


class TestJsonSnapshotStore:
    """Tests for the JSON snapshot file."""

    def test_missing_file_loads_empty(self, tmp_path):
        store = JsonSnapshotStore(tmp_path / "missing.json")
        assert store.exists() is False
        assert store.load() == []

    def test_save_and_load(self, tmp_path, canonical_factory):
        store = JsonSnapshotStore(tmp_path / "processed" / "snapshot.json")

        written = store.save([canonical_factory(1), canonical_factory(2)])
        entries = store.load()

        assert written == 2
        assert [e["id"] for e in entries] == ["hoist-1", "hoist-2"]
        assert entries[0]["loadCapacity"] == "500 kg (1102 lbs)"

    def test_no_temp_files_left(self, tmp_path, canonical_factory):
        path = tmp_path / "snapshot.json"
        JsonSnapshotStore(path).save([canonical_factory(1)])
        assert list(tmp_path.iterdir()) == [path]

    def test_envelope_accepted(self, write_json):
        path = write_json("snapshot.json", {"data": [{"id": "a"}], "meta": {}})
        assert JsonSnapshotStore(path).load() == [{"id": "a"}]

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "snapshot.json"
        path.write_text("[{not json", encoding="utf-8")
        with pytest.raises(SnapshotError):
            JsonSnapshotStore(path).load()

    def test_wrong_shape_raises(self, write_json):
        path = write_json("snapshot.json", {"records": []})
        with pytest.raises(SnapshotError):
            JsonSnapshotStore(path).load()


class TestJsonReportSink:
    def test_round_trip(self, tmp_path):
        sink = JsonReportSink(tmp_path / "report.json")
        assert sink.read() is None

        sink.write({"totalRecords": 3})

        assert sink.read() == {"totalRecords": 3}

    def test_non_object_raises(self, write_json):
        path = write_json("report.json", [1, 2])
        with pytest.raises(SnapshotError):
            JsonReportSink(path).read()


class TestLoadRawRecords:
    """Tests for loading the raw input database."""

    def test_list(self, write_json, raw_catalog):
        path = write_json("raw.json", raw_catalog)
        assert len(load_raw_records(path)) == 4

    def test_missing_file(self, tmp_path):
        with pytest.raises(PipelineInputError):
            load_raw_records(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "raw.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(PipelineInputError):
            load_raw_records(path)

    def test_not_a_list(self, write_json):
        path = write_json("raw.json", {"manufacturer": "CM"})
        with pytest.raises(PipelineInputError):
            load_raw_records(path)


class TestCsvExport:
    """Tests for flattening and CSV export."""

    def test_record_to_row(self):
        row = record_to_row({
            "id": "a",
            "certifications": {"CE": True},
            "voltageOptions": ["230V", "400V"],
        })
        assert row == {"id": "a", "certifications_CE": True, "voltageOptions": "230V, 400V"}

    def test_export(self, tmp_path, canonical_factory):
        path = tmp_path / "out" / "catalog.csv"
        records = [
            canonical_factory(1, voltage_options=["230V", "400V"], certifications={"CE": True}),
            canonical_factory(2),
        ]

        count = export_snapshot_to_csv(records, path)

        df = pd.read_csv(path)
        assert count == 2
        assert len(df) == 2
        assert "certifications_CE" in df.columns
        assert df.loc[0, "voltageOptions"] == "230V, 400V"
        assert list(df["id"]) == ["hoist-1", "hoist-2"]

    def test_empty_export_writes_nothing(self, tmp_path):
        path = tmp_path / "catalog.csv"
        assert export_snapshot_to_csv([], path) == 0
        assert not path.exists()

    def test_snapshot_dicts_accepted(self, tmp_path):
        path = tmp_path / "catalog.csv"
        export_snapshot_to_csv([{"id": "x", "model": "D8"}], path)
        assert pd.read_csv(path).to_dict(orient="records") == [{"id": "x", "model": "D8"}]
