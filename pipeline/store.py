"""Snapshot storage, report sink and CSV export.

The processed catalog is a single JSON file (list of camelCase records). It is
written atomically so readers never observe a half-written snapshot.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from pipeline.errors import PipelineInputError, SnapshotError
from pipeline.logging_config import get_logger
from pipeline.models import CanonicalRecord

__all__ = [
    "JsonSnapshotStore",
    "JsonReportSink",
    "load_raw_records",
    "record_to_row",
    "export_snapshot_to_csv",
]

logger = get_logger("store")

PathLike = Union[str, Path]


def _read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_json_atomic(path: Path, payload: Any) -> None:
    """Write JSON to a temp file in the target directory, then os.replace it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2, default=str)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _unwrap_records(payload: Any, path: Path) -> List[Any]:
    """Accept a bare list or the {"data": [...]} envelope."""
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]
    if not isinstance(payload, list):
        raise SnapshotError(f"Expected a list of records in {path}, got {type(payload).__name__}")
    return payload


class JsonSnapshotStore:
    """Processed catalog persisted as one JSON file."""

    def __init__(self, path: PathLike):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> List[Dict[str, Any]]:
        """Load raw snapshot entries (dicts in camelCase form).

        Returns:
            List of record dicts; empty if the file doesn't exist yet

        Raises:
            SnapshotError: If the file can't be read or parsed
        """
        if not self.path.exists():
            return []
        try:
            payload = _read_json(self.path)
        except (OSError, ValueError) as e:
            raise SnapshotError(f"Failed to load snapshot {self.path}: {e}") from e
        return _unwrap_records(payload, self.path)

    def save(self, records: Iterable[Union[CanonicalRecord, Dict[str, Any]]]) -> int:
        """Write all records atomically. Returns the number written."""
        rows = [r.to_dict() if isinstance(r, CanonicalRecord) else dict(r) for r in records]
        try:
            _write_json_atomic(self.path, rows)
        except OSError as e:
            raise SnapshotError(f"Failed to write snapshot {self.path}: {e}") from e
        logger.info(f"Saved {len(rows)} processed records to {self.path}")
        return len(rows)


class JsonReportSink:
    """Data quality report persisted as JSON."""

    def __init__(self, path: PathLike):
        self.path = Path(path)

    def write(self, report: Any) -> None:
        payload = report.to_dict() if hasattr(report, "to_dict") else report
        try:
            _write_json_atomic(self.path, payload)
        except OSError as e:
            raise SnapshotError(f"Failed to write report {self.path}: {e}") from e
        logger.info(f"Saved data quality report to {self.path}")

    def read(self) -> Optional[Dict[str, Any]]:
        """Return the last report, or None if none was written yet."""
        if not self.path.exists():
            return None
        try:
            payload = _read_json(self.path)
        except (OSError, ValueError) as e:
            raise SnapshotError(f"Failed to read report {self.path}: {e}") from e
        if not isinstance(payload, dict):
            raise SnapshotError(f"Report {self.path} is not a JSON object")
        return payload


def load_raw_records(path: PathLike) -> List[Any]:
    """Load the raw input database.

    Raises:
        PipelineInputError: If the file is missing, unreadable or not a record list
    """
    path = Path(path)
    if not path.exists():
        raise PipelineInputError(f"Input file not found: {path}")
    try:
        payload = _read_json(path)
    except (OSError, ValueError) as e:
        raise PipelineInputError(f"Failed to load input {path}: {e}") from e
    try:
        records = _unwrap_records(payload, path)
    except SnapshotError as e:
        raise PipelineInputError(str(e)) from e
    logger.info(f"Loaded {len(records)} raw records from {path}")
    return records


def record_to_row(record: Union[CanonicalRecord, Dict[str, Any]]) -> Dict[str, Any]:
    """Flatten a record for CSV: nested mappings become prefixed columns, lists are joined.

    {"certifications": {"ce": True}} -> {"certifications_ce": True}
    """
    data = record.to_dict() if isinstance(record, CanonicalRecord) else dict(record)
    row: Dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                row[f"{key}_{sub_key}"] = sub_value
        elif isinstance(value, list):
            row[key] = ", ".join(str(v) for v in value)
        else:
            row[key] = value
    return row


def export_snapshot_to_csv(
    records: Iterable[Union[CanonicalRecord, Dict[str, Any]]],
    path: PathLike,
) -> int:
    """Export processed records to CSV.

    Args:
        records: Canonical records or snapshot dicts
        path: Output CSV path

    Returns:
        Number of rows exported
    """
    rows = [record_to_row(r) for r in records]
    if not rows:
        logger.info("No records to export.")
        return 0

    df = pd.DataFrame(rows)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False, encoding="utf-8")

    logger.info(f"Exported {len(rows)} records to {path}")
    return len(rows)
