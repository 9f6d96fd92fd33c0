"""Batch orchestration: normalize -> deduplicate -> quality gates -> persist."""

import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from pipeline.config import RAW_DATA_PATH, REPORT_PATH, SNAPSHOT_PATH
from pipeline.dedupe import DedupeResult, deduplicate
from pipeline.logging_config import get_logger, log_pipeline_event
from pipeline.models import CanonicalRecord
from pipeline.normalizer import Normalizer
from pipeline.quality_gates import (
    GateEvaluation,
    QualityReport,
    build_quality_report,
    evaluate_quality_gates,
    log_gate_results,
)
from pipeline.store import JsonReportSink, JsonSnapshotStore, export_snapshot_to_csv, load_raw_records

__all__ = ["PipelineResult", "run_pipeline", "run_pipeline_from_files"]

logger = get_logger("runner")


@dataclass
class PipelineResult:
    records: List[CanonicalRecord]
    report: QualityReport
    dedupe: DedupeResult

    @property
    def gates(self) -> GateEvaluation:
        return self.report.quality_gates

    @property
    def passed(self) -> bool:
        return self.report.quality_gates.passed


def run_pipeline(raw_records: Iterable[Any], now: Optional[datetime] = None) -> PipelineResult:
    """Run the in-memory pipeline over raw records. No I/O.

    Args:
        raw_records: Source dictionaries (or RawRecord instances)
        now: Timestamp stamped on every record and on the report

    Returns:
        PipelineResult with the deduplicated records and the quality report
    """
    raw_records = list(raw_records)
    normalizer = Normalizer(now=now)
    normalized = normalizer.normalize_all(raw_records)

    dedupe = deduplicate(normalized)
    evaluation = evaluate_quality_gates(dedupe.records)
    log_gate_results(evaluation)

    report = build_quality_report(
        dedupe.records,
        total=len(raw_records),
        skipped=normalizer.skipped,
        errors=normalizer.errors,
        dedupe=dedupe.summary(),
        evaluation=evaluation,
        now=now,
    )
    return PipelineResult(records=dedupe.records, report=report, dedupe=dedupe)


def run_pipeline_from_files(
    input_path: Union[str, Path] = RAW_DATA_PATH,
    output_path: Union[str, Path] = SNAPSHOT_PATH,
    report_path: Union[str, Path] = REPORT_PATH,
    csv_path: Optional[Union[str, Path]] = None,
    now: Optional[datetime] = None,
) -> PipelineResult:
    """Load raw records, run the pipeline and persist snapshot and report.

    Args:
        input_path: Raw database JSON
        output_path: Processed snapshot JSON
        report_path: Quality report JSON
        csv_path: Optional CSV export path
        now: Processing timestamp

    Raises:
        PipelineInputError: If the input can't be loaded
        SnapshotError: If the snapshot or report can't be written
    """
    start = time.time()
    raw_records = load_raw_records(input_path)

    result = run_pipeline(raw_records, now=now)

    JsonSnapshotStore(output_path).save(result.records)
    JsonReportSink(report_path).write(result.report)
    if csv_path:
        export_snapshot_to_csv(result.records, csv_path)

    elapsed = time.time() - start
    log_pipeline_event(
        "run_complete",
        {
            "message": (
                f"Pipeline complete: {result.report.processed_records} records "
                f"({result.report.skipped_records} skipped) in {elapsed:.1f}s"
            ),
            "total_records": result.report.total_records,
            "processed_records": result.report.processed_records,
            "skipped_records": result.report.skipped_records,
            "duplicates_removed": result.dedupe.duplicates_removed,
            "merge_conflicts": len(result.dedupe.conflicts),
            "gates_passed": result.passed,
            "duration_seconds": round(elapsed, 2),
        },
    )
    return result

