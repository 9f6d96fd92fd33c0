"""Quality gates and the data quality report.

Gates are aggregate checks over the processed catalog (enough records, not
too many missing specifications, source tracking). A failing gate is
reported and logged as a warning; it never stops the pipeline.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pipeline.completeness import has_valid_value
from pipeline.config import CAPACITY_BUCKETS, MISSING_DATA_THRESHOLD, QUALITY_GATE_THRESHOLDS
from pipeline.logging_config import get_logger, log_pipeline_event
from pipeline.models import CanonicalRecord, to_camel

__all__ = [
    "GateResult",
    "GateEvaluation",
    "QualityReport",
    "capacity_bucket",
    "count_missing_fields",
    "evaluate_quality_gates",
    "build_quality_report",
    "log_gate_results",
]

logger = get_logger("quality_gates")

# (field, display name, threshold key)
_FIELD_GATES = [
    ("loadCapacity", "Load Capacity", "max_missing_capacity"),
    ("liftingSpeed", "Lifting Speed", "max_missing_speed"),
    ("motorPower", "Motor Power", "max_missing_power"),
    ("classification", "Classification", "max_missing_classification"),
]


@dataclass(frozen=True)
class GateResult:
    name: str
    kind: str  # "min" or "max"
    threshold: float
    actual: float
    passed: bool
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "threshold": self.threshold,
            "actual": self.actual,
            "passed": self.passed,
            "message": self.message,
        }


@dataclass(frozen=True)
class GateEvaluation:
    passed: bool
    summary: str
    gates: List[GateResult]

    @property
    def failed_gates(self) -> List[GateResult]:
        return [g for g in self.gates if not g.passed]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "summary": self.summary,
            "gates": [g.to_dict() for g in self.gates],
            "failedGates": [g.name for g in self.failed_gates],
        }


@dataclass
class QualityReport:
    """Summary of one pipeline run, written next to the snapshot."""

    total_records: int
    processed_records: int
    skipped_records: int
    quality_gates: GateEvaluation
    processing_errors: List[Dict[str, Any]] = field(default_factory=list)
    manufacturer_stats: Dict[str, int] = field(default_factory=dict)
    capacity_distribution: Dict[str, int] = field(default_factory=dict)
    classification_distribution: Dict[str, int] = field(default_factory=dict)
    missing_fields: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    missing_data_fields: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    deduplication: Dict[str, Any] = field(default_factory=dict)
    generated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            to_camel(name): getattr(self, name)
            for name in (
                "total_records",
                "processed_records",
                "skipped_records",
                "processing_errors",
                "manufacturer_stats",
                "capacity_distribution",
                "classification_distribution",
                "missing_fields",
                "missing_data_fields",
                "deduplication",
                "generated_at",
            )
        }
        data["qualityGates"] = self.quality_gates.to_dict()
        return data


def capacity_bucket(capacity_kg: Optional[float]) -> Optional[str]:
    """Label of the capacity bucket for a value in kg (upper bounds inclusive)."""
    if capacity_kg is None:
        return None
    for label, upper in CAPACITY_BUCKETS:
        if capacity_kg <= upper:
            return label
    return None


def _percent(count: int, total: int) -> float:
    return round(count / total * 100, 1) if total else 0.0


def count_missing_fields(records: Sequence[CanonicalRecord]) -> Dict[str, Dict[str, Any]]:
    """Missing counts and percentages for the gated fields and ``source``."""
    counts = Counter()
    for record in records:
        for name, _, _ in _FIELD_GATES:
            if not has_valid_value(record.get(name)):
                counts[name] += 1
        if not record.source or record.source == "unknown":
            counts["source"] += 1

    total = len(records)
    names = [name for name, _, _ in _FIELD_GATES] + ["source"]
    return {name: {"count": counts[name], "percentage": _percent(counts[name], total)} for name in names}


def evaluate_quality_gates(
    records: Sequence[CanonicalRecord],
    thresholds: Optional[Dict[str, float]] = None,
) -> GateEvaluation:
    """Run all gates over the processed records.

    Args:
        records: Processed (deduplicated) records
        thresholds: Override for QUALITY_GATE_THRESHOLDS

    Returns:
        GateEvaluation; passed is True only if every gate passed
    """
    limits = {**QUALITY_GATE_THRESHOLDS, **(thresholds or {})}
    total = len(records)
    missing = count_missing_fields(records)
    gates: List[GateResult] = []

    gates.append(GateResult(
        name="Minimum Records",
        kind="min",
        threshold=limits["min_records"],
        actual=total,
        passed=total >= limits["min_records"],
        message=f"Database has {total} records",
    ))

    for name, label, key in _FIELD_GATES:
        pct = missing[name]["percentage"]
        gates.append(GateResult(
            name=f"Missing {label}",
            kind="max",
            threshold=limits[key],
            actual=pct,
            passed=pct <= limits[key],
            message=f"{missing[name]['count']} of {total} records missing {name}",
        ))

    tracked = total - missing["source"]["count"]
    source_pct = _percent(tracked, total)
    gates.append(GateResult(
        name="Source Tracking",
        kind="min",
        threshold=limits["min_source_tracking"],
        actual=source_pct,
        passed=source_pct >= limits["min_source_tracking"],
        message=f"{tracked} of {total} records have source tracking",
    ))

    failed = [g for g in gates if not g.passed]
    if failed:
        summary = f"FAILED: {len(failed)} of {len(gates)} gates failed"
    else:
        summary = f"PASSED: All {len(gates)} quality gates passed"
    return GateEvaluation(passed=not failed, summary=summary, gates=gates)


def _missing_data_fields(records: Sequence[CanonicalRecord]) -> Dict[str, Dict[str, Any]]:
    """Fields empty in at least MISSING_DATA_THRESHOLD of records."""
    total = len(records)
    if not total:
        return {}
    counts = Counter()
    for record in records:
        for name in CanonicalRecord.field_names():
            if not has_valid_value(getattr(record, name)):
                counts[to_camel(name)] += 1
    return {
        name: {"count": count, "percentage": _percent(count, total)}
        for name, count in sorted(counts.items())
        if count / total >= MISSING_DATA_THRESHOLD
    }


def build_quality_report(
    records: Sequence[CanonicalRecord],
    total: int,
    skipped: int,
    errors: Optional[List[Dict[str, Any]]] = None,
    dedupe: Optional[Dict[str, Any]] = None,
    evaluation: Optional[GateEvaluation] = None,
    now: Optional[datetime] = None,
) -> QualityReport:
    """Assemble the report for a finished run."""
    manufacturers = Counter(r.manufacturer for r in records)
    capacities = Counter(capacity_bucket(r.capacity_kg) or "Unknown" for r in records)
    classifications = Counter(tag for r in records for tag in r.classification)

    return QualityReport(
        total_records=total,
        processed_records=len(records),
        skipped_records=skipped,
        quality_gates=evaluation or evaluate_quality_gates(records),
        processing_errors=list(errors or []),
        manufacturer_stats=dict(manufacturers.most_common()),
        capacity_distribution=dict(capacities),
        classification_distribution=dict(classifications.most_common()),
        missing_fields=count_missing_fields(records),
        missing_data_fields=_missing_data_fields(records),
        deduplication=dict(dedupe or {}),
        generated_at=(now or datetime.now(timezone.utc)).isoformat(),
    )


def log_gate_results(evaluation: GateEvaluation, logger_name: str = "pipeline") -> None:
    """Log each gate and warn when any failed."""
    for gate in evaluation.gates:
        status = "✓" if gate.passed else "✗"
        unit = "" if gate.name == "Minimum Records" else "%"
        sign = "≥" if gate.kind == "min" else "≤"
        logger.info(f"  {status} {gate.name}: {gate.actual}{unit} (threshold: {sign}{gate.threshold}{unit})")
    logger.info(evaluation.summary)

    if not evaluation.passed:
        logger.warning(
            "Quality gates failed. Data quality is below acceptable thresholds; "
            "review the data before production use."
        )

    log_pipeline_event(
        "quality_gates",
        {
            "message": evaluation.summary,
            "passed": evaluation.passed,
            "failed_gates": [g.name for g in evaluation.failed_gates],
        },
        level=logging.INFO if evaluation.passed else logging.WARNING,
        logger_name=logger_name,
    )
