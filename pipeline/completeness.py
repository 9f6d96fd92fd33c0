"""Completeness scoring and quality tiers.

Critical fields carry 70% of the score and secondary fields 30%. The score
and tier are independent from ``has_complete_specs``, which only looks at the
three core specifications.
"""

from typing import Any, List, Mapping, Tuple, Union

from pipeline.config import (
    COMPLETE_SPEC_FIELDS,
    CRITICAL_FIELDS,
    CRITICAL_WEIGHT,
    SECONDARY_FIELDS,
    SECONDARY_WEIGHT,
    TIER_THRESHOLDS,
)
from pipeline.models import CanonicalRecord

__all__ = [
    "has_valid_value",
    "calculate_completeness",
    "quality_tier",
    "has_complete_specs",
    "field_presence",
]

RecordLike = Union[Mapping[str, Any], CanonicalRecord]


def has_valid_value(value: Any) -> bool:
    """Return True when a field counts as populated.

    None, blank strings, the "-" placeholder and empty sequences are missing.
    Zero and False are valid values.
    """
    if value is None:
        return False
    if isinstance(value, str):
        stripped = value.strip()
        return bool(stripped) and stripped != "-"
    if isinstance(value, (list, tuple, set)):
        return len(value) > 0
    return True


def _field(record: RecordLike, name: str) -> Any:
    # CanonicalRecord.get accepts the camelCase names too
    return record.get(name)


def calculate_completeness(record: RecordLike) -> int:
    """Weighted completeness score, 0-100."""
    critical = sum(1 for name in CRITICAL_FIELDS if has_valid_value(_field(record, name)))
    secondary = sum(1 for name in SECONDARY_FIELDS if has_valid_value(_field(record, name)))

    score = (
        CRITICAL_WEIGHT * critical / len(CRITICAL_FIELDS)
        + SECONDARY_WEIGHT * secondary / len(SECONDARY_FIELDS)
    )
    # round half up
    return int(score + 0.5)


def quality_tier(score: int) -> str:
    """Map a completeness score to complete/partial/incomplete/minimal."""
    for minimum, tier in TIER_THRESHOLDS:
        if score >= minimum:
            return tier
    return TIER_THRESHOLDS[-1][1]


def has_complete_specs(record: RecordLike) -> bool:
    """True iff load capacity, lifting speed and motor power are all valid."""
    return all(has_valid_value(_field(record, name)) for name in COMPLETE_SPEC_FIELDS)


def field_presence(record: RecordLike) -> Tuple[List[str], List[str]]:
    """Split the critical fields into (populated, missing)."""
    populated: List[str] = []
    missing: List[str] = []
    for name in CRITICAL_FIELDS:
        (populated if has_valid_value(_field(record, name)) else missing).append(name)
    return populated, missing
