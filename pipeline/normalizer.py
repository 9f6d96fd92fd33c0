"""Record normalization: raw source records -> canonical records.

``normalize_record`` is pure (no I/O). ``Normalizer`` wraps it for batch runs
and keeps processed/skipped/error counters for the quality report.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pipeline.classification import resolve_classification
from pipeline.completeness import (
    calculate_completeness,
    field_presence,
    has_complete_specs,
    quality_tier,
)
from pipeline.config import GENERIC_MODEL_WORDS, MANUFACTURER_ALIASES, SOURCES
from pipeline.logging_config import get_logger
from pipeline.models import CanonicalRecord, RawRecord, slugify
from pipeline.overrides import apply_overrides
from pipeline.units import (
    extract_capacity_kg,
    extract_speed_m_min,
    normalize_capacity,
    normalize_power,
    normalize_speed,
)

__all__ = [
    "clean_manufacturer_name",
    "clean_model_name",
    "to_bool",
    "to_list",
    "to_mapping",
    "infer_source",
    "refresh_derived_fields",
    "normalize_record",
    "Normalizer",
]

logger = get_logger("normalizer")

_GENERIC_SUFFIX_RE = re.compile(
    r"(?:\s*\b(?:" + "|".join(GENERIC_MODEL_WORDS) + r")\b)+\s*$", re.IGNORECASE
)
_WHITESPACE_RE = re.compile(r"\s+")

_TRUE_STRINGS = {"yes", "true", "y", "1"}

# Computed on every run; stale copies from a re-ingested snapshot are dropped
_DERIVED_KEYS = {
    "capacityKg",
    "speedMMin",
    "dataCompleteness",
    "dataQualityTier",
    "hasCompleteSpecs",
    "populatedFields",
    "missingFields",
    "processedAt",
    "processedDate",
}


def clean_manufacturer_name(name: Optional[str]) -> str:
    """Map known manufacturer spellings to one name (exact match only)."""
    if not name:
        return ""
    name = name.strip()
    return MANUFACTURER_ALIASES.get(name, name)


def clean_model_name(name: Optional[str]) -> str:
    """Remove trailing generic words like "Chain Hoist" or "Series" from a model name.

    When nothing but generic words remain, the stripped original is kept so
    the record doesn't lose its identity.
    """
    if not name:
        return ""
    original = name.strip()
    cleaned = _WHITESPACE_RE.sub(" ", _GENERIC_SUFFIX_RE.sub("", original)).strip()
    return cleaned or original


def to_bool(value: Any) -> bool:
    """Coerce yes/no style values: 'yes', 'true', 'y', '1' and non-zero numbers are True."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if isinstance(value, (int, float)):
        return value != 0
    return False


def to_list(value: Any) -> List[Any]:
    """Wrap a scalar in a list; absent values become an empty list."""
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    return [value]


def to_mapping(value: Any) -> Dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _to_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def infer_source(raw: RawRecord) -> str:
    """Provenance precedence: explicit > manual > llm_enriched > scraped > unknown.

    An explicit source outside the known set is ignored.
    """
    explicit = str(raw.source).strip().lower() if raw.source is not None else ""
    if explicit in SOURCES and explicit != "unknown":
        return explicit
    if explicit and explicit not in SOURCES:
        logger.debug(f"Ignoring unknown source {raw.source!r}")
    if raw.manually_created:
        return "manual"
    if raw.llm_enriched:
        return "llm_enriched"
    if raw.scraped_from or raw.source_url or raw.url:
        return "scraped"
    return "unknown"


def refresh_derived_fields(record: CanonicalRecord) -> CanonicalRecord:
    """Recompute numeric and quality fields from the specification strings."""
    record.capacity_kg = extract_capacity_kg(record.load_capacity)
    record.speed_m_min = extract_speed_m_min(record.lifting_speed)
    record.data_completeness = calculate_completeness(record)
    record.data_quality_tier = quality_tier(record.data_completeness)
    record.has_complete_specs = has_complete_specs(record)
    record.populated_fields, record.missing_fields = field_presence(record)
    return record


def normalize_record(
    raw: Union[RawRecord, Mapping[str, Any]],
    now: Optional[datetime] = None,
) -> Optional[CanonicalRecord]:
    """Normalize one raw record.

    Args:
        raw: RawRecord or the source dictionary
        now: Processing timestamp (default: current UTC time)

    Returns:
        CanonicalRecord, or None when manufacturer or model is missing

    Raises:
        TypeError: If ``raw`` is neither a RawRecord nor a mapping
    """
    if not isinstance(raw, RawRecord):
        raw = RawRecord.from_dict(raw)
    if not raw.has_identity:
        return None

    manufacturer = clean_manufacturer_name(raw.manufacturer)
    model = clean_model_name(raw.model)
    if not manufacturer or not model:
        return None

    fields: Dict[str, Any] = {
        "id": raw.id or f"{slugify(manufacturer)}-{slugify(model)}",
        "manufacturer": manufacturer,
        "model": model,
        "series": _to_text(raw.series),
        "category": _to_text(raw.category),
        "speed_type": _to_text(raw.speed_type),
        "duty_cycle": _to_text(raw.duty_cycle),
        "weight": _to_text(raw.weight),
        "protection_class": _to_text(raw.protection_class),
        "url": _to_text(raw.url),
        "load_capacity": normalize_capacity(raw.load_capacity),
        "lifting_speed": normalize_speed(raw.lifting_speed),
        "motor_power": normalize_power(raw.motor_power),
        "classification": resolve_classification(raw.classification),
        "voltage_options": to_list(raw.voltage_options),
        "body_color": to_list(raw.body_color),
        "common_applications": to_list(raw.common_applications),
        "additional_safety": to_list(raw.additional_safety),
        "images": to_list(raw.images),
        "control_compatibility": to_mapping(raw.control_compatibility),
        "position_feedback": to_mapping(raw.position_feedback),
        "certifications": to_mapping(raw.certifications),
        "quiet_operation": to_bool(raw.quiet_operation),
        "dynamic_lifting": to_bool(raw.dynamic_lifting),
        "lifting_over_people": to_bool(raw.lifting_over_people),
    }

    rule = apply_overrides(fields)
    if rule is not None:
        logger.debug(f"Override {rule.manufacturer}/{rule.model_contains} applied to {fields['id']}")

    extra = {k: v for k, v in raw.extra.items() if k not in _DERIVED_KEYS}
    if raw.scraped_from:
        extra["scrapedFrom"] = raw.scraped_from
    if raw.manually_created:
        extra["_manuallyCreated"] = True
    if raw.llm_enriched:
        extra["llmEnriched"] = True

    processed_at = (now or datetime.now(timezone.utc)).isoformat()
    record = CanonicalRecord(
        **fields,
        source=infer_source(raw),
        source_url=raw.source_url or raw.scraped_from or raw.url,
        processed_at=processed_at,
        extra=extra,
    )
    return refresh_derived_fields(record)


class Normalizer:
    """Batch wrapper around normalize_record with run counters."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now
        self.processed = 0
        self.skipped = 0
        self.errors: List[Dict[str, Any]] = []

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def normalize(self, raw: Any, index: Optional[int] = None) -> Optional[CanonicalRecord]:
        """Normalize one record, counting skips and recording failures."""
        try:
            record = normalize_record(raw, now=self.now)
        except Exception as e:
            ident = raw.get("id") if isinstance(raw, Mapping) else None
            logger.warning(f"Failed to normalize record {index if ident is None else ident}: {e}")
            self.errors.append({"index": index, "id": ident, "error": str(e)})
            return None

        if record is None:
            self.skipped += 1
            logger.debug(f"Skipped record {index}: missing manufacturer or model")
            return None

        self.processed += 1
        return record

    def normalize_all(self, raws: Iterable[Any]) -> List[CanonicalRecord]:
        records = []
        for index, raw in enumerate(raws):
            record = self.normalize(raw, index=index)
            if record is not None:
                records.append(record)
        logger.info(
            f"Normalized {self.processed} records "
            f"({self.skipped} skipped, {self.error_count} errors)"
        )
        return records
