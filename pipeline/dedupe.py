"""Duplicate detection and merging.

Records sharing a dedupe key are treated as the same physical product and
merged pairwise in encounter order. The result depends on input order when
two records disagree on a string field; every such disagreement is returned
as a ``MergeConflict`` so it can be reviewed.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple, Union

from pipeline.config import IDENTITY_FIELDS
from pipeline.logging_config import get_logger
from pipeline.models import CanonicalRecord
from pipeline.normalizer import refresh_derived_fields

__all__ = [
    "dedupe_key",
    "merge_records",
    "MergeConflict",
    "DedupeResult",
    "deduplicate",
    "assign_unique_ids",
]

logger = get_logger("dedupe")

_SEPARATORS_RE = re.compile(r"[\s\-_]+")
_KEY_GENERIC_RE = re.compile(
    r"\b(?:electric chain hoists?|chain hoists?|hoists?|series|model)\b"
)

# Merge policy doesn't apply to these: they're recomputed afterwards
_DERIVED_KEYS = {
    "capacityKg",
    "speedMMin",
    "dataCompleteness",
    "dataQualityTier",
    "hasCompleteSpecs",
    "populatedFields",
    "missingFields",
}

_UNKNOWN_SOURCES = {"", "unknown"}


@dataclass(frozen=True)
class MergeConflict:
    """Two non-empty, different strings met on the same field."""

    key: str
    field: str
    kept: str
    discarded: str

    def to_dict(self) -> Dict[str, str]:
        return {"key": self.key, "field": self.field, "kept": self.kept, "discarded": self.discarded}


@dataclass
class DedupeResult:
    records: List[CanonicalRecord]
    before_count: int
    after_count: int
    duplicates_removed: int
    conflicts: List[MergeConflict] = field(default_factory=list)
    renamed_ids: Dict[str, str] = field(default_factory=dict)

    def summary(self) -> Dict[str, int]:
        return {
            "beforeCount": self.before_count,
            "afterCount": self.after_count,
            "duplicatesRemoved": self.duplicates_removed,
            "conflicts": len(self.conflicts),
        }


def _get(record: Union[CanonicalRecord, Dict[str, Any]], name: str) -> str:
    value = record.get(name)
    return "" if value is None else str(value)


def dedupe_key(record: Union[CanonicalRecord, Dict[str, Any]]) -> str:
    """Build the "<manufacturer>:<model>" key used to group duplicates.

    >>> dedupe_key({"manufacturer": "Columbus McKinnon", "model": "lodestar-1000"})
    'columbus mckinnon:lodestar 1000'
    """
    manufacturer = " ".join(_get(record, "manufacturer").lower().split())
    tokens = _SEPARATORS_RE.sub(" ", _get(record, "model").lower()).split()

    # Drop a leading manufacturer name repeated in the model ("Demag DC-Pro")
    mfr_words = set(manufacturer.split())
    while len(tokens) > 1 and tokens[0] in mfr_words:
        tokens.pop(0)

    model = " ".join(_KEY_GENERIC_RE.sub(" ", " ".join(tokens)).split())
    return f"{manufacturer}:{model}"


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _union(existing: List[Any], incoming: List[Any]) -> List[Any]:
    merged = list(existing)
    for item in incoming:
        if item not in merged:
            merged.append(item)
    return merged


def _merge_source(existing: Any, incoming: Any) -> Any:
    if existing in _UNKNOWN_SOURCES or existing is None:
        return incoming
    if incoming in _UNKNOWN_SOURCES or incoming is None or incoming == existing:
        return existing
    return "merged"


def merge_records(
    existing: CanonicalRecord,
    incoming: CanonicalRecord,
) -> Tuple[CanonicalRecord, List[MergeConflict]]:
    """Merge two duplicates, keeping the most informative value per field.

    - lists: union, first-seen order, no duplicates
    - strings: the non-empty one; if both are set and differ, the longer
      (ties keep the existing value) and a MergeConflict is reported
    - id, url and audit timestamps: the first-seen value
    - source: "merged" when the two records have different known sources
    - anything else: the existing value unless it is absent

    Returns:
        (merged record, conflicts)
    """
    key = dedupe_key(existing)
    merged = existing.to_dict()
    conflicts: List[MergeConflict] = []

    for name, value in incoming.to_dict().items():
        if name in _DERIVED_KEYS or _is_empty(value):
            continue
        current = merged.get(name)

        if name == "source":
            merged[name] = _merge_source(current, value)
        elif name in IDENTITY_FIELDS:
            if _is_empty(current):
                merged[name] = value
        elif isinstance(value, list):
            merged[name] = _union(current, value) if isinstance(current, list) else list(value)
        elif isinstance(value, str):
            if _is_empty(current):
                merged[name] = value
            elif current != value:
                kept, discarded = (value, current) if len(value) > len(str(current)) else (current, value)
                merged[name] = kept
                conflicts.append(MergeConflict(key, name, str(kept), str(discarded)))
        elif _is_empty(current):
            merged[name] = value

    record = refresh_derived_fields(CanonicalRecord.from_dict(merged))
    return record, conflicts


def deduplicate(records: List[CanonicalRecord]) -> DedupeResult:
    """Collapse records sharing a dedupe key, keeping first-seen order."""
    groups: Dict[str, CanonicalRecord] = {}
    conflicts: List[MergeConflict] = []

    for record in records:
        key = dedupe_key(record)
        if key not in groups:
            groups[key] = record
            continue
        merged, found = merge_records(groups[key], record)
        groups[key] = merged
        conflicts.extend(found)
        for conflict in found:
            logger.warning(
                f"Merge conflict on {conflict.key} field '{conflict.field}': "
                f"kept {conflict.kept!r}, discarded {conflict.discarded!r}"
            )

    deduped = list(groups.values())
    result = DedupeResult(
        records=deduped,
        before_count=len(records),
        after_count=len(groups),
        duplicates_removed=len(records) - len(groups),
        conflicts=conflicts,
        renamed_ids=assign_unique_ids(deduped),
    )
    logger.info(
        f"Deduplication complete: {result.before_count} -> {result.after_count} records "
        f"({result.duplicates_removed} duplicates merged, {len(conflicts)} conflicts)"
    )
    return result


def assign_unique_ids(records: Iterable[CanonicalRecord]) -> Dict[str, str]:
    """Give every record a distinct id, in place.

    Distinct products can slug to the same id ("D8+ 500" and "D8 500" both
    become "chainmaster-d8-500"). The first record keeps the id; later ones
    get the next free "-2", "-3", ... suffix.

    Returns:
        Mapping of new id -> original id for every renamed record
    """
    records = list(records)
    taken = {record.id for record in records}
    seen = set()
    renamed: Dict[str, str] = {}

    for record in records:
        if record.id not in seen:
            seen.add(record.id)
            continue
        original = record.id
        suffix = 2
        while f"{original}-{suffix}" in taken:
            suffix += 1
        record.id = f"{original}-{suffix}"
        taken.add(record.id)
        seen.add(record.id)
        renamed[record.id] = original
        logger.warning(f"Duplicate id {original!r} on {record.display_name}, renamed to {record.id!r}")

    return renamed
