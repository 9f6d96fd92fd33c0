"""In-memory indexes over one catalog snapshot.

``build_index`` makes a single pass over the records and returns a frozen
``IndexSet``. Index groups are tuples and mappings are read-only views, so an
IndexSet can be shared between request threads without locking. A new one is
built on every cache refresh; it never outlives its snapshot.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pipeline.completeness import calculate_completeness, has_complete_specs
from pipeline.config import CAPACITY_BUCKETS, QUALITY_TIERS, SPEED_BUCKETS
from pipeline.models import CanonicalRecord
from pipeline.quality_gates import capacity_bucket
from pipeline.units import extract_capacity_kg, extract_speed_m_min

__all__ = [
    "IndexSet",
    "build_index",
    "capacity_bucket",
    "speed_bucket",
    "matches_capacity_bucket",
    "parsed_capacity",
    "parsed_speed",
]

logger = logging.getLogger(__name__)

Group = Tuple[CanonicalRecord, ...]


def _empty() -> Mapping[Any, Any]:
    return MappingProxyType({})


def speed_bucket(speed_m_min: Optional[float]) -> Optional[str]:
    """Label of the speed bucket for a value in m/min (upper bounds exclusive)."""
    if speed_m_min is None:
        return None
    for label, upper in SPEED_BUCKETS:
        if speed_m_min < upper:
            return label
    return None


def matches_capacity_bucket(capacity_kg: Optional[float], bucket: str) -> bool:
    """True if the value falls in the named bucket; unknown labels never match."""
    if capacity_kg is None or bucket not in dict(CAPACITY_BUCKETS):
        return False
    return capacity_bucket(capacity_kg) == bucket


def parsed_capacity(record: CanonicalRecord) -> Optional[float]:
    if record.capacity_kg is not None:
        return record.capacity_kg
    return extract_capacity_kg(record.load_capacity)


def parsed_speed(record: CanonicalRecord) -> Optional[float]:
    if record.speed_m_min is not None:
        return record.speed_m_min
    return extract_speed_m_min(record.lifting_speed)


def _freeze(groups: Mapping[Any, List[CanonicalRecord]]) -> Mapping[Any, Group]:
    return MappingProxyType({key: tuple(items) for key, items in groups.items()})


@dataclass(frozen=True)
class IndexSet:
    """Read-only lookup structures for one snapshot."""

    records: Group = ()
    by_id: Mapping[str, CanonicalRecord] = field(default_factory=_empty)
    by_manufacturer: Mapping[str, Group] = field(default_factory=_empty)
    by_classification: Mapping[str, Group] = field(default_factory=_empty)
    by_quality_tier: Mapping[str, Group] = field(default_factory=_empty)
    by_capacity_bucket: Mapping[str, Group] = field(default_factory=_empty)
    by_speed_bucket: Mapping[str, Group] = field(default_factory=_empty)
    has_images: Group = ()
    has_complete_specs: Group = ()
    completeness: Mapping[str, int] = field(default_factory=_empty)
    parsed_capacities: Mapping[str, Optional[float]] = field(default_factory=_empty)
    parsed_speeds: Mapping[str, Optional[float]] = field(default_factory=_empty)

    # Sorted filter option lists
    manufacturers: Tuple[str, ...] = ()
    duty_cycles: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()
    speed_types: Tuple[str, ...] = ()
    classifications: Tuple[str, ...] = ()
    quality_tiers: Tuple[str, ...] = ()

    # Aggregates
    manufacturer_stats: Tuple[Mapping[str, Any], ...] = ()
    classification_stats: Tuple[Mapping[str, Any], ...] = ()
    capacity_range: Mapping[str, float] = field(default_factory=_empty)
    data_completeness: Mapping[str, float] = field(default_factory=_empty)

    def __len__(self) -> int:
        return len(self.records)

    def stats(self) -> Dict[str, Any]:
        """Index sizes, for the /api/indexes/stats endpoint and logs."""
        return {
            "totalProducts": len(self.records),
            "byId": len(self.by_id),
            "byManufacturer": len(self.by_manufacturer),
            "byClassification": len(self.by_classification),
            "byQualityTier": {tier: len(items) for tier, items in self.by_quality_tier.items()},
            "byCapacityBucket": {b: len(items) for b, items in self.by_capacity_bucket.items()},
            "bySpeedBucket": {b: len(items) for b, items in self.by_speed_bucket.items()},
            "hasImages": len(self.has_images),
            "hasCompleteSpecs": len(self.has_complete_specs),
            "parsedCapacities": sum(1 for v in self.parsed_capacities.values() if v is not None),
            "parsedSpeeds": sum(1 for v in self.parsed_speeds.values() if v is not None),
        }


def build_index(records: Iterable[CanonicalRecord]) -> IndexSet:
    """Build every index in one pass over the records (after an id check).

    Records must already be validated (non-empty manufacturer, model and id).
    Ids must be unique: a record whose id was already seen is left out of
    every index, so per-id caches always describe the indexed record.
    """
    unique: List[CanonicalRecord] = []
    seen = set()
    for record in records:
        if record.id in seen:
            logger.warning(f"Skipping record with duplicate id {record.id!r} ({record.display_name})")
            continue
        seen.add(record.id)
        unique.append(record)
    records = tuple(unique)

    by_id: Dict[str, CanonicalRecord] = {}
    by_manufacturer: Dict[str, List[CanonicalRecord]] = defaultdict(list)
    by_classification: Dict[str, List[CanonicalRecord]] = defaultdict(list)
    by_quality_tier: Dict[str, List[CanonicalRecord]] = defaultdict(list)
    by_capacity_bucket: Dict[str, List[CanonicalRecord]] = defaultdict(list)
    by_speed_bucket: Dict[str, List[CanonicalRecord]] = defaultdict(list)
    has_images: List[CanonicalRecord] = []
    complete_specs: List[CanonicalRecord] = []
    completeness: Dict[str, int] = {}
    capacities: Dict[str, Optional[float]] = {}
    speeds: Dict[str, Optional[float]] = {}

    models_by_manufacturer: Dict[str, set] = defaultdict(set)
    classification_counts: Dict[str, int] = defaultdict(int)
    duty_cycles, categories, speed_types, tiers = set(), set(), set(), set()
    counts = defaultdict(int)

    for record in records:
        by_id[record.id] = record
        by_manufacturer[record.manufacturer].append(record)
        models_by_manufacturer[record.manufacturer].add(record.model)

        if record.classification:
            counts["classification"] += 1
        for tag in record.classification:
            classification_counts[tag] += 1
            by_classification[str(tag).lower()].append(record)

        if record.duty_cycle:
            duty_cycles.add(record.duty_cycle)
        if record.category and record.category != "Unknown":
            categories.add(record.category)
        if record.speed_type and record.speed_type != "Unknown":
            speed_types.add(record.speed_type)

        # Bucket membership and cached numbers come from the same parse
        capacity = parsed_capacity(record)
        speed = parsed_speed(record)
        capacities[record.id] = capacity
        speeds[record.id] = speed
        if capacity is not None:
            counts["loadCapacity"] += 1
            by_capacity_bucket[capacity_bucket(capacity)].append(record)
        if speed is not None:
            by_speed_bucket[speed_bucket(speed)].append(record)
        if record.lifting_speed:
            counts["liftingSpeed"] += 1
        if record.motor_power:
            counts["motorPower"] += 1

        completeness[record.id] = calculate_completeness(record)
        if record.images:
            has_images.append(record)
        if has_complete_specs(record):
            complete_specs.append(record)

        tier = record.data_quality_tier or "minimal"
        tiers.add(tier)
        by_quality_tier[tier].append(record)

    known = [c for c in capacities.values() if c is not None]
    total = len(records)

    def ratio(count: int) -> float:
        return count / total if total else 0

    index = IndexSet(
        records=records,
        by_id=MappingProxyType(by_id),
        by_manufacturer=_freeze(by_manufacturer),
        by_classification=_freeze(by_classification),
        by_quality_tier=_freeze(by_quality_tier),
        by_capacity_bucket=_freeze(by_capacity_bucket),
        by_speed_bucket=_freeze(by_speed_bucket),
        has_images=tuple(has_images),
        has_complete_specs=tuple(complete_specs),
        completeness=MappingProxyType(completeness),
        parsed_capacities=MappingProxyType(capacities),
        parsed_speeds=MappingProxyType(speeds),
        manufacturers=tuple(sorted(by_manufacturer)),
        duty_cycles=tuple(sorted(duty_cycles)),
        categories=tuple(sorted(categories)),
        speed_types=tuple(sorted(speed_types)),
        classifications=tuple(sorted(classification_counts)),
        quality_tiers=tuple(sorted(
            tiers,
            key=lambda t: (QUALITY_TIERS.index(t) if t in QUALITY_TIERS else len(QUALITY_TIERS), t),
        )),
        manufacturer_stats=tuple(
            MappingProxyType({"name": name, "count": len(items), "models": len(models_by_manufacturer[name])})
            for name, items in sorted(by_manufacturer.items())
        ),
        classification_stats=tuple(
            MappingProxyType({"name": name, "count": count})
            for name, count in sorted(classification_counts.items(), key=lambda kv: -kv[1])
        ),
        capacity_range=MappingProxyType({
            "min": min(known) if known else 0,
            "max": max(known) if known else 0,
        }),
        data_completeness=MappingProxyType({
            "loadCapacity": ratio(counts["loadCapacity"]),
            "liftingSpeed": ratio(counts["liftingSpeed"]),
            "motorPower": ratio(counts["motorPower"]),
            "classification": ratio(counts["classification"]),
            "hasImages": ratio(len(has_images)),
            "hasCompleteSpecs": ratio(len(complete_specs)),
        }),
    )

    logger.info(
        f"Built indexes: {len(index.by_manufacturer)} manufacturers, "
        f"{len(index.by_classification)} classifications, {len(index.by_id)} products indexed"
    )
    return index
