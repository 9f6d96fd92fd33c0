"""Filtered, sorted and paginated catalog queries over an IndexSet.

When no free-text query is active and exactly one indexed filter is present,
the matching index group is the starting set; otherwise the whole snapshot is
scanned. Remaining filters are applied as one pass of short-circuiting
predicates.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from pipeline.completeness import has_complete_specs
from pipeline.models import CanonicalRecord

from .config import DEFAULT_PAGE_SIZE
from .index import IndexSet, matches_capacity_bucket, speed_bucket

__all__ = ["QueryRequest", "QueryResult", "QueryEngine", "suggest"]

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
MAX_SUGGESTIONS = 20

Predicate = Callable[[CanonicalRecord], bool]


def _positive_int(value: Any, default: int) -> int:
    """Parse a positive integer, falling back to ``default`` for anything else."""
    if isinstance(value, bool):
        return default
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class QueryRequest:
    """One catalog query. Empty values mean "no filter"."""

    query: Optional[str] = None
    manufacturer: Optional[str] = None
    classification: Optional[str] = None
    category: Optional[str] = None
    speed_type: Optional[str] = None
    duty_cycle: Optional[str] = None
    quality_tier: Optional[str] = None
    capacity_bucket: Optional[str] = None
    speed_bucket: Optional[str] = None
    data_quality: Optional[str] = None  # "complete" or "hasImages"
    min_capacity: Optional[float] = None
    max_capacity: Optional[float] = None
    sort_by: Optional[str] = None
    sort_order: str = "asc"
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_PAGE_SIZE

    def __post_init__(self):
        self.page = _positive_int(self.page, DEFAULT_PAGE)
        self.limit = _positive_int(self.limit, DEFAULT_PAGE_SIZE)
        self.sort_order = "desc" if str(self.sort_order).lower() == "desc" else "asc"

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "QueryRequest":
        """Build a request from camelCase query-string parameters.

        ``dataQuality=tier-<x>`` selects a quality tier; invalid page/limit
        values fall back to the defaults instead of failing.
        """
        data_quality = _text(params.get("dataQuality"))
        quality_tier = _text(params.get("qualityTier"))
        if data_quality and data_quality.startswith("tier-"):
            quality_tier = data_quality[len("tier-"):] or None
            data_quality = None

        return cls(
            query=_text(params.get("q") or params.get("query")),
            manufacturer=_text(params.get("manufacturer")),
            classification=_text(params.get("classification")),
            category=_text(params.get("category")),
            speed_type=_text(params.get("speedType")),
            duty_cycle=_text(params.get("dutyCycle")),
            quality_tier=quality_tier,
            capacity_bucket=_text(params.get("capacity") or params.get("capacityBucket")),
            speed_bucket=_text(params.get("speedBucket")),
            data_quality=data_quality,
            min_capacity=_optional_float(params.get("minCapacity")),
            max_capacity=_optional_float(params.get("maxCapacity")),
            sort_by=_text(params.get("sortBy")),
            sort_order=params.get("sortOrder") or "asc",
            page=params.get("page", DEFAULT_PAGE),
            limit=params.get("limit", DEFAULT_PAGE_SIZE),
        )

    def applied_filters(self) -> Dict[str, Any]:
        """The effective filter values, keyed by query-string name."""
        filters = {
            "q": self.query,
            "manufacturer": self.manufacturer,
            "classification": self.classification,
            "category": self.category,
            "speedType": self.speed_type,
            "dutyCycle": self.duty_cycle,
            "qualityTier": self.quality_tier,
            "capacity": self.capacity_bucket,
            "speedBucket": self.speed_bucket,
            "dataQuality": self.data_quality,
            "minCapacity": self.min_capacity,
            "maxCapacity": self.max_capacity,
        }
        applied = {k: v for k, v in filters.items() if v is not None}
        if self.sort_by:
            applied["sortBy"] = self.sort_by
            applied["sortOrder"] = self.sort_order
        return applied


@dataclass
class QueryResult:
    results: List[CanonicalRecord]
    total_count: int
    applied_filters: Dict[str, Any]
    page: int
    limit: int
    used_index: Optional[str] = None
    total_pages: int = field(init=False)

    def __post_init__(self):
        self.total_pages = math.ceil(self.total_count / self.limit) if self.limit else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "totalCount": self.total_count,
            "appliedFilters": self.applied_filters,
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "totalPages": self.total_pages,
                "hasMore": self.page < self.total_pages,
            },
        }


class QueryEngine:
    """Answers QueryRequests against one IndexSet."""

    def __init__(self, index: IndexSet):
        self.index = index

    def _starting_set(self, request: QueryRequest) -> Tuple[Sequence[CanonicalRecord], Optional[str]]:
        """Pick an index group when exactly one indexed filter is set and no free text."""
        index = self.index
        # Listed in priority order
        candidates = [
            ("manufacturer", request.manufacturer,
             lambda: index.by_manufacturer.get(request.manufacturer, ())),
            ("classification", request.classification,
             lambda: index.by_classification.get(request.classification.lower(), ())),
            ("capacity", request.capacity_bucket,
             lambda: index.by_capacity_bucket.get(request.capacity_bucket, ())),
            ("qualityTier", request.quality_tier,
             lambda: index.by_quality_tier.get(request.quality_tier, ())),
            ("hasCompleteSpecs", request.data_quality == "complete" or None,
             lambda: index.has_complete_specs),
            ("hasImages", request.data_quality == "hasImages" or None,
             lambda: index.has_images),
        ]
        present = [(name, lookup) for name, value, lookup in candidates if value]
        if request.query or len(present) != 1:
            return index.records, None
        name, lookup = present[0]
        return lookup(), name

    def _predicates(self, request: QueryRequest, used_index: Optional[str]) -> List[Predicate]:
        index = self.index
        checks: List[Predicate] = []

        if request.query:
            needle = request.query.lower()

            def matches_text(r: CanonicalRecord) -> bool:
                return any(
                    needle in (value or "").lower()
                    for value in (r.manufacturer, r.model, r.series, r.load_capacity,
                                  " ".join(map(str, r.classification)))
                )

            checks.append(matches_text)

        if request.manufacturer and used_index != "manufacturer":
            checks.append(lambda r: r.manufacturer == request.manufacturer)
        if request.capacity_bucket and used_index != "capacity":
            checks.append(lambda r: matches_capacity_bucket(
                index.parsed_capacities.get(r.id), request.capacity_bucket))
        if request.classification and used_index != "classification":
            tag = request.classification.lower()
            checks.append(lambda r: tag in (str(c).lower() for c in r.classification))
        if request.category:
            checks.append(lambda r: r.category == request.category)
        if request.speed_type:
            checks.append(lambda r: r.speed_type == request.speed_type)
        if request.duty_cycle:
            checks.append(lambda r: r.duty_cycle == request.duty_cycle)
        if request.quality_tier and used_index != "qualityTier":
            checks.append(lambda r: (r.data_quality_tier or "minimal") == request.quality_tier)
        if request.data_quality == "complete" and used_index != "hasCompleteSpecs":
            checks.append(has_complete_specs)
        if request.data_quality == "hasImages" and used_index != "hasImages":
            checks.append(lambda r: bool(r.images))
        if request.speed_bucket:
            checks.append(lambda r: speed_bucket(index.parsed_speeds.get(r.id)) == request.speed_bucket)
        if request.min_capacity is not None:
            checks.append(lambda r: (index.parsed_capacities.get(r.id) is not None
                                     and index.parsed_capacities[r.id] >= request.min_capacity))
        if request.max_capacity is not None:
            checks.append(lambda r: (index.parsed_capacities.get(r.id) is not None
                                     and index.parsed_capacities[r.id] <= request.max_capacity))
        return checks

    def _filter(self, request: QueryRequest) -> Tuple[List[CanonicalRecord], Optional[str]]:
        start, used_index = self._starting_set(request)
        checks = self._predicates(request, used_index)
        # all() stops at the first failing predicate
        results = [r for r in start if all(check(r) for check in checks)]
        return results, used_index

    def _sort_key(self, sort_by: str) -> Callable[[CanonicalRecord], Any]:
        index = self.index
        if sort_by == "capacity":
            return lambda r: index.parsed_capacities.get(r.id) or 0
        if sort_by == "speed":
            return lambda r: index.parsed_speeds.get(r.id) or 0
        if sort_by == "completeness":
            return lambda r: index.completeness.get(r.id) or 0
        if sort_by == "classification":
            return lambda r: " ".join(map(str, r.classification)).casefold()

        def raw_key(r: CanonicalRecord) -> Tuple[int, Any]:
            value = r.get(sort_by)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return (0, value)
            return (1, "" if value is None else str(value).casefold())

        return raw_key

    def execute(self, request: QueryRequest) -> QueryResult:
        results, used_index = self._filter(request)

        if request.sort_by:
            # sorted() is stable, also with reverse=True
            results = sorted(
                results,
                key=self._sort_key(request.sort_by),
                reverse=request.sort_order == "desc",
            )

        skip = (request.page - 1) * request.limit
        page = results[skip:skip + request.limit]

        logger.debug(
            f"Query matched {len(results)} records (index: {used_index or 'full scan'}), "
            f"returning {len(page)}"
        )
        return QueryResult(
            results=page,
            total_count=len(results),
            applied_filters=request.applied_filters(),
            page=request.page,
            limit=request.limit,
            used_index=used_index,
        )

    def count(self, request: QueryRequest) -> int:
        """Number of matches, without sorting or pagination."""
        results, _ = self._filter(request)
        return len(results)


def suggest(index: IndexSet, text: Optional[str], limit: int = 10) -> List[Dict[str, Any]]:
    """Autocomplete suggestions: manufacturers, classifications, then up to 5 products.

    Queries shorter than two characters return nothing.
    """
    needle = (text or "").strip().lower()
    if len(needle) < 2:
        return []
    limit = min(_positive_int(limit, 10), MAX_SUGGESTIONS)

    suggestions: List[Dict[str, Any]] = []
    for manufacturer in index.manufacturers:
        if needle in manufacturer.lower():
            suggestions.append({
                "type": "manufacturer",
                "value": manufacturer,
                "label": manufacturer,
                "count": len(index.by_manufacturer.get(manufacturer, ())),
            })

    for tag in index.classifications:
        if needle in str(tag).lower():
            suggestions.append({
                "type": "classification",
                "value": tag,
                "label": str(tag).upper(),
                "count": len(index.by_classification.get(str(tag).lower(), ())),
            })

    seen = set()
    products = 0
    for record in index.by_id.values():
        if products >= 5:
            break
        if needle in record.model.lower() or needle in (record.series or "").lower():
            key = (record.manufacturer, record.model)
            if key in seen:
                continue
            seen.add(key)
            suggestions.append({
                "type": "product",
                "value": record.id,
                "label": record.display_name,
                "manufacturer": record.manufacturer,
                "model": record.model,
            })
            products += 1

    type_order = {"manufacturer": 0, "classification": 1, "product": 2}
    suggestions.sort(key=lambda s: (type_order[s["type"]], -s.get("count", 0), s["label"].casefold()))
    return suggestions[:limit]
