"""TTL cache holding the current catalog snapshot and its indexes.

Readers call ``snapshot()`` once per request and work with that object only.
A refresh builds a complete new ``CatalogSnapshot`` (records, IndexSet and
quality gate evaluation) and publishes it with a single assignment, so a
reader never sees a partially rebuilt index. Refreshes are serialized by a
lock; readers only take it when the snapshot is stale.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from pipeline.dedupe import assign_unique_ids
from pipeline.errors import SnapshotError
from pipeline.logging_config import log_pipeline_event
from pipeline.models import CanonicalRecord, slugify
from pipeline.quality_gates import GateEvaluation, evaluate_quality_gates, log_gate_results
from pipeline.store import JsonReportSink, JsonSnapshotStore

from .config import CACHE_TTL_SECONDS
from .index import IndexSet, build_index
from .query import QueryEngine, QueryRequest, QueryResult

__all__ = ["CatalogSnapshot", "CatalogCache", "records_from_entries"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogSnapshot:
    """Everything derived from one load of the snapshot store."""

    records: Tuple[CanonicalRecord, ...]
    index: IndexSet
    quality: GateEvaluation
    loaded_at: float
    generation: int
    error: Optional[str] = None

    def __len__(self) -> int:
        return len(self.records)


def records_from_entries(entries: List[Any]) -> Tuple[List[CanonicalRecord], int]:
    """Convert snapshot entries to records, dropping malformed ones.

    Records that end up sharing an id get a numeric suffix.

    Returns:
        (records, number dropped)
    """
    records: List[CanonicalRecord] = []
    dropped = 0
    for entry in entries:
        if not isinstance(entry, dict):
            dropped += 1
            continue
        try:
            record = CanonicalRecord.from_dict(entry)
        except (TypeError, ValueError) as e:
            logger.warning(f"Dropping malformed snapshot entry: {e}")
            dropped += 1
            continue
        if not record.manufacturer or not record.model:
            dropped += 1
            continue
        if not record.id:
            record.id = f"{slugify(record.manufacturer)}-{slugify(record.model)}"
        records.append(record)
    assign_unique_ids(records)
    return records, dropped


class CatalogCache:
    """Owns the current CatalogSnapshot and refreshes it on TTL expiry.

    Args:
        store: Snapshot store with a ``load()`` method
        ttl_seconds: Maximum age of a snapshot before the next read reloads it
        clock: Monotonic time source (injectable for tests)
        report_sink: Optional sink holding the last pipeline report
    """

    def __init__(
        self,
        store: JsonSnapshotStore,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        report_sink: Optional[JsonReportSink] = None,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.report_sink = report_sink

        self._lock = threading.Lock()
        self._snapshot: Optional[CatalogSnapshot] = None
        self._last_attempt: Optional[float] = None
        self._generation = 0

    def _is_stale(self) -> bool:
        if self._last_attempt is None:
            return True
        return self.clock() - self._last_attempt >= self.ttl_seconds

    def _build(self, records: List[CanonicalRecord], error: Optional[str] = None) -> CatalogSnapshot:
        index = build_index(records)
        quality = evaluate_quality_gates(index.records)
        self._generation += 1
        return CatalogSnapshot(
            records=index.records,
            index=index,
            quality=quality,
            loaded_at=self.clock(),
            generation=self._generation,
            error=error,
        )

    def _keep_current(self, current: Optional[CatalogSnapshot], error: Exception) -> CatalogSnapshot:
        """Publish nothing new after a failed reload; an empty snapshot on first load."""
        if current is None:
            current = self._build([], error=str(error))
            self._snapshot = current
        log_pipeline_event(
            "cache_refresh_failed",
            {"message": f"Snapshot reload failed: {error}", "generation": current.generation},
            level=logging.ERROR,
            logger_name="web",
        )
        return current

    def snapshot(self) -> CatalogSnapshot:
        """Current snapshot, refreshed first if the TTL has expired."""
        current = self._snapshot
        if current is None or self._is_stale():
            return self.refresh()
        return current

    def refresh(self, force: bool = False) -> CatalogSnapshot:
        """Reload the store and publish a new snapshot.

        On a load failure the previous snapshot stays current (or an empty
        one is published on first load); the next attempt happens after
        another TTL window.
        """
        with self._lock:
            current = self._snapshot
            # Another thread may have refreshed while we waited for the lock
            if not force and current is not None and not self._is_stale():
                return current

            self._last_attempt = self.clock()
            start = time.time()
            try:
                entries = self.store.load()
                records, dropped = records_from_entries(entries)
                snapshot = self._build(records)
            except SnapshotError as e:
                logger.error(f"Snapshot reload failed, keeping previous data: {e}")
                return self._keep_current(current, e)
            except Exception as e:
                logger.exception(f"Snapshot rebuild failed, keeping previous data: {e}")
                return self._keep_current(current, e)
            self._snapshot = snapshot

        if dropped:
            logger.warning(f"Dropped {dropped} malformed snapshot entries")
        log_gate_results(snapshot.quality, logger_name="web")
        log_pipeline_event(
            "cache_refresh",
            {
                "message": f"Loaded {len(records)} records (generation {snapshot.generation})",
                "records": len(records),
                "dropped": dropped,
                "generation": snapshot.generation,
                "gates_passed": snapshot.quality.passed,
                "duration_ms": round((time.time() - start) * 1000, 1),
            },
            logger_name="web",
        )
        return snapshot

    def invalidate(self) -> None:
        """Force the next read to reload the store."""
        self._last_attempt = None

    def query(self, request: QueryRequest) -> QueryResult:
        return QueryEngine(self.snapshot().index).execute(request)

    def count(self, request: QueryRequest) -> int:
        return QueryEngine(self.snapshot().index).count(request)

    def get(self, record_id: str) -> Optional[CanonicalRecord]:
        return self.snapshot().index.by_id.get(record_id)

    @property
    def quality_report(self) -> Dict[str, Any]:
        """Gate evaluation of the current snapshot plus the last pipeline report, if any."""
        snapshot = self.snapshot()
        report: Dict[str, Any] = {
            "generation": snapshot.generation,
            "totalRecords": len(snapshot),
            "qualityGates": snapshot.quality.to_dict(),
        }
        if snapshot.error:
            report["loadError"] = snapshot.error
        if self.report_sink is not None:
            try:
                report["pipelineReport"] = self.report_sink.read()
            except SnapshotError as e:
                logger.warning(f"Could not read pipeline report: {e}")
                report["pipelineReport"] = None
        return report
