"""Hoist catalog normalization pipeline package."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from pipeline.classification import resolve_classification
from pipeline.completeness import calculate_completeness, has_complete_specs, quality_tier
from pipeline.config import REPORT_PATH, SNAPSHOT_PATH
from pipeline.dedupe import dedupe_key, deduplicate, merge_records
from pipeline.errors import CatalogError, PipelineInputError, SnapshotError
from pipeline.models import CanonicalRecord, RawRecord
from pipeline.normalizer import Normalizer, normalize_record
from pipeline.quality_gates import QualityReport, evaluate_quality_gates
from pipeline.runner import run_pipeline, run_pipeline_from_files
from pipeline.store import JsonReportSink, JsonSnapshotStore

__all__ = [
    # Version
    "__version__",
    # Config
    "SNAPSHOT_PATH",
    "REPORT_PATH",
    # Models
    "RawRecord",
    "CanonicalRecord",
    "QualityReport",
    # Errors
    "CatalogError",
    "SnapshotError",
    "PipelineInputError",
    # Core functions
    "resolve_classification",
    "calculate_completeness",
    "quality_tier",
    "has_complete_specs",
    "normalize_record",
    "Normalizer",
    "dedupe_key",
    "merge_records",
    "deduplicate",
    "evaluate_quality_gates",
    "run_pipeline",
    "run_pipeline_from_files",
    # Storage
    "JsonSnapshotStore",
    "JsonReportSink",
]
