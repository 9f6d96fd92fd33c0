"""Configuration and constants for the normalization pipeline."""

import os
from typing import Dict, List, Tuple

__all__ = [
    "RAW_DATA_PATH",
    "SNAPSHOT_PATH",
    "REPORT_PATH",
    "CSV_EXPORT_PATH",
    "UNIT_CONVERSIONS",
    "CLASSIFICATION_ALIASES",
    "MANUFACTURER_ALIASES",
    "GENERIC_MODEL_WORDS",
    "CRITICAL_FIELDS",
    "SECONDARY_FIELDS",
    "COMPLETE_SPEC_FIELDS",
    "CRITICAL_WEIGHT",
    "SECONDARY_WEIGHT",
    "QUALITY_TIERS",
    "TIER_THRESHOLDS",
    "CAPACITY_BUCKETS",
    "SPEED_BUCKETS",
    "QUALITY_GATE_THRESHOLDS",
    "MISSING_DATA_THRESHOLD",
    "SOURCES",
    "IDENTITY_FIELDS",
    "LIST_FIELDS",
    "MAPPING_FIELDS",
    "BOOLEAN_FIELDS",
]

# Input/output paths (env overrides for deployments)
RAW_DATA_PATH = os.getenv("HOIST_RAW_DATA_PATH", "data/hoist_database.json")
SNAPSHOT_PATH = os.getenv("HOIST_SNAPSHOT_PATH", "data/processed/hoist_database_processed.json")
REPORT_PATH = os.getenv("HOIST_REPORT_PATH", "data/processed/data_quality_report.json")
CSV_EXPORT_PATH = os.getenv("HOIST_CSV_EXPORT_PATH", "data/processed/hoist_database_processed.csv")


# =============================================================================
# Units
# =============================================================================
# (from_unit, to_unit) -> factor. Unit names are the canonical lower-case
# tokens produced by pipeline.units.

UNIT_CONVERSIONS: Dict[Tuple[str, str], float] = {
    # mass
    ("kg", "lbs"): 2.20462,
    ("lbs", "kg"): 0.453592,
    ("t", "kg"): 1000.0,
    ("kg", "t"): 0.001,
    ("t", "lbs"): 1000.0 * 2.20462,
    # speed
    ("m/min", "ft/min"): 3.28084,
    ("ft/min", "m/min"): 0.3048,
    ("m/s", "m/min"): 60.0,
    ("m/min", "m/s"): 1 / 60.0,
    # power
    ("kw", "hp"): 1.34102,
    ("hp", "kw"): 0.745699,
    ("w", "kw"): 0.001,
    ("kw", "w"): 1000.0,
}


# =============================================================================
# Vocabulary
# =============================================================================

# Canonical tag -> accepted aliases (all lower-case)
CLASSIFICATION_ALIASES: Dict[str, List[str]] = {
    "d8": ["d8", "bgv-d8", "bgvd8", "d8standard"],
    "d8+": ["d8+", "d8plus", "d8-plus", "bgv-d8+", "bgvd8+", "bgv-d8plus"],
    "bgv-c1": ["bgv-c1", "bgvc1", "c1"],
    "ansi": ["ansi", "asme"],
}

# Exact-match manufacturer name cleanup
MANUFACTURER_ALIASES: Dict[str, str] = {
    "Columbus McKinnon (CM)": "Columbus McKinnon",
    "CM": "Columbus McKinnon",
    "CM Lodestar": "Columbus McKinnon",
    "CM Works": "Columbus McKinnon",
    "Chainmaster GmbH": "Chainmaster",
    "Verlinde (Stagemaker)": "Verlinde",
    "Stagemaker": "Verlinde",
    "Movecat GmbH": "Movecat",
    "GIS AG Switzerland": "GIS AG",
}

# Regexes for generic words stripped from model names, longest phrase first
GENERIC_MODEL_WORDS: List[str] = [
    r"electric\s+chain\s+hoists?",
    r"chain\s+hoists?",
    r"hoists?",
    r"series",
]


# =============================================================================
# Completeness scoring
# =============================================================================

CRITICAL_FIELDS: List[str] = [
    "loadCapacity",
    "liftingSpeed",
    "motorPower",
    "classification",
    "dutyCycle",
]
SECONDARY_FIELDS: List[str] = ["voltageOptions", "weight", "protectionClass", "series"]
COMPLETE_SPEC_FIELDS: List[str] = ["loadCapacity", "liftingSpeed", "motorPower"]

CRITICAL_WEIGHT = 70
SECONDARY_WEIGHT = 30

# Best to worst
QUALITY_TIERS: List[str] = ["complete", "partial", "incomplete", "minimal"]

# (minimum score, tier), checked in order
TIER_THRESHOLDS: List[Tuple[int, str]] = [
    (80, "complete"),
    (60, "partial"),
    (30, "incomplete"),
    (0, "minimal"),
]


# =============================================================================
# Buckets
# =============================================================================
# (label, upper bound inclusive) for capacity

CAPACITY_BUCKETS: List[Tuple[str, float]] = [
    ("≤250 kg", 250),
    ("251-500 kg", 500),
    ("501-1000 kg", 1000),
    ("1001-2000 kg", 2000),
    (">2000 kg", float("inf")),
]

# (label, upper bound exclusive) for speed
SPEED_BUCKETS: List[Tuple[str, float]] = [
    ("<2 m/min", 2),
    ("2-4 m/min", 4),
    ("4-8 m/min", 8),
    ("≥8 m/min", float("inf")),
]


# =============================================================================
# Quality gates
# =============================================================================

QUALITY_GATE_THRESHOLDS: Dict[str, float] = {
    "min_records": 10,
    "max_missing_capacity": 80,
    "max_missing_speed": 85,
    "max_missing_power": 95,
    "max_missing_classification": 50,
    "min_source_tracking": 90,
}

# Fields missing in at least this share of records are listed in the report
MISSING_DATA_THRESHOLD = 0.4


# =============================================================================
# Record structure
# =============================================================================

SOURCES: List[str] = ["scraped", "manual", "llm_enriched", "merged", "unknown"]

# Kept from the first-seen record when merging duplicates
IDENTITY_FIELDS: List[str] = ["id", "url", "lastUpdated", "createdAt", "scrapedAt", "processedAt"]

# Fields that may arrive as scalars but are stored as lists
LIST_FIELDS: List[str] = [
    "voltageOptions",
    "bodyColor",
    "commonApplications",
    "additionalSafety",
    "images",
]

# Fields stored as key -> value mappings
MAPPING_FIELDS: List[str] = ["controlCompatibility", "positionFeedback", "certifications"]

BOOLEAN_FIELDS: List[str] = ["quietOperation", "dynamicLifting", "liftingOverPeople"]
