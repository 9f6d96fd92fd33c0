"""Centralized configuration for the catalog web service."""

import os
from pathlib import Path

# Determine project root (parent of 'web' directory)
_THIS_DIR = Path(__file__).parent
_PROJECT_ROOT = _THIS_DIR.parent

# Pipeline output - use absolute paths for consistent loading
SNAPSHOT_PATH = os.getenv(
    "HOIST_SNAPSHOT_PATH",
    str(_PROJECT_ROOT / "data" / "processed" / "hoist_database_processed.json"),
)
REPORT_PATH = os.getenv(
    "HOIST_REPORT_PATH",
    str(_PROJECT_ROOT / "data" / "processed" / "data_quality_report.json"),
)

# Snapshot is reloaded at most once per TTL window
CACHE_TTL_SECONDS = float(os.getenv("CACHE_TTL_SECONDS", "300"))

# Query defaults
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "50"))
MAX_SUGGESTIONS = int(os.getenv("MAX_SUGGESTIONS", "10"))

# Flask app settings (allow env overrides; default debug off for safety)
# Render sets PORT dynamically; fall back to FLASK_PORT or 5000 for local.
FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
FLASK_PORT = int(os.getenv("FLASK_PORT", os.getenv("PORT", "5000")))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "False").lower() == "true"
