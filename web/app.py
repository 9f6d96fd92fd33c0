"""Flask app serving the hoist catalog JSON API.

The catalog cache is created here (or passed in by tests) and handed to the
API blueprint explicitly; there is no module-level catalog state.
"""

import base64
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, Response, jsonify, request

from pipeline.logging_config import setup_logging
from pipeline.store import JsonReportSink, JsonSnapshotStore

from .api import create_api_blueprint
from .cache import CatalogCache
from .config import (
    CACHE_TTL_SECONDS,
    FLASK_DEBUG,
    FLASK_HOST,
    FLASK_PORT,
    REPORT_PATH,
    SNAPSHOT_PATH,
)

__all__ = ["create_app"]

# .env lives at the project root
env_path = Path(__file__).parent.parent / ".env"


# ---------- BASIC AUTH ----------


def _basic_auth_creds() -> tuple[Optional[str], Optional[str]]:
    """Get demo credentials from environment."""
    return os.getenv("DEMO_USER"), os.getenv("DEMO_PASS")


def _unauthorized() -> Response:
    return Response(
        "Authentication required",
        401,
        {"WWW-Authenticate": 'Basic realm="Login Required"'},
    )


def require_basic_auth() -> Optional[Response]:
    """
    Enforce HTTP Basic Auth for all routes except /health.
    Skips enforcement if credentials are not configured (DEMO_USER/DEMO_PASS unset).
    """
    if request.path == "/health":
        return None

    user, password = _basic_auth_creds()
    if not user or not password:
        return None  # auth disabled

    header = request.headers.get("Authorization", "")
    if not header.startswith("Basic "):
        return _unauthorized()

    try:
        decoded = base64.b64decode(header.split(" ", 1)[1]).decode("utf-8")
        username, passwd = decoded.split(":", 1)
    except (ValueError, UnicodeDecodeError):
        return _unauthorized()

    if username == user and passwd == password:
        return None
    return _unauthorized()


# ---------- APP FACTORY ----------


def create_app(cache: Optional[CatalogCache] = None) -> Flask:
    """Create the Flask app.

    Args:
        cache: Catalog cache to serve from (default: one over SNAPSHOT_PATH)
    """
    load_dotenv(dotenv_path=env_path)

    if cache is None:
        cache = CatalogCache(
            JsonSnapshotStore(SNAPSHOT_PATH),
            ttl_seconds=CACHE_TTL_SECONDS,
            report_sink=JsonReportSink(REPORT_PATH),
        )

    app = Flask(__name__)
    app.config["CATALOG_CACHE"] = cache
    app.before_request(require_basic_auth)
    app.register_blueprint(create_api_blueprint(cache))

    @app.route("/health", methods=["GET"])
    def health() -> Response:
        snapshot = cache.snapshot()
        return jsonify({
            "status": "degraded" if snapshot.error else "ok",
            "records": len(snapshot),
            "generation": snapshot.generation,
            "qualityGatesPassed": snapshot.quality.passed,
        })

    @app.errorhandler(404)
    def not_found(error) -> tuple[Response, int]:
        return jsonify({"error": "Not found"}), 404

    return app


if __name__ == "__main__":
    setup_logging(level=logging.DEBUG if FLASK_DEBUG else logging.INFO, logger_name="web")
    create_app().run(host=FLASK_HOST, port=FLASK_PORT, debug=FLASK_DEBUG)
