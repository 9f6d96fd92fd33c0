"""JSON API for the hoist catalog.

Thin adapter over CatalogCache: every handler captures the current snapshot
once and answers from it. The blueprint is built per cache instance by
``create_api_blueprint`` so tests and deployments can wire their own cache.
"""

import logging
from typing import Tuple, Union

from flask import Blueprint, Response, jsonify, request

from pipeline.config import CAPACITY_BUCKETS, SPEED_BUCKETS

from .cache import CatalogCache
from .config import MAX_SUGGESTIONS
from .query import QueryRequest, suggest

__all__ = ["create_api_blueprint"]

logger = logging.getLogger(__name__)


def create_api_blueprint(cache: CatalogCache) -> Blueprint:
    """Create the /api blueprint bound to ``cache``."""
    api = Blueprint("api", __name__, url_prefix="/api")

    @api.route("/hoists", methods=["GET"])
    def list_hoists() -> Response:
        """Filtered, sorted, paginated hoist list.

        Query params:
            q, manufacturer, classification, category, speedType, dutyCycle,
            capacity, speedBucket, dataQuality (complete | hasImages | tier-<x>),
            minCapacity, maxCapacity, sortBy, sortOrder, page, limit

        Response JSON:
            {"results": [...], "totalCount": n, "appliedFilters": {...}, "pagination": {...}}
        """
        query = QueryRequest.from_params(request.args)
        return jsonify(cache.query(query).to_dict())

    @api.route("/hoists/<record_id>", methods=["GET"])
    def get_hoist(record_id: str) -> Union[Response, Tuple[Response, int]]:
        """Single hoist by id, with up to 5 other models from the same manufacturer."""
        snapshot = cache.snapshot()
        record = snapshot.index.by_id.get(record_id)
        if record is None:
            logger.debug(f"Product not found: {record_id}")
            return jsonify({"error": "Product not found", "id": record_id}), 404

        related = [
            r.to_dict()
            for r in snapshot.index.by_manufacturer.get(record.manufacturer, ())
            if r.id != record.id
        ][:5]
        return jsonify({"product": record.to_dict(), "relatedProducts": related})

    @api.route("/count", methods=["GET"])
    def count() -> Response:
        """Match count for the given filters (live preview)."""
        query = QueryRequest.from_params(request.args)
        return jsonify({"count": cache.count(query), "appliedFilters": query.applied_filters()})

    @api.route("/manufacturers", methods=["GET"])
    def manufacturers() -> Response:
        index = cache.snapshot().index
        return jsonify({"manufacturers": [dict(s) for s in index.manufacturer_stats]})

    @api.route("/classifications", methods=["GET"])
    def classifications() -> Response:
        index = cache.snapshot().index
        return jsonify({"classifications": [dict(s) for s in index.classification_stats]})

    @api.route("/filters", methods=["GET"])
    def filters() -> Response:
        """Available filter options for the current snapshot."""
        index = cache.snapshot().index
        return jsonify({
            "manufacturers": list(index.manufacturers),
            "classifications": list(index.classifications),
            "categories": list(index.categories),
            "speedTypes": list(index.speed_types),
            "dutyCycles": list(index.duty_cycles),
            "qualityTiers": list(index.quality_tiers),
            "capacityBuckets": [b for b, _ in CAPACITY_BUCKETS if b in index.by_capacity_bucket],
            "speedBuckets": [b for b, _ in SPEED_BUCKETS if b in index.by_speed_bucket],
            "capacityRange": dict(index.capacity_range),
            "dataCompleteness": dict(index.data_completeness),
        })

    @api.route("/quality", methods=["GET"])
    def quality() -> Response:
        return jsonify(cache.quality_report)

    @api.route("/indexes/stats", methods=["GET"])
    def index_stats() -> Response:
        snapshot = cache.snapshot()
        stats = snapshot.index.stats()
        stats["generation"] = snapshot.generation
        return jsonify(stats)

    @api.route("/suggestions", methods=["GET"])
    def suggestions() -> Response:
        """Autocomplete suggestions for the search box (q must be 2+ chars)."""
        text = (request.args.get("q") or "").strip()
        limit = request.args.get("limit", MAX_SUGGESTIONS)
        index = cache.snapshot().index
        return jsonify({"query": text.lower(), "suggestions": suggest(index, text, limit)})

    return api

