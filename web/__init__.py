"""Hoist catalog web service: indexes, queries and the JSON API."""

from .cache import CatalogCache, CatalogSnapshot
from .index import IndexSet, build_index
from .query import QueryEngine, QueryRequest, QueryResult

__all__ = [
    "CatalogCache",
    "CatalogSnapshot",
    "IndexSet",
    "build_index",
    "QueryEngine",
    "QueryRequest",
    "QueryResult",
]
