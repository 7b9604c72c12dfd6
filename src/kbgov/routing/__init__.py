"""Keyword routing: static table format and the conflict-checked index."""

from kbgov.routing.index import RouteEntry, RoutingIndex, normalize_keyword
from kbgov.routing.table import RouteSpec, RoutingTableSpec

__all__ = [
    "RouteEntry",
    "RouteSpec",
    "RoutingIndex",
    "RoutingTableSpec",
    "normalize_keyword",
]
