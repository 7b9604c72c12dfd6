"""Routing Index — answer "which file covers X" without scanning the corpus.

Each keyword maps to exactly one canonical document and an ordered list of
fallbacks. The index is a deterministic fold over the static routing table:
registering a keyword twice with a different target raises
``RoutingConflict`` instead of letting the last writer win. Lookup is
case-insensitive exact match; there is no fuzzy matching.

Example::

    index = RoutingIndex(known=corpus)
    index.register("RSI", "indicators/rsi.md", ["indicators/overview.md"])
    index.resolve("rsi")
    # ['indicators/rsi.md', 'indicators/overview.md']
    index.register("rsi", "indicators/other.md")  # RoutingConflict
"""

from __future__ import annotations

from collections.abc import Container, Iterable
from dataclasses import dataclass

from kbgov.core.errors import InvalidRouteError, RoutingConflict
from kbgov.core.logging import get_logger
from kbgov.routing.table import RouteSpec, RoutingTableSpec

logger = get_logger(__name__)


def normalize_keyword(keyword: str) -> str:
    """Case-fold and collapse whitespace; the index key for ``keyword``."""
    return " ".join(keyword.split()).casefold()


@dataclass(frozen=True)
class RouteEntry:
    """A keyword's routing target.

    Attributes:
        keyword: Normalized keyword.
        canonical: Canonical document path.
        fallbacks: Ordered fallback document paths.
    """

    keyword: str
    canonical: str
    fallbacks: tuple[str, ...] = ()

    @property
    def paths(self) -> list[str]:
        return [self.canonical, *self.fallbacks]


class RoutingIndex:
    """Keyword → canonical path index with build-time conflict detection.

    Args:
        known: Container of existing document paths. When set, canonical and
            fallback paths must be members. ``None`` disables the check.
    """

    def __init__(self, known: Container[str] | None = None):
        self._known = known
        self._routes: dict[str, RouteEntry] = {}

    @classmethod
    def from_table(
        cls,
        table: RoutingTableSpec,
        known: Container[str] | None = None,
    ) -> RoutingIndex:
        """Build an index from a routing table, in table order.

        Raises:
            RoutingConflict: The table routes one keyword to two targets.
            InvalidRouteError: A route references an unknown document.
        """
        index = cls(known=known)
        for keyword, canonical, fallbacks in table.registrations():
            index.register(keyword, canonical, fallbacks)
        logger.info("routing_index_built", keywords=len(index))
        return index

    def register(
        self,
        keyword: str,
        canonical: str,
        fallbacks: Iterable[str] = (),
    ) -> RouteEntry:
        """Route ``keyword`` to ``canonical`` with ordered ``fallbacks``.

        Registering the identical route again is a no-op.

        Raises:
            RoutingConflict: ``keyword`` is already routed differently.
            InvalidRouteError: Empty keyword, unknown path, or a fallback
                repeating the canonical path.
        """
        key = normalize_keyword(keyword)
        if not key:
            raise InvalidRouteError("routing keyword is empty").with_context(keyword=keyword)

        entry = RouteEntry(keyword=key, canonical=canonical, fallbacks=tuple(fallbacks))
        self._check_paths(entry)

        existing = self._routes.get(key)
        if existing is not None:
            if existing == entry:
                return existing
            raise RoutingConflict(
                f"keyword '{key}' already routed to '{existing.canonical}' "
                f"(fallbacks {list(existing.fallbacks)}); refusing '{canonical}' "
                f"(fallbacks {list(entry.fallbacks)})",
            ).with_context(keyword=key, path=canonical, existing=existing.canonical)

        self._routes[key] = entry
        logger.debug("route_registered", keyword=key, canonical=canonical, fallbacks=len(entry.fallbacks))
        return entry

    def resolve(self, keyword: str) -> list[str]:
        """Canonical path followed by fallbacks, or ``[]`` if unknown."""
        entry = self._routes.get(normalize_keyword(keyword))
        return entry.paths if entry is not None else []

    def get(self, keyword: str) -> RouteEntry | None:
        return self._routes.get(normalize_keyword(keyword))

    def keywords_for(self, path: str) -> list[str]:
        """Keywords whose canonical document is ``path``."""
        return sorted(k for k, e in self._routes.items() if e.canonical == path)

    def entries(self) -> list[RouteEntry]:
        """All routes, sorted by keyword."""
        return [self._routes[k] for k in sorted(self._routes)]

    def to_table(self) -> RoutingTableSpec:
        """Flat, sorted table that rebuilds this index exactly."""
        return RoutingTableSpec(routes=[
            RouteSpec(keyword=e.keyword, canonical=e.canonical, fallbacks=list(e.fallbacks))
            for e in self.entries()
        ])

    def copy(self, known: Container[str] | None = None) -> RoutingIndex:
        """Independent copy, optionally bound to another set of known paths."""
        clone = RoutingIndex(known=known if known is not None else self._known)
        clone._routes = dict(self._routes)
        return clone

    def _check_paths(self, entry: RouteEntry) -> None:
        if entry.canonical in entry.fallbacks:
            raise InvalidRouteError(
                f"fallbacks for '{entry.keyword}' repeat the canonical path '{entry.canonical}'",
            ).with_context(keyword=entry.keyword, path=entry.canonical)
        if len(set(entry.fallbacks)) != len(entry.fallbacks):
            raise InvalidRouteError(
                f"fallbacks for '{entry.keyword}' contain duplicates",
            ).with_context(keyword=entry.keyword)
        if self._known is None:
            return
        for path in entry.paths:
            if path not in self._known:
                raise InvalidRouteError(
                    f"route '{entry.keyword}' references unknown document '{path}'",
                ).with_context(keyword=entry.keyword, path=path)

    def __contains__(self, keyword: object) -> bool:
        return isinstance(keyword, str) and normalize_keyword(keyword) in self._routes

    def __len__(self) -> int:
        return len(self._routes)
