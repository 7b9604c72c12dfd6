"""Pydantic models for the static routing table.

The routing table is authored by hand and checked in next to the corpus.
The index is always rebuilt from it deterministically; nothing is inferred.

Example YAML::

    version: 1
    routes:
      - keyword: rsi
        canonical: indicators/rsi.md
        fallbacks: [indicators/overview.md]
      - keywords: [na, missing values, sentinel]
        canonical: language/na-values.md

Usage::

    from kbgov.routing.table import RoutingTableSpec

    spec = RoutingTableSpec.from_yaml_file("kb/routing.yaml")
    for keyword, canonical, fallbacks in spec.registrations():
        ...
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from kbgov.core.errors import ConfigError


class RouteSpec(BaseModel):
    """One table row: one or more keywords routed to a canonical document."""

    model_config = ConfigDict(extra="forbid")

    keyword: str | None = Field(default=None, description="Single keyword")
    keywords: list[str] = Field(default_factory=list, description="Several keywords, same target")
    canonical: str = Field(..., min_length=1, description="Canonical document path")
    fallbacks: list[str] = Field(default_factory=list, description="Ordered fallback paths")

    @model_validator(mode="after")
    def _has_keyword(self) -> RouteSpec:
        if not self.all_keywords():
            raise ValueError("route needs 'keyword' or 'keywords'")
        return self

    def all_keywords(self) -> list[str]:
        names = [self.keyword] if self.keyword else []
        names.extend(self.keywords)
        return names


class RoutingTableSpec(BaseModel):
    """The whole routing table."""

    model_config = ConfigDict(extra="forbid")

    version: int = Field(default=1, ge=1)
    routes: list[RouteSpec] = Field(default_factory=list)

    def registrations(self) -> Iterator[tuple[str, str, tuple[str, ...]]]:
        """``(keyword, canonical, fallbacks)`` in table order."""
        for route in self.routes:
            for keyword in route.all_keywords():
                yield keyword, route.canonical, tuple(route.fallbacks)

    @classmethod
    def from_yaml(cls, content: str, *, source: str = "<string>") -> RoutingTableSpec:
        """Parse and validate a YAML routing table.

        Raises:
            ConfigError: The YAML is malformed or does not match the schema.
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise ConfigError(f"routing table is not valid YAML: {exc}", cause=exc).with_context(
                path=source
            )
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("routing table must be a mapping").with_context(path=source)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"invalid routing table: {exc}", cause=exc).with_context(path=source)

    @classmethod
    def from_yaml_file(cls, path: Path | str) -> RoutingTableSpec:
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"cannot read routing table: {exc}", cause=exc).with_context(path=str(path))
        return cls.from_yaml(content, source=str(path))

    def to_yaml(self) -> str:
        data: dict[str, Any] = self.model_dump(exclude_defaults=False)
        for route in data["routes"]:
            if route["keyword"] is None:
                del route["keyword"]
            if not route["keywords"]:
                del route["keywords"]
            if not route["fallbacks"]:
                del route["fallbacks"]
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
