"""Tests for kbgov.routing.table — YAML routing table models."""

import pytest

from kbgov.core.errors import ConfigError
from kbgov.routing.table import RouteSpec, RoutingTableSpec


class TestRoutingTableSpec:
    def test_registrations_in_table_order(self):
        table = RoutingTableSpec.from_yaml(
            "version: 1\n"
            "routes:\n"
            "  - keyword: na\n"
            "    keywords: [missing values]\n"
            "    canonical: language/na-values.md\n"
            "    fallbacks: [language/overview.md]\n"
        )
        assert list(table.registrations()) == [
            ("na", "language/na-values.md", ("language/overview.md",)),
            ("missing values", "language/na-values.md", ("language/overview.md",)),
        ]

    def test_empty_file_is_empty_table(self):
        assert RoutingTableSpec.from_yaml("").routes == []

    @pytest.mark.parametrize(
        "content",
        [
            "routes: [\n",
            "- just a list\n",
            "routes:\n  - canonical: a.md\n",
            "routes:\n  - keyword: x\n",
            "routes:\n  - keyword: x\n    canonical: a.md\n    weight: 3\n",
        ],
    )
    def test_invalid_tables(self, content):
        with pytest.raises(ConfigError):
            RoutingTableSpec.from_yaml(content, source="routing.yaml")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            RoutingTableSpec.from_yaml_file(tmp_path / "routing.yaml")
        assert exc_info.value.context.path.endswith("routing.yaml")

    def test_yaml_round_trip(self):
        table = RoutingTableSpec(routes=[
            RouteSpec(keyword="rsi", canonical="indicators/rsi.md", fallbacks=["indicators/overview.md"]),
            RouteSpec(keyword="na", canonical="language/na-values.md"),
        ])
        text = table.to_yaml()
        assert "keywords" not in text
        assert RoutingTableSpec.from_yaml(text) == table
