"""Pure validators over a single Document snapshot."""

from kbgov.validation.schema import (
    SchemaValidator,
    clear_custom_rules,
    list_schema_rules,
    register_schema_rule,
)
from kbgov.validation.versions import VersionChecker

__all__ = [
    "SchemaValidator",
    "VersionChecker",
    "clear_custom_rules",
    "list_schema_rules",
    "register_schema_rule",
]
