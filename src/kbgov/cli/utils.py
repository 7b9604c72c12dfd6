"""
CLI utility helpers: settings, exit codes and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from kbgov.core.diagnostics import Severity, ValidationResult
from kbgov.core.errors import GovernanceError
from kbgov.core.settings import GovernanceSettings

console = Console()
err_console = Console(stderr=True)

# Exit codes
EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_MALFORMED = 2
EXIT_UNKNOWN_KEYWORD = 3


def get_settings(ctx: typer.Context) -> GovernanceSettings:
    """Settings built by the root callback."""
    return ctx.ensure_object(dict)["settings"]


def fail(error: GovernanceError | str, code: int) -> typer.Exit:
    """Print an error to stderr and return the ``typer.Exit`` to raise."""
    if isinstance(error, GovernanceError):
        where = error.context.location or error.context.path or error.context.keyword
        suffix = f" [dim]({where})[/dim]" if where else ""
        err_console.print(
            f"[bold red]{type(error).__name__}[/bold red]: {error.message}{suffix}",
            highlight=False,
        )
    else:
        err_console.print(f"[bold red]Error[/bold red]: {error}", highlight=False)
    return typer.Exit(code=code)


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_results(results: Iterable[ValidationResult]) -> None:
    """Render validation results, one block per document."""
    for result in results:
        style = "green" if result.passed else "red"
        console.print(f"[bold {style}]{result.summary()}[/bold {style}]", highlight=False)
        for v in result.violations:
            color = "red" if v.severity == Severity.ERROR else "yellow"
            console.print(f"  [{color}]{v}[/{color}]", highlight=False)


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)
