"""
CLI: ``kbgov routes`` — routing table commands.
"""

from __future__ import annotations

import typer

from kbgov.cli.utils import EXIT_MALFORMED, console, fail, get_settings, print_json, print_table
from kbgov.core.errors import ConfigError, RoutingError
from kbgov.documents.corpus import document_paths
from kbgov.routing.index import RoutingIndex
from kbgov.routing.table import RoutingTableSpec

app = typer.Typer(no_args_is_help=True)


def _build(ctx: typer.Context, *, bind_corpus: bool) -> RoutingIndex:
    settings = get_settings(ctx)
    known = document_paths(settings.corpus_root) if bind_corpus else None
    try:
        table = RoutingTableSpec.from_yaml_file(settings.resolved_routing_table)
        return RoutingIndex.from_table(table, known=known)
    except (ConfigError, RoutingError) as exc:
        raise fail(exc, EXIT_MALFORMED) from exc


@app.command("check")
def check(ctx: typer.Context) -> None:
    """Build the routing table against the corpus; fail on conflicts or unknown paths."""
    index = _build(ctx, bind_corpus=True)
    console.print(f"[green]OK[/green]: {len(index)} keywords routed", highlight=False)


@app.command("list")
def list_routes(
    ctx: typer.Context,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List every keyword with its canonical and fallback paths."""
    index = _build(ctx, bind_corpus=False)
    rows = [
        {"keyword": e.keyword, "canonical": e.canonical, "fallbacks": ", ".join(e.fallbacks)}
        for e in index.entries()
    ]
    if json_out:
        print_json(rows)
        return
    print_table(rows, title="Routes")
