"""
Root Typer application for the kbgov CLI.

Exit codes::

    0  accepted / found
    1  ERROR-severity violation, or ledger refused the change
    2  malformed input (document, routing table, entry file, settings)
    3  route: keyword unknown
"""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError
from typer import Typer

from kbgov.cli.utils import (
    EXIT_MALFORMED,
    EXIT_OK,
    EXIT_UNKNOWN_KEYWORD,
    EXIT_VIOLATIONS,
    fail,
    get_settings,
    print_json,
    print_results,
)
from kbgov.core.errors import ConfigError, DocumentParseError, RoutingError
from kbgov.core.logging import configure_logging
from kbgov.core.settings import GovernanceSettings
from kbgov.documents.corpus import Corpus
from kbgov.documents.model import Document
from kbgov.documents.parser import load_document
from kbgov.engine.engine import PolicyRuleEngine
from kbgov.routing.index import RoutingIndex
from kbgov.routing.table import RoutingTableSpec

app = Typer(
    name="kbgov",
    help="kbgov — schema, version and changelog policy for a reference knowledge base.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from kbgov import __version__

        typer.echo(f"kbgov {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    corpus: Path | None = typer.Option(None, "--corpus", "-c", help="Corpus root directory."),
    ledger_dir: Path | None = typer.Option(None, "--ledger-dir", help="Changelog directory."),
    routes: Path | None = typer.Option(None, "--routes", help="Routing table file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """kbgov CLI — validate documents, resolve routes, manage the changelog."""
    overrides = {
        key: value
        for key, value in {"corpus_root": corpus, "ledger_dir": ledger_dir, "routing_table": routes}.items()
        if value is not None
    }
    if verbose:
        overrides["log_level"] = "DEBUG"
    try:
        settings = GovernanceSettings(**overrides)
    except ValidationError as exc:
        raise fail(f"invalid settings: {exc}", EXIT_MALFORMED) from exc
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    ctx.ensure_object(dict)["settings"] = settings


# ── validate ─────────────────────────────────────────────────────────────


def _load_single(path: Path, settings: GovernanceSettings) -> Document:
    file = path if path.exists() else settings.corpus_root / path
    if not file.is_file():
        raise fail(f"no such document: {path}", EXIT_MALFORMED)
    root = settings.corpus_root
    if not file.resolve().is_relative_to(root.resolve()):
        root = file.parent
    return load_document(file, root)


@app.command()
def validate(
    ctx: typer.Context,
    path: Path | None = typer.Argument(None, help="Document file, or a path relative to the corpus root."),
    all_docs: bool = typer.Option(False, "--all", help="Validate every document in the corpus."),
    json_out: bool = typer.Option(False, "--json", help="Machine-readable report."),
) -> None:
    """Validate one document or the whole corpus."""
    settings = get_settings(ctx)
    if all_docs == (path is not None):
        raise fail("give exactly one of PATH or --all", EXIT_MALFORMED)

    engine = PolicyRuleEngine.from_settings(settings)
    try:
        if all_docs:
            if not settings.corpus_root.is_dir():
                raise fail(f"corpus root not found: {settings.corpus_root}", EXIT_MALFORMED)
            results = engine.validate_corpus(Corpus.load(settings.corpus_root))
        else:
            results = [engine.validate_document(_load_single(path, settings))]
    except DocumentParseError as exc:
        raise fail(exc, EXIT_MALFORMED) from exc

    accepted = all(r.passed for r in results)
    if json_out:
        print_json({
            "accepted": accepted,
            "results": [
                {"path": r.path, "passed": r.passed, "violations": [v.to_dict() for v in r.violations]}
                for r in results
            ],
        })
    else:
        print_results(results)
    raise typer.Exit(code=EXIT_OK if accepted else EXIT_VIOLATIONS)


# ── route ────────────────────────────────────────────────────────────────


@app.command()
def route(
    ctx: typer.Context,
    keyword: str = typer.Argument(..., help="Topic keyword (case-insensitive)."),
    with_fallbacks: bool = typer.Option(False, "--all", help="Also print fallback paths."),
) -> None:
    """Print the canonical document for KEYWORD."""
    settings = get_settings(ctx)
    try:
        table = RoutingTableSpec.from_yaml_file(settings.resolved_routing_table)
        index = RoutingIndex.from_table(table)
    except (ConfigError, RoutingError) as exc:
        raise fail(exc, EXIT_MALFORMED) from exc

    paths = index.resolve(keyword)
    if not paths:
        raise fail(f"no route for keyword '{keyword}'", EXIT_UNKNOWN_KEYWORD)
    for p in paths if with_fallbacks else paths[:1]:
        typer.echo(p)


# ── Sub-command registration ─────────────────────────────────────────────

from kbgov.cli.changelog import app as changelog_app  # noqa: E402
from kbgov.cli.routes import app as routes_app  # noqa: E402

app.add_typer(changelog_app, name="changelog", help="Append, list and verify changelog entries.")
app.add_typer(routes_app, name="routes", help="Inspect and check the routing table.")


if __name__ == "__main__":
    app()
