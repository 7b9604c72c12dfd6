"""
CLI: ``kbgov changelog`` — append, list and verify ledger entries.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import typer

from kbgov.cli.utils import EXIT_MALFORMED, EXIT_VIOLATIONS, console, fail, get_settings, print_json, print_table
from kbgov.core.errors import ConfigError, LedgerIntegrityError
from kbgov.core.settings import GovernanceSettings
from kbgov.documents.corpus import document_paths
from kbgov.ledger.ledger import ChangelogLedger
from kbgov.ledger.model import ChangelogEntrySpec
from kbgov.ledger.store import LedgerStore

app = typer.Typer(no_args_is_help=True)


def _open_ledger(settings: GovernanceSettings, *, bind_corpus: bool = False) -> ChangelogLedger:
    known = document_paths(settings.corpus_root) if bind_corpus else None
    try:
        return ChangelogLedger.open(LedgerStore(settings.resolved_ledger_dir), known=known)
    except LedgerIntegrityError as exc:
        raise fail(exc, EXIT_VIOLATIONS) from exc


@app.command("append")
def append_entry(
    ctx: typer.Context,
    entry_file: Path = typer.Argument(..., help="YAML changelog entry file."),
) -> None:
    """Append the entry in ENTRY_FILE to the ledger."""
    settings = get_settings(ctx)
    try:
        spec = ChangelogEntrySpec.from_yaml_file(entry_file)
    except ConfigError as exc:
        raise fail(exc, EXIT_MALFORMED) from exc

    ledger = _open_ledger(settings, bind_corpus=True)
    try:
        entry_id = ledger.append(spec.to_draft())
    except LedgerIntegrityError as exc:
        raise fail(exc, EXIT_VIOLATIONS) from exc
    except OSError as exc:
        raise fail(f"cannot write ledger: {exc}", EXIT_VIOLATIONS) from exc
    console.print(f"Appended [bold]{entry_id}[/bold]", highlight=False)


@app.command("list")
def list_entries(
    ctx: typer.Context,
    since: datetime | None = typer.Option(None, "--since", formats=["%Y-%m-%d"], help="Only entries dated on or after."),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List entries in append order."""
    ledger = _open_ledger(get_settings(ctx))
    entries = ledger.entries_since(since.date()) if since is not None else list(ledger.entries)

    if json_out:
        print_json([e.to_dict() for e in entries])
        return
    print_table(
        [
            {
                "id": e.entry_id,
                "date": e.date.isoformat(),
                "summary": e.summary,
                "paths": ", ".join(sorted(e.impacted_paths)),
                "breaking": "yes" if e.breaking else "",
            }
            for e in entries
        ],
        title="Changelog",
    )


@app.command("verify")
def verify(ctx: typer.Context) -> None:
    """Re-verify the persisted hash chain."""
    ledger = _open_ledger(get_settings(ctx))
    console.print(f"[green]OK[/green]: {len(ledger)} entries verified", highlight=False)
