"""Live import of a collection from the source instance into the target instance."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from pathlib import Path

import typer
from rich.table import Table

from directus_sync.application.dto.sync import ImportOptions, RunResult
from directus_sync.application.use_cases.import_collection import import_collection
from directus_sync.domain.models.cancellation import CancellationToken
from directus_sync.infrastructure.adapters.audit_log import write_audit_log
from directus_sync.infrastructure.adapters.rich_progress_reporter import RichProgressReporterAdapter
from directus_sync.infrastructure.cli.context import build_client, cancel_on_interrupt, console, load_settings
from directus_sync.infrastructure.logging import configure_logging, set_correlation_id

app = typer.Typer(help="Synchronize collections between Directus instances")
logger = logging.getLogger(__name__)


def print_run_result(result: RunResult, reporter: RichProgressReporterAdapter | None, as_json: bool) -> None:
    """Render a run result as JSON or as a summary with a failure table."""
    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, default=str))
        return

    failures = [item for item in result.imported_items if not item.ok]
    if reporter is not None and result.stats is not None:
        reporter.display_summary(
            stats=result.stats,
            duration_seconds=result.duration_seconds,
            errors=[f"{item.source_id}: {item.error.message}" for item in failures if item.error],
        )

    if failures:
        table = Table(title="Failed Items", show_header=True, header_style="bold")
        table.add_column("Source ID", style="cyan")
        table.add_column("Title")
        table.add_column("Status", style="yellow")
        table.add_column("Error", style="red")
        for item in failures:
            table.add_row(
                str(item.source_id),
                item.title or "",
                str(item.error.status or "") if item.error else "",
                item.error.message if item.error else "",
            )
        console.print(table)

    color = "green" if result.success else "red"
    console.print(f"[{color}]{result.message}[/{color}]")


@app.command()
def run(
    collection: str = typer.Option(..., "--collection", "-c", help="Collection to import (same name on both instances)"),
    limit: int | None = typer.Option(None, "--limit", "-n", min=1, help="Maximum number of items to import"),
    title_filter: str | None = typer.Option(None, "--title-filter", "-t", help="Only items whose translation title contains this text"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Decide create/update without writing to the target"),
    heuristic_match: bool | None = typer.Option(
        None,
        "--heuristic-match/--no-heuristic-match",
        help="Match unmapped items by url/path/slug/name/title (default from config)",
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the run result as JSON"),
    audit: bool = typer.Option(True, "--audit/--no-audit", help="Write the step log to the audit directory"),
    config_path: str | None = typer.Option(None, "--config", help="Path to directus-sync.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show HTTP request logs"),
) -> None:
    """
    Import items of a collection from the source into the target.

    Items are matched to earlier imports through the identity mapping
    collection, so re-running updates instead of duplicating. Partial item
    failures are reported but do not fail the command.

    Examples:
        directus-sync sync run --collection articles
        directus-sync sync run -c articles --title-filter "Annual" --limit 10 --dry-run
    """
    configure_logging(logging.INFO, verbose=verbose)
    correlation_id = str(uuid.uuid4())
    set_correlation_id(correlation_id)

    settings = load_settings(config_path)
    options = ImportOptions(
        limit=limit if limit is not None else settings.sync.page_limit,
        title_filter=title_filter,
        dry_run=dry_run,
        heuristic_match=settings.sync.heuristic_match if heuristic_match is None else heuristic_match,
        mapping_collection=settings.sync.mapping_collection,
    )
    reporter = None if json_output else RichProgressReporterAdapter(console=console)

    async def _run() -> RunResult:
        cancel_token = CancellationToken()
        cancel_on_interrupt(cancel_token)
        async with build_client(settings, "source") as source, build_client(settings, "target") as target:
            return await import_collection(
                source,
                target,
                collection,
                options=options,
                progress_reporter=reporter,
                cancel_token=cancel_token,
                correlation_id=correlation_id,
            )

    try:
        result = asyncio.run(_run())
    finally:
        if reporter is not None:
            reporter.cleanup()

    if audit:
        audit_file = write_audit_log(result.import_log, Path(settings.paths.audit_dir), correlation_id)
        if not json_output:
            console.print(f"[dim]Audit log: {audit_file}[/dim]")

    print_run_result(result, reporter, json_output)
    if not result.success:
        raise typer.Exit(1)
