"""Offline transfer through bundles (directory or .zip)."""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path

import typer

from directus_sync.application.dto.sync import BundleExportResult, ImportOptions, RunResult
from directus_sync.application.use_cases.export_bundle import export_bundle
from directus_sync.application.use_cases.import_bundle import import_bundle
from directus_sync.domain.models.cancellation import CancellationToken
from directus_sync.infrastructure.adapters.audit_log import write_audit_log
from directus_sync.infrastructure.adapters.bundle_archive import open_bundle
from directus_sync.infrastructure.adapters.rich_progress_reporter import RichProgressReporterAdapter
from directus_sync.infrastructure.cli.commands.sync import print_run_result
from directus_sync.infrastructure.cli.context import build_client, cancel_on_interrupt, console, load_settings
from directus_sync.infrastructure.logging import configure_logging, set_correlation_id

app = typer.Typer(help="Export collections to bundles and import them elsewhere")
logger = logging.getLogger(__name__)


@app.command("export")
def export_(
    collection: str = typer.Option(..., "--collection", "-c", help="Collection to export"),
    out: str | None = typer.Option(None, "--out", "-o", help="Bundle path (directory, or file ending in .zip)"),
    expand: str | None = typer.Option(None, "--expand", "-e", help="Comma-separated relation fields to expand one level"),
    limit: int | None = typer.Option(None, "--limit", "-n", min=1, help="Maximum number of items to export"),
    config_path: str | None = typer.Option(None, "--config", help="Path to directus-sync.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show HTTP request logs"),
) -> None:
    """
    Export a source collection and its referenced files into a bundle.

    Examples:
        directus-sync bundle export --collection articles --out var/bundles/articles.zip
        directus-sync bundle export -c articles --expand author,category
    """
    configure_logging(logging.INFO, verbose=verbose)
    correlation_id = str(uuid.uuid4())
    set_correlation_id(correlation_id)

    settings = load_settings(config_path)
    bundle_path = Path(out) if out else Path(settings.paths.bundles_dir) / collection
    store = open_bundle(bundle_path)
    relations = [r.strip() for r in expand.split(",")] if expand else []

    async def _run() -> BundleExportResult:
        async with build_client(settings, "source") as source:
            return await export_bundle(
                source,
                collection,
                store,
                expand=relations,
                limit=limit,
                correlation_id=correlation_id,
            )

    result = asyncio.run(_run())
    if result.success:
        console.print(f"[green]✓ {result.message}[/green]")
        if result.files_skipped:
            console.print(f"[yellow]{result.files_skipped} file candidate(s) skipped[/yellow]")
    else:
        console.print(f"[red]✗ {result.message}[/red]")
        raise typer.Exit(1)


@app.command("import")
def import_(
    bundle: str = typer.Option(..., "--bundle", "-b", help="Bundle path (directory or .zip)"),
    collection: str | None = typer.Option(None, "--collection", "-c", help="Target collection (defaults to the bundle's)"),
    limit: int | None = typer.Option(None, "--limit", "-n", min=1, help="Maximum number of items to import"),
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
    Import a bundle into the target instance.

    Examples:
        directus-sync bundle import --bundle var/bundles/articles.zip
        directus-sync bundle import -b var/bundles/articles -c articles_copy --dry-run
    """
    configure_logging(logging.INFO, verbose=verbose)
    correlation_id = str(uuid.uuid4())
    set_correlation_id(correlation_id)

    bundle_path = Path(bundle)
    if not bundle_path.exists():
        console.print(f"[red]Bundle not found: {bundle_path}[/red]")
        raise typer.Exit(1)

    settings = load_settings(config_path)
    options = ImportOptions(
        limit=limit,
        dry_run=dry_run,
        heuristic_match=settings.sync.heuristic_match if heuristic_match is None else heuristic_match,
        mapping_collection=settings.sync.mapping_collection,
    )
    reporter = None if json_output else RichProgressReporterAdapter(console=console)

    async def _run() -> RunResult:
        cancel_token = CancellationToken()
        cancel_on_interrupt(cancel_token)
        async with build_client(settings, "target") as target:
            return await import_bundle(
                open_bundle(bundle_path),
                target,
                collection=collection,
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
