"""Inspect audit logs written by sync and bundle runs."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer
from rich.table import Table

from directus_sync.domain.models.import_log import analyze_import_log
from directus_sync.infrastructure.adapters.audit_log import read_audit_log
from directus_sync.infrastructure.cli.context import console

app = typer.Typer(help="Analyze run audit logs")
logger = logging.getLogger(__name__)


@app.command()
def analyze(
    path: str = typer.Argument(..., help="Path to a {correlation_id}.jsonl audit log"),
    json_output: bool = typer.Option(False, "--json", help="Print the analysis as JSON"),
    show_errors: int = typer.Option(10, "--errors", help="Maximum number of error entries to list"),
) -> None:
    """
    Summarize a run's steps by type, with errors, warnings and duration.

    Examples:
        directus-sync log analyze var/audit/3f2c....jsonl
    """
    audit_path = Path(path)
    if not audit_path.is_file():
        console.print(f"[red]Audit log not found: {audit_path}[/red]")
        raise typer.Exit(1)

    analysis = analyze_import_log(read_audit_log(audit_path))
    if json_output:
        typer.echo(json.dumps(analysis, indent=2, default=str))
        return

    summary = analysis["summary"]
    metrics = analysis["key_metrics"]

    table = Table(title=f"Steps in {audit_path.name}", show_header=True, header_style="bold")
    table.add_column("Step", style="cyan")
    table.add_column("Count", justify="right")
    for step, count in sorted(summary["steps_by_type"].items(), key=lambda kv: -kv[1]):
        table.add_row(step, str(count))
    console.print(table)

    console.print(f"Total steps: {summary['total_steps']}")
    console.print(f"Errors: {len(summary['errors'])}  Warnings: {len(summary['warnings'])}")
    if metrics["duration_ms"] is not None:
        console.print(f"Duration: {metrics['duration_ms'] / 1000:.2f}s ({metrics['start_time']} → {metrics['end_time']})")

    for entry in summary["errors"][:show_errors]:
        details = entry.get("details") or {}
        console.print(f"[red]✗ {entry['step']}[/red] {details.get('error') or details}")
