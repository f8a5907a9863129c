"""Validate credentials and permissions against configured instances."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import typer
from rich.table import Table

from directus_sync.infrastructure.adapters.directus_token_validator import DirectusTokenValidator
from directus_sync.infrastructure.cli.context import console, load_settings
from directus_sync.infrastructure.logging import configure_logging

app = typer.Typer(help="Validate tokens and collection access")
logger = logging.getLogger(__name__)

ROLES = ("source", "target")


def _roles(role: str) -> list[str]:
    if role == "all":
        return list(ROLES)
    if role not in ROLES:
        console.print(f"[red]Unknown role '{role}'. Use source, target or all.[/red]")
        raise typer.Exit(1)
    return [role]


def _display_results_table(results: list[dict[str, Any]]) -> None:
    table = Table(title="Validation Results", show_header=True, header_style="bold")
    table.add_column("Instance", style="cyan")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Message")
    for r in results:
        status = "[green]PASS[/green]" if r["status"] == "PASS" else "[red]FAIL[/red]"
        table.add_row(r["instance"], r["check"], status, r["message"])
    console.print(table)


@app.command()
def token(
    role: str = typer.Option("all", "--role", "-r", help="Instance to check: source, target or all"),
    config_path: str | None = typer.Option(None, "--config", help="Path to directus-sync.toml"),
) -> None:
    """
    Check that each instance is reachable and accepts its token.

    Runs ping, then list collections, then read server info.

    Examples:
        directus-sync validate token
        directus-sync validate token --role source
    """
    configure_logging(logging.WARNING)
    settings = load_settings(config_path)
    validator = DirectusTokenValidator(timeout=settings.source.timeout_seconds)

    results: list[dict[str, Any]] = []
    for r in _roles(role):
        instance = settings.source if r == "source" else settings.target
        if not instance.configured:
            results.append({
                "instance": r,
                "check": "token",
                "status": "FAIL",
                "message": f"Not configured (set DIRECTUS_{r.upper()}_URL and DIRECTUS_{r.upper()}_TOKEN)",
            })
            continue
        outcome = asyncio.run(validator.validate(instance.url, instance.token))
        message = outcome.message
        if outcome.success and outcome.server_info:
            version = (outcome.server_info.get("directus") or {}).get("version")
            project = (outcome.server_info.get("project") or {}).get("project_name")
            extras = ", ".join(p for p in (project, f"v{version}" if version else None) if p)
            if extras:
                message = f"{message} [{extras}]"
        results.append({
            "instance": f"{r} ({instance.url})",
            "check": "token",
            "status": "PASS" if outcome.success else "FAIL",
            "message": message,
        })

    _display_results_table(results)
    if all(r["status"] == "PASS" for r in results):
        console.print("\n[green]✓ All validation checks passed![/green]")
    else:
        console.print("\n[red]✗ Some validation checks failed. See details above.[/red]")
        raise typer.Exit(1)


@app.command()
def access(
    collection: str = typer.Option(..., "--collection", "-c", help="Collection to check"),
    role: str = typer.Option("all", "--role", "-r", help="Instance to check: source, target or all"),
    config_path: str | None = typer.Option(None, "--config", help="Path to directus-sync.toml"),
) -> None:
    """
    Check that the configured tokens can read a collection.

    Examples:
        directus-sync validate access --collection articles
    """
    configure_logging(logging.WARNING)
    settings = load_settings(config_path)
    validator = DirectusTokenValidator(timeout=settings.source.timeout_seconds)

    results: list[dict[str, Any]] = []
    for r in _roles(role):
        instance = settings.source if r == "source" else settings.target
        if not instance.configured:
            results.append({"instance": r, "check": collection, "status": "FAIL", "message": "Not configured"})
            continue
        outcome = asyncio.run(validator.check_collection_access(instance.url, instance.token, collection))
        results.append({
            "instance": f"{r} ({instance.url})",
            "check": collection,
            "status": "PASS" if outcome.success else "FAIL",
            "message": outcome.message,
        })

    _display_results_table(results)
    if not all(r["status"] == "PASS" for r in results):
        raise typer.Exit(1)
