"""Shared wiring for CLI commands: settings, clients, cancellation."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

import typer
from rich.console import Console

from directus_sync.infrastructure.adapters.directus_client import DirectusClient
from directus_sync.infrastructure.config.settings import Settings

if TYPE_CHECKING:
    from directus_sync.domain.models.cancellation import CancellationToken

console = Console()
logger = logging.getLogger(__name__)


def load_settings(config_path: str | None) -> Settings:
    """Load settings or exit with a readable error."""
    try:
        return Settings.from_toml(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)


def build_client(settings: Settings, role: str) -> DirectusClient:
    """
    Create the client of a configured instance or exit with guidance.

    Args:
        settings: Loaded settings
        role: "source" or "target"
    """
    try:
        instance = settings.require_instance(role)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    return DirectusClient(
        instance.url,
        instance.token,
        timeout=instance.timeout_seconds,
        retry_policy=settings.retry.to_policy(),
    )


def cancel_on_interrupt(cancel_token: CancellationToken) -> None:
    """Turn Ctrl+C into a cooperative cancel at the next item boundary."""
    try:
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, cancel_token.cancel, "Interrupted by user")
    except (NotImplementedError, RuntimeError):
        logger.debug("Signal handlers unavailable; Ctrl+C aborts immediately")
