"""Progress reporter drawing rich progress bars, or logging when not on a terminal."""

from __future__ import annotations

import logging
import sys
import time
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from ...application.ports.progress_reporter import (
    ITEM_STAGES,
    ItemProgressContext,
    ProgressContext,
    ProgressReporterPort,
)

if TYPE_CHECKING:
    from ...domain.models.import_result import SyncStats

logger = logging.getLogger(__name__)

MAX_LISTED_ERRORS = 10


def _stage_position(stage: str) -> int:
    return ITEM_STAGES.index(stage) + 1 if stage in ITEM_STAGES else 0


class RichProgressContext:
    """Run bar advanced after each item."""

    def __init__(self, progress: Progress, task_id: TaskID) -> None:
        self.progress = progress
        self.task_id = task_id

    def update(self, completed: int) -> None:
        self.progress.update(self.task_id, completed=completed)

    def finish(self) -> None:
        self.progress.stop_task(self.task_id)


class RichItemProgressContext:
    """
    Second bar tracking the reconcile stages of the current item.

    A single task is reused for every item of the run so the display keeps two rows.
    """

    def __init__(self, progress: Progress, task_id: TaskID, label: str) -> None:
        self.progress = progress
        self.task_id = task_id
        self.label = label
        self.progress.reset(task_id, total=len(ITEM_STAGES), description=label)

    def update_stage(self, stage: str, description: str) -> None:
        self.progress.update(
            self.task_id,
            completed=_stage_position(stage),
            description=f"{self.label} [dim]{stage}: {description}[/dim]",
        )

    def finish(self) -> None:
        self.progress.update(self.task_id, completed=len(ITEM_STAGES), description=f"[green]{self.label}[/green]")

    def fail(self, error: str) -> None:
        self.progress.update(self.task_id, description=f"[red]{self.label} failed: {error[:60]}[/red]")


class LoggingProgressContext:
    """Run progress as periodic log lines with an ETA."""

    def __init__(self, total_items: int, description: str) -> None:
        self.total_items = total_items
        self.description = description
        self.completed = 0
        self.started = time.monotonic()
        logger.info(f"Starting: {description} ({total_items} items)", extra={"total_items": total_items})

    def update(self, completed: int) -> None:
        self.completed = completed
        elapsed = time.monotonic() - self.started
        percent = completed / self.total_items * 100 if self.total_items else 100.0
        message = f"Progress: {completed}/{self.total_items} items ({percent:.1f}%) - {elapsed:.1f}s elapsed"
        if 0 < completed < self.total_items:
            message += f", ~{elapsed / completed * (self.total_items - completed):.1f}s left"
        logger.info(message, extra={"completed": completed, "total_items": self.total_items})

    def finish(self) -> None:
        elapsed = time.monotonic() - self.started
        logger.info(f"Finished: {self.description} - {self.completed} items in {elapsed:.1f}s")


class LoggingItemProgressContext:
    """Item progress as log lines; stages are only visible at DEBUG."""

    def __init__(self, item_index: int, total_items: int, item_name: str) -> None:
        self.prefix = f"Item {item_index}/{total_items} ({item_name})"
        self.started = time.monotonic()
        logger.info(f"Processing item {item_index}/{total_items}: {item_name}")

    def update_stage(self, stage: str, description: str) -> None:
        logger.debug(f"{self.prefix}: {stage} - {description}", extra={"stage": stage})

    def finish(self) -> None:
        logger.info(f"{self.prefix}: done in {time.monotonic() - self.started:.2f}s")

    def fail(self, error: str) -> None:
        logger.error(f"{self.prefix}: failed - {error}")


class RichProgressReporterAdapter(ProgressReporterPort):
    """
    ProgressReporterPort for the CLI.

    Draws a run bar plus a stage bar for the current item when stdout is a
    terminal; otherwise reports through logging so piped output stays readable.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.is_interactive = sys.stdout.isatty()
        self.console = console or Console(file=sys.stdout if self.is_interactive else sys.stderr)
        self.progress: Progress | None = None
        self._item_task: TaskID | None = None

    def _live_progress(self) -> Progress:
        if self.progress is None:
            self.progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                TimeRemainingColumn(),
                console=self.console,
                expand=True,
            )
            self.progress.start()
        return self.progress

    def start_batch(self, total_items: int, description: str = "Syncing items") -> ProgressContext:
        if not self.is_interactive:
            return LoggingProgressContext(total_items, description)
        progress = self._live_progress()
        return RichProgressContext(progress, progress.add_task(description, total=total_items))

    def start_item(self, item_index: int, total_items: int, item_name: str) -> ItemProgressContext:
        if not self.is_interactive or self.progress is None:
            return LoggingItemProgressContext(item_index, total_items, item_name)
        if self._item_task is None:
            self._item_task = self.progress.add_task("", total=len(ITEM_STAGES))
        return RichItemProgressContext(self.progress, self._item_task, f"Item {item_index}/{total_items}: {item_name}")

    def display_summary(self, stats: SyncStats, duration_seconds: float, errors: list[str]) -> None:
        """
        Print the run counters and up to ten item errors.

        Args:
            stats: Run counters
            duration_seconds: Wall time of the run
            errors: One message per failed item
        """
        table = Table(title="Sync Summary", show_header=True, header_style="bold")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green", justify="right")
        rows = [
            ("Created", stats.created),
            ("Updated", stats.updated),
            ("Failed", stats.failed),
            ("Files Uploaded", stats.files_uploaded),
            ("Files Reused", stats.files_reused),
        ]
        if stats.files_failed:
            rows.append(("Files Failed", stats.files_failed))
        for metric, value in rows:
            table.add_row(metric, str(value))
        table.add_row("Duration", f"{duration_seconds:.2f}s")
        self.console.print(table)

        if errors:
            lines = [f"✗ {e}" for e in errors[:MAX_LISTED_ERRORS]]
            if len(errors) > MAX_LISTED_ERRORS:
                lines.append(f"... and {len(errors) - MAX_LISTED_ERRORS} more")
            self.console.print(Panel("\n".join(lines), title="Item Errors", border_style="red"))

        logger.info(
            f"Sync finished: {stats.created} created, {stats.updated} updated, {stats.failed} failed",
            extra={"duration_seconds": round(duration_seconds, 2), "failed": stats.failed},
        )

    def cleanup(self) -> None:
        """Stop the live display; safe to call more than once."""
        if self.progress is not None:
            self.progress.stop()
        self.progress = None
        self._item_task = None
