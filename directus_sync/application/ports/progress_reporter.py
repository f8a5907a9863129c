"""Port for surfacing sync progress to a terminal or log."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol

# Order in which reconcile_item reports an item's stages
ITEM_STAGES = ("title_derived", "existing_lookup", "file_fields_resolved", "write_attempted")


class ProgressContext(Protocol):
    """Run-level progress handle."""

    def update(self, completed: int) -> None:
        """Record how many items have been processed so far."""
        ...

    def finish(self) -> None: ...


class ItemProgressContext(Protocol):
    """Progress handle of the item being reconciled."""

    def update_stage(self, stage: str, description: str) -> None:
        """
        Report that the item reached a reconcile stage.

        Args:
            stage: One of ITEM_STAGES
            description: Short detail, e.g. "matched" or "2 file(s)"
        """
        ...

    def finish(self) -> None:
        """The item was written (or planned, in a dry run)."""
        ...

    def fail(self, error: str) -> None: ...


class ProgressReporterPort(ABC):
    """Creates progress handles for a run and its items."""

    @abstractmethod
    def start_batch(self, total_items: int, description: str = "Syncing items") -> ProgressContext:
        """
        Begin reporting a run over ``total_items`` items.

        Returns:
            Handle updated after each item
        """
        pass

    @abstractmethod
    def start_item(self, item_index: int, total_items: int, item_name: str) -> ItemProgressContext:
        """
        Begin reporting one item.

        Args:
            item_index: 1-based position in the run
            total_items: Items in the run
            item_name: Source id or title shown to the user
        """
        pass
