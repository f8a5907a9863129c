"""Cooperative cancellation checked between items."""

from __future__ import annotations

from ..errors import ImportCancelled


class CancellationToken:
    """
    Flag a caller sets to stop a run at the next item boundary.
    
    A run never stops mid-item; the item in flight always finishes.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ImportCancelled(self.reason or "Import cancelled")
