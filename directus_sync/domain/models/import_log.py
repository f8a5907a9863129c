"""Domain models for the append-only run step log."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any, Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportLogEntry:
    """
    One step of a run's audit trail. Never mutated after append.

    Attributes:
        timestamp: When the step happened (UTC)
        step: Step name, e.g. "item_imported", "file_copy_error"
        details: Step-specific context
    """

    timestamp: datetime
    step: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return "error" in self.step or "failed" in self.step

    @property
    def is_warning(self) -> bool:
        return "warning" in self.step or "skipped" in self.step

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "step": self.step,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImportLogEntry:
        """Deserialize from dict."""
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            step=data["step"],
            details=data.get("details") or {},
        )


class ImportLog:
    """Ordered, append-only step log mirrored to the Python logger."""

    def __init__(self, entries: list[ImportLogEntry] | None = None) -> None:
        self._entries: list[ImportLogEntry] = list(entries or [])

    def step(self, step: str, **details: Any) -> ImportLogEntry:
        """Append a step and mirror it to the module logger."""
        entry = ImportLogEntry(timestamp=datetime.now(timezone.utc), step=step, details=details)
        self._entries.append(entry)
        level = logging.WARNING if entry.is_error else logging.INFO
        logger.log(level, f"[{step}] {details}", extra={"step": step})
        return entry

    @property
    def entries(self) -> list[ImportLogEntry]:
        return list(self._entries)

    def find(self, step: str) -> list[ImportLogEntry]:
        return [e for e in self._entries if e.step == step]

    def __iter__(self) -> Iterator[ImportLogEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


def analyze_import_log(entries: list[ImportLogEntry]) -> dict[str, Any]:
    """
    Summarize a run's step log.

    Args:
        entries: Log entries in run order

    Returns:
        Dict with:
            - steps: Entries as dicts
            - summary: total_steps, steps_by_type, errors, warnings
            - key_metrics: start_time, end_time, duration_ms
    """
    steps_by_type: dict[str, int] = {}
    for entry in entries:
        steps_by_type[entry.step] = steps_by_type.get(entry.step, 0) + 1

    start = next((e.timestamp for e in entries if e.step == "import_start"), None)
    end = next((e.timestamp for e in entries if e.step == "import_complete"), None)
    duration_ms: int | None = None
    if start and end:
        duration_ms = int((end - start).total_seconds() * 1000)

    return {
        "steps": [e.to_dict() for e in entries],
        "summary": {
            "total_steps": len(entries),
            "steps_by_type": steps_by_type,
            "errors": [e.to_dict() for e in entries if e.is_error],
            "warnings": [e.to_dict() for e in entries if e.is_warning],
        },
        "key_metrics": {
            "start_time": start.isoformat() if start else None,
            "end_time": end.isoformat() if end else None,
            "duration_ms": duration_ms,
        },
    }
