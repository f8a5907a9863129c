"""JSONL audit trail of a run's step log."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ...domain.models.import_log import ImportLogEntry

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


def write_audit_log(
    entries: Iterable[ImportLogEntry],
    audit_dir: Path | str,
    correlation_id: str,
) -> Path:
    """
    Append step log entries to ``{audit_dir}/{correlation_id}.jsonl``.

    Args:
        entries: Step log entries in run order
        audit_dir: Directory for audit files
        correlation_id: Run correlation ID (file name)

    Returns:
        Path of the audit file
    """
    audit_dir = Path(audit_dir)
    audit_dir.mkdir(parents=True, exist_ok=True)
    audit_file = audit_dir / f"{correlation_id}.jsonl"

    count = 0
    with audit_file.open("a", encoding="utf-8") as f:
        for entry in entries:
            record = {"correlation_id": correlation_id, **entry.to_dict()}
            f.write(json.dumps(record, default=str) + "\n")
            count += 1

    logger.debug(
        f"Audit log written: {audit_file}",
        extra={"correlation_id": correlation_id, "entries": count},
    )
    return audit_file


def read_audit_log(path: Path | str) -> list[ImportLogEntry]:
    """
    Read step log entries from a JSONL audit file.

    Blank and malformed lines are skipped with a warning.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    entries: list[ImportLogEntry] = []
    with path.open("r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(ImportLogEntry.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, ValueError) as e:
                logger.warning(
                    f"Skipping malformed audit line {line_no} in {path}: {e}",
                    extra={"path": str(path), "line_no": line_no},
                )
    return entries
