"""Domain models for per-item outcomes and run statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any

    from ..types import ItemAction, ItemStatus

VALID_ITEM_STATUSES = {"success", "error"}
VALID_ITEM_ACTIONS = {"created", "updated"}


@dataclass(frozen=True)
class ItemError:
    """
    Why one item could not be written.

    Attributes:
        message: Error message
        status: Upstream HTTP status code (if any)
        details: Backend-provided error payload (if any)
    """

    message: str
    status: int | None = None
    details: Any = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"message": self.message}
        if self.status is not None:
            result["status"] = self.status
        if self.details is not None:
            result["details"] = self.details
        return result

    @classmethod
    def from_exception(cls, exc: BaseException) -> ItemError:
        """Capture message, status and details from any exception."""
        cause = getattr(exc, "cause", None) or exc
        return cls(
            message=str(exc) or type(exc).__name__,
            status=getattr(cause, "status", None),
            details=getattr(cause, "details", None),
        )


@dataclass(frozen=True)
class ImportedItemResult:
    """
    Outcome of reconciling one source item. Exactly one per source item.

    Attributes:
        source_id: Source-scoped item id
        status: "success" | "error"
        action: "created" | "updated" (None when the write never happened)
        target_id: Target-scoped item id (success only)
        error: Failure description (error only)
        title: Derived display title (if any)
    """

    source_id: Any
    status: ItemStatus
    action: ItemAction | None = None
    target_id: Any = None
    error: ItemError | None = None
    title: str | None = None

    def __post_init__(self) -> None:
        """Validate item result consistency."""
        if self.status not in VALID_ITEM_STATUSES:
            raise ValueError(f"status must be one of {VALID_ITEM_STATUSES}, got {self.status}")
        if self.action is not None and self.action not in VALID_ITEM_ACTIONS:
            raise ValueError(f"action must be one of {VALID_ITEM_ACTIONS}, got {self.action}")
        if self.status == "error" and self.error is None:
            raise ValueError("error must be set when status is 'error'")
        if self.status == "success" and self.action is None:
            raise ValueError("action must be set when status is 'success'")

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def succeeded(cls, source_id: Any, target_id: Any, action: ItemAction, title: str | None = None) -> ImportedItemResult:
        return cls(source_id=source_id, status="success", action=action, target_id=target_id, title=title)

    @classmethod
    def failed(cls, source_id: Any, error: ItemError, title: str | None = None, action: ItemAction | None = None) -> ImportedItemResult:
        return cls(source_id=source_id, status="error", action=action, error=error, title=title)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the caller-facing (camelCase) shape."""
        result: dict[str, Any] = {
            "sourceId": self.source_id,
            "status": self.status,
        }
        if self.action is not None:
            result["action"] = self.action
        if self.target_id is not None:
            result["targetId"] = self.target_id
        if self.title is not None:
            result["title"] = self.title
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result


@dataclass
class SyncStats:
    """Running counters for one run."""

    created: int = 0
    updated: int = 0
    failed: int = 0
    files_uploaded: int = 0
    files_reused: int = 0
    files_failed: int = 0
    first_error: str | None = field(default=None)

    @property
    def succeeded(self) -> int:
        return self.created + self.updated

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed

    def record(self, result: ImportedItemResult) -> None:
        """Count one item result."""
        if result.ok:
            if result.action == "created":
                self.created += 1
            else:
                self.updated += 1
        else:
            self.failed += 1
            if self.first_error is None and result.error is not None:
                self.first_error = result.error.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
            "filesUploaded": self.files_uploaded,
            "filesReused": self.files_reused,
            "filesFailed": self.files_failed,
        }

