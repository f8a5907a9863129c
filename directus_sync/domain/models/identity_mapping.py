"""Domain model for the durable source-id to target-id mapping."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


@dataclass(frozen=True)
class IdentityMapping:
    """
    Row of the identity mapping store.

    Stored on the target as a plain items collection with fields
    ``table`` (collection), ``sync_id`` (source id) and ``local_id`` (target id).

    Attributes:
        collection: Collection the item belongs to
        source_id: Source-scoped item id
        target_id: Target-scoped item id
        row_id: Id of the mapping row itself (None until stored)
    """

    collection: str
    source_id: str
    target_id: str
    row_id: Any = None

    def __post_init__(self) -> None:
        """Validate identity mapping."""
        if not self.collection:
            raise ValueError("collection must be non-empty")
        if not self.source_id:
            raise ValueError("source_id must be non-empty")
        if not self.target_id:
            raise ValueError("target_id must be non-empty")

    def to_row(self) -> dict[str, str]:
        """Serialize to the mapping collection's payload shape."""
        return {
            "table": self.collection,
            "sync_id": self.source_id,
            "local_id": self.target_id,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> IdentityMapping:
        """Deserialize from a mapping collection row."""
        return cls(
            collection=str(row["table"]),
            source_id=str(row["sync_id"]),
            target_id=str(row["local_id"]),
            row_id=row.get("id"),
        )
