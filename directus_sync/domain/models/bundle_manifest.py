"""Domain models for the offline transfer bundle."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any

MANIFEST_NAME = "manifest.json"
FILES_DIR = "files"


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename for safe filesystem storage.
    
    Args:
        filename: Original filename
    
    Returns:
        Sanitized filename safe for filesystem
    """
    # Remove or replace invalid characters
    sanitized = re.sub(r'[<>:"/\\|?*\x00-\x1f]', "_", filename)
    
    # Remove leading/trailing dots and spaces (Windows doesn't allow these)
    sanitized = sanitized.strip(" .")
    
    # Limit length (Windows has 255 char limit for filenames)
    if len(sanitized) > 200:
        stem, ext = sanitized.rsplit(".", 1) if "." in sanitized else (sanitized, "")
        sanitized = stem[:200 - len(ext) - 1] + "." + ext if ext else stem[:200]
    
    return sanitized or "file"


def bundle_file_name(source_file_id: str, original_name: str | None) -> str:
    """Name of a binary inside files/: ``{sourceFileId}_{sanitizedOriginalName}``."""
    return f"{source_file_id}_{sanitize_filename(original_name or source_file_id)}"


def parse_bundle_file_name(name: str) -> tuple[str, str]:
    """
    Recover (source file id, original name) from a files/ entry name.
    
    The id is everything before the first underscore.
    
    Raises:
        ValueError: If the name carries no id prefix
    """
    source_id, sep, original = name.partition("_")
    if not sep or not source_id:
        raise ValueError(f"Bundle file name has no source id prefix: {name}")
    return source_id, original or name


@dataclass
class BundleManifest:
    """
    Manifest of an exported collection.
    
    Attributes:
        collection: Source collection name
        items: Raw source items (relations optionally expanded one level)
        exported_at: Export timestamp
        related_collections: Embedded rows of expanded relations, keyed by relation field
    """

    collection: str
    items: list[dict[str, Any]] = field(default_factory=list)
    exported_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    related_collections: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    def add_related(self, relation: str, row: dict[str, Any]) -> None:
        """Record an embedded related row once (dedup by id)."""
        rows = self.related_collections.setdefault(relation, [])
        row_id = row.get("id")
        if row_id is not None and any(r.get("id") == row_id for r in rows):
            return
        rows.append(row)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: dict[str, Any] = {
            "collection": self.collection,
            "items": self.items,
            "exportedAt": self.exported_at.isoformat(),
        }
        if self.related_collections:
            result["relatedCollections"] = self.related_collections
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BundleManifest:
        """Deserialize from dict."""
        exported_at = data.get("exportedAt")
        return cls(
            collection=data["collection"],
            items=list(data.get("items") or []),
            exported_at=datetime.fromisoformat(exported_at) if isinstance(exported_at, str) else datetime.now(timezone.utc),
            related_collections=dict(data.get("relatedCollections") or {}),
        )

    def __post_init__(self) -> None:
        """Validate bundle manifest."""
        if not self.collection:
            raise ValueError("collection must be non-empty")


def remap_file_ids(value: Any, file_map: dict[str, str]) -> Any:
    """
    Replace every string equal to a source file id with its target file id.

    Walks nested dicts and lists; returns a new structure.
    """
    if isinstance(value, str):
        return file_map.get(value, value)
    if isinstance(value, list):
        return [remap_file_ids(v, file_map) for v in value]
    if isinstance(value, dict):
        return {k: remap_file_ids(v, file_map) for k, v in value.items()}
    return value
