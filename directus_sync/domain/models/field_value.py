"""Tagged field values produced once when a source item is ingested."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from ..types import SERVER_MANAGED_FIELDS

if TYPE_CHECKING:
    from .field_schema import CollectionSchema, FieldSchema

_UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")

# Keys that only appear on directus_files rows
_FILE_OBJECT_KEYS = {"filename_download", "filename_disk", "filesize", "storage"}


def looks_like_file_id(value: Any) -> bool:
    """Directus file ids are UUIDs."""
    return isinstance(value, str) and bool(_UUID_RE.match(value))


@dataclass(frozen=True)
class Primitive:
    """Scalar value, or a composite object with no reference semantics."""

    value: Any

    @property
    def is_composite(self) -> bool:
        return isinstance(self.value, (dict, list))


@dataclass(frozen=True)
class FileRef:
    """
    Candidate reference to a file.

    Attributes:
        file_id: File id (source-scoped until resolved)
        raw: Value as it appeared on the source item
        resolved: True once file_id points at a target file
    """

    file_id: str
    raw: Any = None
    resolved: bool = False

    def as_untouched(self) -> "FieldValue":
        """Value to keep when the candidate turns out not to be a file."""
        if isinstance(self.raw, dict):
            return RelationRef(target_id=self.raw.get("id"), embedded=self.raw)
        return Primitive(self.raw if self.raw is not None else self.file_id)


@dataclass(frozen=True)
class RelationRef:
    """Single related row, stored as an id or an expanded object with an id."""

    target_id: Any
    embedded: dict[str, Any] | None = None


@dataclass(frozen=True)
class RelationList:
    """Many related rows (o2m, m2m, multi-file junctions)."""

    entries: tuple[Any, ...]

    def file_candidates(self) -> list[str]:
        found = []
        for entry in self.entries:
            if looks_like_file_id(entry):
                found.append(entry)
            elif isinstance(entry, dict):
                for value in entry.values():
                    if looks_like_file_id(value):
                        found.append(value)
        return found


@dataclass(frozen=True)
class TranslationList:
    """Locale sub-records of a translations relation."""

    entries: tuple[dict[str, Any], ...]


FieldValue = Union[Primitive, FileRef, RelationRef, RelationList, TranslationList]


def classify(name: str, value: Any, schema: FieldSchema | None = None) -> FieldValue:
    """
    Classify one raw field value.

    The target field schema wins when known; otherwise the value shape decides
    (UUID strings and file-shaped objects become file candidates).

    Args:
        name: Field key
        value: Raw source value
        schema: Target field schema, if available

    Returns:
        Tagged FieldValue
    """
    kind = schema.kind if schema is not None else None

    if isinstance(value, list):
        if kind == "translations" or (kind is None and name == "translations"):
            return TranslationList(entries=tuple(e for e in value if isinstance(e, dict)))
        return RelationList(entries=tuple(value))

    if isinstance(value, dict):
        ref_id = value.get("id")
        if ref_id is None or kind == "json":
            return Primitive(value)
        if kind == "file":
            return FileRef(file_id=str(ref_id), raw=value)
        if kind == "m2o":
            return RelationRef(target_id=ref_id, embedded=value)
        if looks_like_file_id(ref_id) and _FILE_OBJECT_KEYS & value.keys():
            return FileRef(file_id=ref_id, raw=value)
        return RelationRef(target_id=ref_id, embedded=value)

    if kind == "file" and value is not None:
        return FileRef(file_id=str(value), raw=value)
    if kind == "m2o" and value is not None:
        return RelationRef(target_id=value)
    if kind in (None, "primitive") and looks_like_file_id(value):
        return FileRef(file_id=value, raw=value)
    return Primitive(value)


def strip_server_fields(item: dict[str, Any]) -> dict[str, Any]:
    """Copy of the item without fields the server manages itself."""
    return {k: v for k, v in item.items() if k not in SERVER_MANAGED_FIELDS}


def classify_item(item: dict[str, Any], schema: CollectionSchema | None = None) -> dict[str, FieldValue]:
    """Strip server-managed fields, then classify every remaining field."""
    cleaned = strip_server_fields(item)
    return {
        name: classify(name, value, schema.get(name) if schema is not None else None)
        for name, value in cleaned.items()
    }
