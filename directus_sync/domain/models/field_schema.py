"""Domain models for collection field and relation metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any

FILES_COLLECTION = "directus_files"

# Directus "special" flags grouped by the value shape they imply
FILE_SPECIALS = {"file"}
SINGLE_RELATION_SPECIALS = {"m2o"}
LIST_RELATION_SPECIALS = {"o2m", "m2m", "m2a", "files"}
TRANSLATION_SPECIALS = {"translations"}
FILE_INTERFACES = {"file", "file-image"}

VALID_KINDS = {"primitive", "json", "file", "m2o", "list", "translations"}


@dataclass(frozen=True)
class FieldSchema:
    """
    Shape of one field of a target collection.

    Attributes:
        name: Field key
        kind: "primitive" | "json" | "file" | "m2o" | "list" | "translations"
        data_type: Directus storage type (string, uuid, integer, json, alias, ...)
        required: Whether the field must be non-empty on write
        default: Declared default value (None if absent)
        related_collection: Collection referenced by a relation field
    """

    name: str
    kind: str = "primitive"
    data_type: str | None = None
    required: bool = False
    default: Any = None
    related_collection: str | None = None

    def __post_init__(self) -> None:
        """Validate field schema."""
        if not self.name:
            raise ValueError("name must be non-empty")
        if self.kind not in VALID_KINDS:
            raise ValueError(f"kind must be one of {VALID_KINDS}, got {self.kind}")

    @property
    def is_single_reference(self) -> bool:
        """File or many-to-one: the stored value is one foreign id."""
        return self.kind in ("file", "m2o")

    @classmethod
    def from_directus(cls, data: dict[str, Any], related_collection: str | None = None) -> FieldSchema:
        """Build from one entry of the Directus /fields/{collection} payload."""
        meta = data.get("meta") or {}
        schema = data.get("schema") or {}
        specials = set(meta.get("special") or [])
        interface = meta.get("interface") or ""
        data_type = data.get("type")

        if related_collection is None:
            related_collection = schema.get("foreign_key_table")

        if specials & TRANSLATION_SPECIALS:
            kind = "translations"
        elif specials & LIST_RELATION_SPECIALS:
            kind = "list"
        elif specials & FILE_SPECIALS or interface in FILE_INTERFACES or related_collection == FILES_COLLECTION:
            kind = "file"
            related_collection = FILES_COLLECTION
        elif specials & SINGLE_RELATION_SPECIALS or (related_collection and data_type != "alias"):
            kind = "m2o"
        elif data_type in ("json", "csv"):
            kind = "json"
        else:
            kind = "primitive"

        return cls(
            name=data["field"],
            kind=kind,
            data_type=data_type,
            required=bool(meta.get("required")),
            default=schema.get("default_value"),
            related_collection=related_collection,
        )


@dataclass
class CollectionSchema:
    """
    Field schema of one target collection.

    An empty schema (metadata unavailable) accepts every field, so callers degrade
    to pass-through instead of dropping the whole payload.
    """

    collection: str
    fields: dict[str, FieldSchema] = field(default_factory=dict)

    @property
    def is_known(self) -> bool:
        return bool(self.fields)

    def get(self, name: str) -> FieldSchema | None:
        return self.fields.get(name)

    def accepts(self, name: str) -> bool:
        """True if the target collection has this field (or the schema is unknown)."""
        return not self.is_known or name in self.fields

    def required_fields(self) -> list[FieldSchema]:
        return [f for f in self.fields.values() if f.required]

    def translations_field(self) -> FieldSchema | None:
        for f in self.fields.values():
            if f.kind == "translations":
                return f
        return None

    @classmethod
    def from_directus(
        cls,
        collection: str,
        fields_data: list[dict[str, Any]],
        relations_data: list[dict[str, Any]] | None = None,
    ) -> CollectionSchema:
        """
        Build from the Directus /fields and /relations payloads of one collection.

        Args:
            collection: Collection name
            fields_data: Entries of GET /fields/{collection}
            relations_data: Entries of GET /relations/{collection} (optional)
        """
        related: dict[str, str] = {}
        for rel in relations_data or []:
            meta = rel.get("meta") or {}
            if rel.get("collection") == collection and rel.get("field") and rel.get("related_collection"):
                related[rel["field"]] = rel["related_collection"]
            # o2m / translations are declared on the child collection
            if meta.get("one_collection") == collection and meta.get("one_field"):
                related[meta["one_field"]] = rel.get("collection")

        fields: dict[str, FieldSchema] = {}
        for entry in fields_data:
            name = entry.get("field")
            if not name:
                continue
            fields[name] = FieldSchema.from_directus(entry, related_collection=related.get(name))
        return cls(collection=collection, fields=fields)
