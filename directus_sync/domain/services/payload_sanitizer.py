"""Schema-driven payload cleanup (pure part of the field/relation sanitizer)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..models.field_value import (
    FieldValue,
    FileRef,
    Primitive,
    RelationList,
    RelationRef,
    TranslationList,
    classify_item,
)
from .languages import language_code_of, normalize_language_code
from .title import unwrap_rich_text

if TYPE_CHECKING:
    from ..models.field_schema import CollectionSchema

RICH_TEXT_FIELDS = ("title", "body")


@dataclass
class SanitizedPayload:
    """
    Write-ready payload plus what was left out.

    Attributes:
        data: Payload for create/update
        dropped: Field names removed (unknown to target, composite, or deferred relations)
        dropped_languages: Translation language codes with no target counterpart
        deep: True when nested translation rows are attached (deep write)
    """

    data: dict[str, Any] = field(default_factory=dict)
    dropped: list[str] = field(default_factory=list)
    dropped_languages: list[str] = field(default_factory=list)
    deep: bool = False


def clean_translations(
    entries: tuple[dict[str, Any], ...] | list[dict[str, Any]],
    supported_languages: list[str] | None,
    parent_fk: str | None = None,
) -> tuple[list[dict[str, Any]], list[str]]:
    """
    Prepare translation rows for a nested create on the target.

    Strips row ids (and the parent back-reference) so the target creates fresh
    rows, unwraps ``{value}`` rich text on title/body, and maps ``languages_code``
    onto a supported code. Entries whose language has no counterpart are
    dropped. With ``supported_languages=None`` codes are kept as-is.

    Returns:
        (cleaned entries, dropped language codes)
    """
    cleaned: list[dict[str, Any]] = []
    dropped: list[str] = []
    for entry in entries:
        row = {k: v for k, v in entry.items() if k != "id" and k != parent_fk}
        for key in RICH_TEXT_FIELDS:
            if key in row:
                row[key] = unwrap_rich_text(row[key])

        if "languages_code" in row:
            code = language_code_of(row["languages_code"])
            if code is None:
                dropped.append(str(row["languages_code"]))
                continue
            if supported_languages is not None:
                normalized = normalize_language_code(code, supported_languages)
                if normalized is None:
                    dropped.append(code)
                    continue
                code = normalized
            row["languages_code"] = code
        cleaned.append(row)
    return cleaned, dropped


def sanitize_values(
    values: dict[str, FieldValue],
    schema: CollectionSchema,
    supported_languages: list[str] | None = None,
) -> SanitizedPayload:
    """
    Reduce classified values to what the target collection accepts.

    - fields unknown to the target schema are dropped
    - single file/relation references become their id
    - file-typed fields keep only a string id
    - relation lists and other composite values are dropped, except
      translations, which are cleaned and attached for a deep write
    """
    payload = SanitizedPayload()
    parent_fk = f"{schema.collection}_id"

    for name, value in values.items():
        if not schema.accepts(name):
            payload.dropped.append(name)
            continue
        field_schema = schema.get(name)

        if isinstance(value, TranslationList):
            if field_schema is not None and field_schema.kind != "translations":
                payload.dropped.append(name)
                continue
            cleaned, dropped_codes = clean_translations(value.entries, supported_languages, parent_fk)
            payload.dropped_languages.extend(dropped_codes)
            if cleaned:
                payload.data[name] = cleaned
                payload.deep = True
            else:
                payload.dropped.append(name)
        elif isinstance(value, RelationList):
            payload.dropped.append(name)
        elif isinstance(value, FileRef):
            payload.data[name] = value.file_id
        elif isinstance(value, RelationRef):
            if field_schema is None or field_schema.is_single_reference:
                payload.data[name] = value.target_id
            elif value.embedded is None:
                payload.data[name] = value.target_id
            else:
                payload.dropped.append(name)
        elif isinstance(value, Primitive):
            if field_schema is not None and field_schema.kind == "file":
                if value.value is None or isinstance(value.value, str):
                    payload.data[name] = value.value
                else:
                    payload.dropped.append(name)
            elif value.is_composite and (field_schema is None or field_schema.kind != "json"):
                payload.dropped.append(name)
            else:
                payload.data[name] = value.value
    return payload


def sanitize(
    raw_item: dict[str, Any],
    schema: CollectionSchema,
    supported_languages: list[str] | None = None,
) -> SanitizedPayload:
    """Strip server-managed fields, classify and sanitize a raw source item."""
    return sanitize_values(classify_item(raw_item, schema), schema, supported_languages)
