"""Application service for target-schema-aware payload cleanup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...domain.errors import DirectusAPIError
from ...domain.models.field_schema import FILES_COLLECTION, CollectionSchema

if TYPE_CHECKING:
    from typing import Any

    from ...domain.models.import_log import ImportLog
    from ..ports.directus_api import DirectusApiPort

logger = logging.getLogger(__name__)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


class FieldSanitizer:
    """
    Loads target metadata once per run and applies the network-bound cleanup
    steps (required defaults, dangling references).

    Every metadata fetch failure degrades: an unknown schema accepts all fields
    and unknown languages keep their codes.
    """

    def __init__(self, target: DirectusApiPort, log: ImportLog | None = None) -> None:
        self.target = target
        self.log = log
        self._schemas: dict[str, CollectionSchema] = {}
        self._languages: list[str] | None = None
        self._languages_loaded = False
        self._fallback_ids: dict[str, Any] = {}
        self._existing: dict[tuple[str, str], bool] = {}

    def _degraded(self, step: str, error: Exception, **details: Any) -> None:
        logger.warning(f"{step}: {error}", extra={"step": step, **details})
        if self.log is not None:
            self.log.step(
                step,
                error=str(error),
                status=getattr(error, "status", None),
                **details,
            )

    async def load_schema(self, collection: str) -> CollectionSchema:
        """
        Field schema of a target collection (cached for the run).

        Args:
            collection: Collection name

        Returns:
            CollectionSchema (empty, accepting every field, if it cannot be read)
        """
        if collection in self._schemas:
            return self._schemas[collection]
        try:
            fields = await self.target.get_fields(collection)
        except DirectusAPIError as e:
            self._degraded("schema_fetch_warning", e, collection=collection)
            schema = CollectionSchema(collection=collection)
        else:
            try:
                relations = await self.target.get_relations(collection)
            except DirectusAPIError as e:
                self._degraded("relations_fetch_warning", e, collection=collection)
                relations = []
            schema = CollectionSchema.from_directus(collection, fields, relations)
        self._schemas[collection] = schema
        return schema

    async def supported_languages(self) -> list[str] | None:
        """Language codes present on the target, or None if unknown."""
        if self._languages_loaded:
            return self._languages
        self._languages_loaded = True
        try:
            rows = await self.target.list_languages()
        except DirectusAPIError as e:
            self._degraded("languages_fetch_warning", e)
            return None
        codes = [str(r["code"]) for r in rows if r.get("code")]
        self._languages = codes or None
        return self._languages

    async def _fallback_id(self, related_collection: str) -> Any:
        if related_collection in self._fallback_ids:
            return self._fallback_ids[related_collection]
        fallback = None
        try:
            rows = await self.target.list_items(related_collection, limit=1, fields=["id"])
            if rows:
                fallback = rows[0].get("id")
        except DirectusAPIError as e:
            self._degraded("related_fetch_warning", e, collection=related_collection)
        self._fallback_ids[related_collection] = fallback
        return fallback

    async def fill_required_defaults(self, payload: dict[str, Any], schema: CollectionSchema) -> dict[str, Any]:
        """
        Fill required fields that are absent or empty.

        Uses the declared default, else (many-to-one only) the id of an
        arbitrary row of the related collection. Otherwise leaves the field
        absent and lets the target reject the write.

        Returns:
            New payload
        """
        result = dict(payload)
        for field_schema in schema.required_fields():
            if not _is_empty(result.get(field_schema.name)):
                continue
            if field_schema.default is not None:
                result[field_schema.name] = field_schema.default
            elif field_schema.kind == "m2o" and field_schema.related_collection:
                fallback = await self._fallback_id(field_schema.related_collection)
                if fallback is not None:
                    result[field_schema.name] = fallback
                    if self.log is not None:
                        self.log.step(
                            "required_field_defaulted",
                            field=field_schema.name,
                            related_collection=field_schema.related_collection,
                            value=fallback,
                        )
        return result

    async def _exists(self, collection: str, item_id: Any) -> bool:
        key = (collection, str(item_id))
        if key in self._existing:
            return self._existing[key]
        try:
            if collection == FILES_COLLECTION:
                found = await self.target.probe_file(str(item_id))
            else:
                await self.target.get_item(collection, item_id, fields=["id"])
                found = True
        except DirectusAPIError as e:
            if not e.is_not_found:
                raise
            found = False
        self._existing[key] = found
        return found

    async def null_dangling_references(
        self,
        payload: dict[str, Any],
        schema: CollectionSchema,
        known_ids: set[str] | None = None,
    ) -> dict[str, Any]:
        """
        Replace single file/relation ids that do not exist on the target with None.

        Args:
            payload: Sanitized payload
            schema: Target collection schema
            known_ids: Ids already known to exist on the target (e.g. freshly uploaded files)

        Returns:
            New payload
        """
        result = dict(payload)
        for name, value in payload.items():
            field_schema = schema.get(name)
            if field_schema is None or not field_schema.is_single_reference:
                continue
            if value is None or isinstance(value, (dict, list)):
                continue
            if known_ids and str(value) in known_ids:
                continue
            related = field_schema.related_collection
            if field_schema.kind == "file" or related is None:
                related = FILES_COLLECTION if field_schema.kind == "file" else None
            if related is None:
                continue
            try:
                exists = await self._exists(related, value)
            except DirectusAPIError as e:
                self._degraded("reference_check_warning", e, field=name, collection=related)
                continue
            if not exists:
                result[name] = None
                if self.log is not None:
                    self.log.step("dangling_reference_cleared", field=name, collection=related, value=value)
        return result


async def source_read_fields(
    source: DirectusApiPort,
    collection: str,
    expand: list[str] | None = None,
    log: ImportLog | None = None,
) -> list[str]:
    """
    ``fields`` parameter for reading source items.

    Translations are one-to-many, so Directus returns them as bare ids unless
    ``<field>.*`` is requested. The source schema names the translations
    fields; when it cannot be read, ``translations`` is assumed.

    Args:
        source: Source instance
        collection: Collection being read
        expand: Extra relation fields to expand one level
        log: Run log for degraded schema reads

    Returns:
        Field list such as ``["*", "translations.*", "author.*"]``
    """
    try:
        fields_data = await source.get_fields(collection)
    except DirectusAPIError as e:
        logger.warning(
            f"Cannot read source fields of '{collection}': {e}",
            extra={"collection": collection, "status": e.status},
        )
        if log is not None:
            log.step("source_schema_warning", collection=collection, error=str(e), status=e.status)
        fields_data = []
    schema = CollectionSchema.from_directus(collection, fields_data)
    relations = [f.name for f in schema.fields.values() if f.kind == "translations"]
    if not schema.fields:
        relations = ["translations"]

    for name in expand or []:
        if name not in relations:
            relations.append(name)
    return ["*"] + [f"{name}.*" for name in relations]
