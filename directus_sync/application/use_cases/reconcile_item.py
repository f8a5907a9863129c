"""Use case for reconciling one source item into the target collection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from ...domain.errors import DirectusAPIError, ItemWriteError
from ...domain.models.field_value import classify_item
from ...domain.models.import_result import ImportedItemResult, ItemError
from ...domain.policy.match_policy import MatchPolicy
from ...domain.services.payload_sanitizer import sanitize_values
from ...domain.services.title import derive_title, unwrap_rich_text
from ..services.file_transfer import ItemFileContext

if TYPE_CHECKING:
    from typing import Any

    from ...domain.models.field_schema import CollectionSchema
    from ...domain.models.field_value import FieldValue
    from ...domain.models.import_log import ImportLog
    from ..ports.directus_api import DirectusApiPort
    from ..ports.progress_reporter import ItemProgressContext
    from ..services.field_sanitizer import FieldSanitizer
    from ..services.identity_mapper import IdentityMapper

logger = logging.getLogger(__name__)


class FileResolver(Protocol):
    """Rewrites file candidates of a classified item to target file ids."""

    async def resolve_fields(
        self,
        values: dict[str, FieldValue],
        ctx: ItemFileContext,
    ) -> dict[str, FieldValue]:
        ...


@dataclass
class ReconcileContext:
    """
    Collaborators and run-wide settings shared by every item of a run.

    Attributes:
        target: Target instance
        collection: Target collection name
        schema: Target collection schema
        mapper: Identity mapper
        files: File resolver (live transfer or bundle map)
        sanitizer: Network-bound payload cleanup
        log: Run step log
        supported_languages: Language codes on the target (None = unknown)
        match_policy: Fallback matching when no identity mapping exists
        dry_run: Decide create/update without writing
    """

    target: DirectusApiPort
    collection: str
    schema: CollectionSchema
    mapper: IdentityMapper
    files: FileResolver
    sanitizer: FieldSanitizer
    log: ImportLog
    supported_languages: list[str] | None = None
    match_policy: MatchPolicy = field(default_factory=MatchPolicy)
    dry_run: bool = False


def _stage(progress: ItemProgressContext | None, stage: str, description: str) -> None:
    if progress is not None:
        progress.update_stage(stage, description)


async def _heuristic_lookup(
    raw_item: dict[str, Any],
    title: str | None,
    ctx: ReconcileContext,
) -> tuple[Any, dict[str, Any] | None]:
    """First target item whose url/path/slug/name/title equals the source item's."""
    for field_name in ctx.match_policy.fields:
        if not ctx.schema.accepts(field_name):
            continue
        value = unwrap_rich_text(raw_item.get(field_name))
        if field_name == "title" and not value:
            value = title
        if not isinstance(value, (str, int)) or value == "":
            continue
        try:
            rows = await ctx.target.list_items(
                ctx.collection,
                limit=1,
                filter={field_name: {"_eq": value}},
            )
        except DirectusAPIError as e:
            ctx.log.step(
                "heuristic_match_warning",
                field=field_name,
                error=e.message,
                status=e.status,
            )
            continue
        if rows and rows[0].get("id") is not None:
            ctx.log.step(
                "heuristic_match",
                source_id=raw_item.get("id"),
                field=field_name,
                target_id=rows[0]["id"],
            )
            return rows[0]["id"], rows[0]
    return None, None


async def _find_existing(
    source_id: Any,
    raw_item: dict[str, Any],
    title: str | None,
    ctx: ReconcileContext,
) -> tuple[Any, dict[str, Any] | None]:
    """Target id and current snapshot of the item this source item became, if any."""
    target_id = await ctx.mapper.lookup(ctx.collection, source_id)
    if target_id is not None:
        try:
            snapshot = await ctx.target.get_item(ctx.collection, target_id)
        except DirectusAPIError as e:
            ctx.log.step(
                "snapshot_fetch_warning",
                source_id=source_id,
                target_id=target_id,
                error=e.message,
                status=e.status,
            )
            snapshot = None
        return target_id, snapshot

    if ctx.match_policy.heuristic_enabled:
        return await _heuristic_lookup(raw_item, title, ctx)
    return None, None


async def _write(
    source_id: Any,
    target_id: Any,
    payload: dict[str, Any],
    ctx: ReconcileContext,
) -> tuple[Any, str]:
    """
    Update the existing target item, falling back to create; or create.

    Returns:
        (target id, action)

    Raises:
        ItemWriteError: If the final write attempt was rejected
    """
    if target_id is not None:
        try:
            await ctx.target.update_item(ctx.collection, target_id, payload)
            return target_id, "updated"
        except DirectusAPIError as e:
            ctx.log.step(
                "item_update_failed",
                source_id=source_id,
                target_id=target_id,
                error=e.message,
                status=e.status,
                details=e.details,
            )

    try:
        created = await ctx.target.create_item(ctx.collection, payload)
    except DirectusAPIError as e:
        raise ItemWriteError(ctx.collection, source_id, e) from e
    return created.get("id"), "created"


async def reconcile_item(
    raw_item: dict[str, Any],
    ctx: ReconcileContext,
    progress: ItemProgressContext | None = None,
) -> ImportedItemResult:
    """
    Bring one source item into the target collection.

    Stages: title derived, existing item looked up, file fields resolved,
    write attempted. Every failure is captured in the returned result; this
    function does not raise for API or payload errors.

    Args:
        raw_item: Item as read from the source (or a bundle manifest)
        ctx: Run context
        progress: Optional item-level progress context

    Returns:
        ImportedItemResult with status "success" or "error"
    """
    source_id = raw_item.get("id")
    title: str | None = None
    try:
        title = derive_title(raw_item)
        _stage(progress, "title_derived", title or str(source_id))

        target_id, snapshot = await _find_existing(source_id, raw_item, title, ctx)
        _stage(progress, "existing_lookup", "matched" if target_id is not None else "new")

        file_ctx = ItemFileContext(item_id=source_id, title=title, snapshot=snapshot)
        values = classify_item(raw_item, ctx.schema)
        values = await ctx.files.resolve_fields(values, file_ctx)
        _stage(progress, "file_fields_resolved", f"{len(file_ctx.cache)} file(s)")

        sanitized = sanitize_values(values, ctx.schema, ctx.supported_languages)
        if sanitized.dropped_languages:
            ctx.log.step(
                "translation_languages_skipped",
                source_id=source_id,
                languages=sorted(set(sanitized.dropped_languages)),
            )
        # dangling ids become None first so required fields can still be defaulted
        payload = await ctx.sanitizer.null_dangling_references(
            sanitized.data, ctx.schema, known_ids=set(file_ctx.cache.values())
        )
        payload = await ctx.sanitizer.fill_required_defaults(payload, ctx.schema)

        if ctx.dry_run:
            action = "updated" if target_id is not None else "created"
            ctx.log.step("item_planned", source_id=source_id, target_id=target_id, action=action, title=title)
            return ImportedItemResult.succeeded(source_id, target_id, action, title=title)

        _stage(progress, "write_attempted", "updating" if target_id is not None else "creating")
        new_target_id, action = await _write(source_id, target_id, payload, ctx)
        await ctx.mapper.upsert(ctx.collection, source_id, new_target_id)

        ctx.log.step(
            "item_imported",
            source_id=source_id,
            target_id=new_target_id,
            action=action,
            title=title,
            deep=sanitized.deep,
        )
        return ImportedItemResult.succeeded(source_id, new_target_id, action, title=title)
    except Exception as e:
        error = ItemError.from_exception(e)
        logger.warning(
            f"Item {source_id} failed: {e}",
            extra={"collection": ctx.collection, "source_id": source_id, "status": error.status},
        )
        ctx.log.step(
            "item_import_failed",
            source_id=source_id,
            title=title,
            error=error.message,
            status=error.status,
            details=error.details,
        )
        return ImportedItemResult.failed(source_id, error, title=title)
