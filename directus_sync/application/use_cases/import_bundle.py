"""Use case for importing a transfer bundle into a target instance."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from ...domain.errors import DirectusAPIError
from ...domain.models.bundle_manifest import parse_bundle_file_name, remap_file_ids
from ...domain.models.field_value import FileRef
from ...domain.models.import_log import ImportLog
from ...domain.models.import_result import SyncStats
from ...domain.policy.match_policy import MatchPolicy
from ...domain.services.mime_types import guess_content_type
from ...infrastructure.logging import set_correlation_id
from ..dto.sync import ImportOptions, RunResult
from ..services.field_sanitizer import FieldSanitizer
from ..services.identity_mapper import IdentityMapper
from ..services.target_folder import ensure_target_folder
from .import_collection import reconcile_all, summarize
from .reconcile_item import ReconcileContext

if TYPE_CHECKING:
    from typing import Any

    from ...domain.models.cancellation import CancellationToken
    from ...domain.models.field_value import FieldValue
    from ...domain.models.import_result import ImportedItemResult
    from ..ports.bundle_store import BundleStorePort
    from ..ports.directus_api import DirectusApiPort
    from ..ports.progress_reporter import ProgressReporterPort
    from ..services.file_transfer import ItemFileContext

logger = logging.getLogger(__name__)


class BundleFileResolver:
    """
    File resolver for bundle imports.

    Item file ids were already rewritten to uploaded target ids; anything else
    is kept only if it exists on the target.
    """

    def __init__(self, target: DirectusApiPort, uploaded_ids: set[str], log: ImportLog) -> None:
        self.target = target
        self.uploaded_ids = uploaded_ids
        self.log = log

    async def resolve_fields(
        self,
        values: dict[str, FieldValue],
        ctx: ItemFileContext,
    ) -> dict[str, FieldValue]:
        resolved: dict[str, FieldValue] = {}
        for name, value in values.items():
            if not isinstance(value, FileRef) or value.resolved:
                resolved[name] = value
                continue
            if value.file_id in self.uploaded_ids:
                ctx.cache[value.file_id] = value.file_id
                resolved[name] = FileRef(file_id=value.file_id, raw=value.raw, resolved=True)
                continue
            try:
                exists = await self.target.probe_file(value.file_id)
            except DirectusAPIError:
                exists = False
            if exists:
                ctx.cache[value.file_id] = value.file_id
                resolved[name] = FileRef(file_id=value.file_id, raw=value.raw, resolved=True)
            else:
                self.log.step("file_missing", field=name, item_id=ctx.item_id, file_id=value.file_id)
                resolved[name] = value.as_untouched()
        return resolved


async def _upload_bundle_files(
    store: BundleStorePort,
    target: DirectusApiPort,
    folder_id: str | None,
    log: ImportLog,
    stats: SyncStats,
    dry_run: bool,
) -> dict[str, str]:
    """Upload every binary under files/. Returns the source -> target file id map."""
    file_map: dict[str, str] = {}
    for name in store.list_files():
        if name.lower().endswith(".json"):
            continue
        try:
            source_file_id, original_name = parse_bundle_file_name(name)
        except ValueError as e:
            log.step("bundle_file_skipped", name=name, reason=str(e))
            continue
        if dry_run:
            log.step("file_upload_planned", source_file_id=source_file_id, name=name)
            continue
        try:
            content = store.read_file(name)
            uploaded = await target.upload_file(
                content,
                filename=original_name,
                content_type=guess_content_type(original_name),
                folder=folder_id,
            )
        except DirectusAPIError as e:
            stats.files_failed += 1
            log.step(
                "file_copy_error",
                source_file_id=source_file_id,
                name=name,
                error=e.message,
                status=e.status,
                details=e.details,
            )
            continue
        file_map[source_file_id] = str(uploaded["id"])
        stats.files_uploaded += 1
        log.step(
            "file_uploaded",
            source_file_id=source_file_id,
            target_file_id=file_map[source_file_id],
            filename=original_name,
            size=len(content),
        )
    return file_map


async def import_bundle(
    store: BundleStorePort,
    target: DirectusApiPort,
    collection: str | None = None,
    options: ImportOptions | None = None,
    progress_reporter: ProgressReporterPort | None = None,
    cancel_token: CancellationToken | None = None,
    correlation_id: str | None = None,
) -> RunResult:
    """
    Import a bundle's items into the target.

    Uploads every binary first, rewrites file ids in the items, then runs the
    same reconciliation path as a live import.

    Args:
        store: Bundle container to read
        target: Target instance
        collection: Target collection (defaults to the manifest's collection)
        options: Run options (limit, title filter, dry run, heuristic matching)
        progress_reporter: Optional progress reporter
        cancel_token: Optional cooperative cancellation flag
        correlation_id: Correlation ID (generated if not provided)

    Returns:
        RunResult with per-item results and the step log
    """
    options = options or ImportOptions()
    correlation_id = correlation_id or str(uuid.uuid4())
    set_correlation_id(correlation_id)
    start_time = datetime.now()
    log = ImportLog()
    stats = SyncStats()
    results: list[ImportedItemResult] = []
    target_collection = collection or ""

    def finish(success: bool, message: str, cancelled: bool = False, error: dict[str, Any] | None = None) -> RunResult:
        return RunResult(
            success=success,
            message=message,
            collection=target_collection,
            imported_items=results,
            import_log=log.entries,
            stats=stats,
            cancelled=cancelled,
            dry_run=options.dry_run,
            correlation_id=correlation_id,
            duration_seconds=(datetime.now() - start_time).total_seconds(),
            error=error,
        )

    log.step(
        "import_start",
        bundle=store.location,
        target=target.base_url,
        dry_run=options.dry_run,
        correlation_id=correlation_id,
    )
    try:
        manifest = store.read_manifest()
        target_collection = collection or manifest.collection
        items = list(manifest.items)
        if options.limit is not None:
            items = items[: options.limit]
        log.step(
            "fetch_data_success",
            collection=target_collection,
            count=len(items),
            exported_at=manifest.exported_at.isoformat(),
        )

        folder = None
        if not options.dry_run:
            folder = await ensure_target_folder(target, target_collection, log)

        file_map = await _upload_bundle_files(
            store,
            target,
            folder.id if folder else None,
            log,
            stats,
            options.dry_run,
        )

        if not items:
            message = f"Collection '{target_collection}' is empty in bundle {store.location}"
            log.step("collection_empty", collection=target_collection)
            log.step("import_complete", collection=target_collection, total=0, **stats.to_dict())
            return finish(True, message)

        items = [remap_file_ids(item, file_map) for item in items]
        sanitizer = FieldSanitizer(target, log)
        ctx = ReconcileContext(
            target=target,
            collection=target_collection,
            schema=await sanitizer.load_schema(target_collection),
            mapper=IdentityMapper(target, options.mapping_collection, log),
            files=BundleFileResolver(target, set(file_map.values()), log),
            sanitizer=sanitizer,
            log=log,
            supported_languages=await sanitizer.supported_languages(),
            match_policy=MatchPolicy(heuristic_enabled=options.heuristic_match),
            dry_run=options.dry_run,
        )

        results, cancelled = await reconcile_all(items, ctx, stats, progress_reporter, cancel_token)
        if cancelled:
            log.step("import_complete", collection=target_collection, cancelled=True, **stats.to_dict())
            return finish(
                False,
                f"Import cancelled after {len(results)} of {len(items)} items from bundle {store.location}",
                cancelled=True,
            )

        message = summarize(f"bundle {store.location}", stats, options.dry_run)
        log.step("import_complete", collection=target_collection, message=message, **stats.to_dict())
        logger.info(
            message,
            extra={"correlation_id": correlation_id, "collection": target_collection, "stats": stats.to_dict()},
        )
        return finish(True, message)
    except Exception as e:
        logger.error(
            f"Bundle import from {store.location} failed: {e}",
            exc_info=True,
            extra={"correlation_id": correlation_id, "bundle": store.location},
        )
        log.step("fatal_error", error=str(e), status=getattr(e, "status", None))
        return finish(False, f"Import failed: {e}", error={"message": str(e)})
