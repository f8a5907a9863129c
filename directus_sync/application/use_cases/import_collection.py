"""Use case for importing one collection from a source instance into a target instance."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from ...domain.errors import ImportCancelled
from ...domain.models.import_log import ImportLog
from ...domain.models.import_result import SyncStats
from ...domain.policy.match_policy import MatchPolicy
from ...infrastructure.logging import set_correlation_id
from ..dto.sync import ImportOptions, RunResult
from ..services.access_check import validate_api_access
from ..services.field_sanitizer import FieldSanitizer, source_read_fields
from ..services.file_transfer import FileTransferEngine
from ..services.identity_mapper import IdentityMapper
from ..services.target_folder import ensure_target_folder
from .reconcile_item import ReconcileContext, reconcile_item

if TYPE_CHECKING:
    from typing import Any

    from ...domain.models.cancellation import CancellationToken
    from ...domain.models.import_result import ImportedItemResult
    from ..ports.directus_api import DirectusApiPort
    from ..ports.progress_reporter import ProgressReporterPort
    from ..ports.token_validator import TokenValidatorPort

logger = logging.getLogger(__name__)


def summarize(
    origin: str,
    stats: SyncStats,
    dry_run: bool = False,
) -> str:
    """
    Human-readable run summary.

    Counts created/updated/failed items and surfaces the first item error.
    """
    message = (
        f"Successfully imported {stats.succeeded} items from {origin} "
        f"({stats.created} created, {stats.updated} updated, {stats.failed} failed)"
    )
    if stats.first_error:
        message += f". First error: {stats.first_error}"
    if dry_run:
        message = f"[dry run] {message}"
    return message


async def reconcile_all(
    items: list[dict[str, Any]],
    ctx: ReconcileContext,
    stats: SyncStats,
    progress_reporter: ProgressReporterPort | None = None,
    cancel_token: CancellationToken | None = None,
) -> tuple[list[ImportedItemResult], bool]:
    """
    Reconcile items strictly in order, one result per processed item.

    The cancel token is checked before each item; the item in flight always
    completes.

    Returns:
        (results in run order, cancelled flag)
    """
    results: list[ImportedItemResult] = []
    cancelled = False
    total = len(items)

    batch_progress = None
    if progress_reporter:
        batch_progress = progress_reporter.start_batch(total_items=total, description=f"Syncing {ctx.collection}")

    ctx.log.step("import_items_start", collection=ctx.collection, count=total, dry_run=ctx.dry_run)
    for index, raw_item in enumerate(items, start=1):
        try:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
        except ImportCancelled as e:
            cancelled = True
            ctx.log.step("import_cancelled", processed=len(results), total=total, reason=str(e))
            break

        item_progress = None
        if progress_reporter:
            item_progress = progress_reporter.start_item(index, total, str(raw_item.get("id")))

        result = await reconcile_item(raw_item, ctx, item_progress)
        results.append(result)
        stats.record(result)

        if item_progress is not None:
            if result.ok:
                item_progress.finish()
            else:
                item_progress.fail(result.error.message if result.error else "failed")
        if batch_progress is not None:
            batch_progress.update(index)

    if batch_progress is not None:
        batch_progress.finish()
    return results, cancelled


async def _fetch_items(
    source: DirectusApiPort,
    collection: str,
    options: ImportOptions,
    log: ImportLog,
) -> list[dict[str, Any]]:
    filter_: dict[str, Any] | None = None
    if options.title_filter:
        filter_ = {"translations": {"title": {"_contains": options.title_filter}}}
    fields = await source_read_fields(source, collection, log=log)

    log.step(
        "fetch_data_start",
        collection=collection,
        limit=options.limit,
        title_filter=options.title_filter,
    )
    items = await source.list_items(collection, limit=options.limit, filter=filter_, fields=fields)
    if options.limit is not None:
        items = items[: options.limit]
    log.step("fetch_data_success", collection=collection, count=len(items))
    return items


async def import_collection(
    source: DirectusApiPort,
    target: DirectusApiPort,
    collection: str,
    options: ImportOptions | None = None,
    token_validator: TokenValidatorPort | None = None,
    progress_reporter: ProgressReporterPort | None = None,
    cancel_token: CancellationToken | None = None,
    correlation_id: str | None = None,
) -> RunResult:
    """
    Import every (or a filtered/capped subset of) item of a collection.

    Workflow:
    1. Validate the source token (the only whole-run-fatal check)
    2. Find or create the target folder named after the collection
    3. Fetch items, optionally filtered by translation title and capped
    4. Reconcile items sequentially, checking the cancel token between items

    Partial item failures still yield success=True; the summary carries the
    counts and the first item error.

    Args:
        source: Source instance
        target: Target instance
        collection: Collection name (same on both sides)
        options: Run options (limit, title filter, dry run, heuristic matching)
        token_validator: Optional preflight adapter; defaults to checking the source client directly
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

    def finish(success: bool, message: str, cancelled: bool = False, error: dict[str, Any] | None = None) -> RunResult:
        return RunResult(
            success=success,
            message=message,
            collection=collection,
            imported_items=results,
            import_log=log.entries,
            stats=stats,
            cancelled=cancelled,
            dry_run=options.dry_run,
            correlation_id=correlation_id,
            duration_seconds=(datetime.now() - start_time).total_seconds(),
            error=error,
        )

    logger.info(
        f"Starting import of collection '{collection}'",
        extra={
            "correlation_id": correlation_id,
            "collection": collection,
            "source": source.base_url,
            "target": target.base_url,
        },
    )
    log.step(
        "import_start",
        collection=collection,
        source=source.base_url,
        target=target.base_url,
        limit=options.limit,
        title_filter=options.title_filter,
        dry_run=options.dry_run,
        correlation_id=correlation_id,
    )

    try:
        if token_validator is not None:
            validation = await token_validator.validate(source.base_url, source.token or "")
        else:
            validation = await validate_api_access(source)
        if not validation.success:
            log.step("token_validation_failed", message=validation.message, error=validation.error)
            return finish(
                False,
                f"Source token validation failed: {validation.message}",
                error=validation.error or {"message": validation.message},
            )
        log.step("token_validation_success", server_info=validation.server_info)

        folder = None
        if not options.dry_run:
            folder = await ensure_target_folder(target, collection, log)

        items = await _fetch_items(source, collection, options, log)
        if not items:
            message = f"Collection '{collection}' is empty on the source server"
            if options.title_filter:
                message += f" (title filter: '{options.title_filter}')"
            log.step("collection_empty", collection=collection, title_filter=options.title_filter)
            log.step("import_complete", collection=collection, total=0)
            return finish(True, message)

        sanitizer = FieldSanitizer(target, log)
        ctx = ReconcileContext(
            target=target,
            collection=collection,
            schema=await sanitizer.load_schema(collection),
            mapper=IdentityMapper(target, options.mapping_collection, log),
            files=FileTransferEngine(
                source,
                target,
                folder_id=folder.id if folder else None,
                log=log,
                stats=stats,
                dry_run=options.dry_run,
            ),
            sanitizer=sanitizer,
            log=log,
            supported_languages=await sanitizer.supported_languages(),
            match_policy=MatchPolicy(heuristic_enabled=options.heuristic_match),
            dry_run=options.dry_run,
        )

        results, cancelled = await reconcile_all(items, ctx, stats, progress_reporter, cancel_token)

        if cancelled:
            message = f"Import cancelled after {len(results)} of {len(items)} items from {source.base_url}"
            log.step("import_complete", collection=collection, cancelled=True, **stats.to_dict())
            return finish(False, message, cancelled=True)

        message = summarize(source.base_url, stats, options.dry_run)
        log.step("import_complete", collection=collection, message=message, **stats.to_dict())
        logger.info(
            message,
            extra={"correlation_id": correlation_id, "collection": collection, "stats": stats.to_dict()},
        )
        return finish(True, message)
    except Exception as e:
        logger.error(
            f"Import of collection '{collection}' failed: {e}",
            exc_info=True,
            extra={"correlation_id": correlation_id, "collection": collection},
        )
        log.step(
            "fatal_error",
            error=str(e),
            status=getattr(e, "status", None),
            details=getattr(e, "details", None),
        )
        return finish(
            False,
            f"Import failed: {e}",
            error={"message": str(e), "status": getattr(e, "status", None)},
        )
