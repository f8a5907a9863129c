"""Use case for exporting a source collection into a transfer bundle."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from ...domain.errors import DirectusAPIError
from ...domain.models.bundle_manifest import BundleManifest, bundle_file_name
from ...domain.models.field_value import FileRef, RelationList, RelationRef, classify_item, looks_like_file_id
from ...domain.models.file_metadata import FileMetadata
from ...domain.models.import_log import ImportLog
from ...infrastructure.logging import set_correlation_id
from ..dto.sync import BundleExportResult
from ..services.field_sanitizer import source_read_fields

if TYPE_CHECKING:
    from typing import Any

    from ..ports.bundle_store import BundleStorePort
    from ..ports.directus_api import DirectusApiPort

logger = logging.getLogger(__name__)


def discover_file_ids(items: list[dict[str, Any]]) -> list[str]:
    """
    File-shaped values of the items, one level deep, deduplicated in first-seen order.

    Candidates still need a probe: any UUID looks like a file id.
    """
    seen: dict[str, None] = {}
    for item in items:
        for value in classify_item(item).values():
            if isinstance(value, FileRef):
                seen.setdefault(value.file_id)
            elif isinstance(value, RelationList):
                for candidate in value.file_candidates():
                    seen.setdefault(candidate)
            elif isinstance(value, RelationRef) and value.embedded:
                for nested in value.embedded.values():
                    if looks_like_file_id(nested):
                        seen.setdefault(nested)
    return list(seen)


def _collect_related(manifest: BundleManifest, expand: list[str]) -> None:
    for item in manifest.items:
        for relation in expand:
            value = item.get(relation)
            rows = value if isinstance(value, list) else [value]
            for row in rows:
                if isinstance(row, dict):
                    manifest.add_related(relation, row)


async def export_bundle(
    source: DirectusApiPort,
    collection: str,
    store: BundleStorePort,
    expand: list[str] | None = None,
    limit: int | None = None,
    correlation_id: str | None = None,
) -> BundleExportResult:
    """
    Write a collection's items and referenced binaries into a bundle.

    Each binary is probed on the source and copied once, named
    ``{sourceFileId}_{originalName}`` under files/.

    Args:
        source: Source instance
        collection: Collection to export
        store: Bundle container to write into
        expand: Relation fields to expand one level (``fields=*,<rel>.*``)
        limit: Optional item cap
        correlation_id: Correlation ID (generated if not provided)

    Returns:
        BundleExportResult with item and file counts
    """
    correlation_id = correlation_id or str(uuid.uuid4())
    set_correlation_id(correlation_id)
    expand = [rel for rel in (expand or []) if rel]
    log = ImportLog()
    files = 0
    skipped = 0

    log.step(
        "export_start",
        collection=collection,
        source=source.base_url,
        bundle=store.location,
        expand=expand,
        correlation_id=correlation_id,
    )
    try:
        fields = await source_read_fields(source, collection, expand=expand, log=log)
        items = await source.list_items(collection, limit=limit, fields=fields)
        if limit is not None:
            items = items[:limit]
        log.step("fetch_data_success", collection=collection, count=len(items))

        manifest = BundleManifest(collection=collection, items=items)
        _collect_related(manifest, expand)

        for file_id in discover_file_ids(items):
            try:
                if not await source.probe_file(file_id):
                    skipped += 1
                    continue
                meta = FileMetadata.from_directus(await source.get_file(file_id))
                name = bundle_file_name(file_id, meta.filename_download)
                if not store.has_file(name):
                    store.add_file(name, await source.download_asset(file_id))
                files += 1
                log.step("file_exported", source_file_id=file_id, name=name)
            except DirectusAPIError as e:
                skipped += 1
                log.step(
                    "file_export_error",
                    source_file_id=file_id,
                    error=e.message,
                    status=e.status,
                    details=e.details,
                )

        store.write_manifest(manifest)
        message = f"Exported {len(items)} items and {files} files from '{collection}' to {store.location}"
        log.step("export_complete", collection=collection, items=len(items), files=files, files_skipped=skipped)
        logger.info(message, extra={"correlation_id": correlation_id, "collection": collection})
        return BundleExportResult(
            success=True,
            message=message,
            collection=collection,
            bundle_location=store.location,
            items=len(items),
            files=files,
            files_skipped=skipped,
            import_log=log.entries,
        )
    except Exception as e:
        logger.error(
            f"Export of collection '{collection}' failed: {e}",
            exc_info=True,
            extra={"correlation_id": correlation_id, "collection": collection},
        )
        log.step("fatal_error", error=str(e), status=getattr(e, "status", None))
        return BundleExportResult(
            success=False,
            message=f"Export failed: {e}",
            collection=collection,
            bundle_location=store.location,
            files=files,
            files_skipped=skipped,
            import_log=log.entries,
        )
