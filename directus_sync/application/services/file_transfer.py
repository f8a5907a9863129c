"""Application service for copying file references from source to target."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ...domain.errors import FileTransferError
from ...domain.models.field_value import FileRef, RelationList
from ...domain.models.file_metadata import FileMetadata
from ...domain.services.mime_types import guess_content_type

if TYPE_CHECKING:
    from typing import Any

    from ...domain.models.field_value import FieldValue
    from ...domain.models.import_log import ImportLog
    from ...domain.models.import_result import SyncStats
    from ..ports.directus_api import DirectusApiPort

logger = logging.getLogger(__name__)


@dataclass
class ItemFileContext:
    """
    Per-item state for file resolution.

    Attributes:
        item_id: Source item id (for log entries)
        title: Derived item title, preferred as uploaded file title
        snapshot: Current target item, if one is mapped
        cache: source file id -> target file id, for this item only
        patched: Target file ids whose title/folder were already patched
    """

    item_id: Any
    title: str | None = None
    snapshot: dict[str, Any] | None = None
    cache: dict[str, str] = field(default_factory=dict)
    patched: set[str] = field(default_factory=set)


class FileTransferEngine:
    """
    Resolves source file ids to target file ids, uploading at most once per file.

    Resolution order: item cache, run cache, reuse of the file already on the
    target item's same field, then download from source and upload to target.
    Failures never propagate; the field keeps its original value.
    """

    def __init__(
        self,
        source: DirectusApiPort,
        target: DirectusApiPort,
        folder_id: str | None = None,
        log: ImportLog | None = None,
        stats: SyncStats | None = None,
        dry_run: bool = False,
        run_cache: dict[str, str] | None = None,
    ) -> None:
        """
        Initialize engine.

        Args:
            source: Source instance (metadata and binaries)
            target: Target instance (uploads and patches)
            folder_id: Target folder for uploaded files
            log: Run step log
            stats: Run counters (files uploaded/reused/failed)
            dry_run: Report decisions without uploading or patching
            run_cache: Shared source->target file id map for the run
        """
        self.source = source
        self.target = target
        self.folder_id = folder_id
        self.log = log
        self.stats = stats
        self.dry_run = dry_run
        self.run_cache: dict[str, str] = run_cache if run_cache is not None else {}

    def _step(self, step: str, **details: Any) -> None:
        if self.log is not None:
            self.log.step(step, **details)

    async def resolve_fields(
        self,
        values: dict[str, FieldValue],
        ctx: ItemFileContext,
    ) -> dict[str, FieldValue]:
        """
        Rewrite every file candidate in a classified item.

        Args:
            values: Classified field values
            ctx: Per-item context

        Returns:
            New mapping with FileRef values pointing at target files, or
            restored to their untouched form when they are not files
        """
        resolved: dict[str, FieldValue] = {}
        for name, value in values.items():
            if isinstance(value, RelationList):
                candidates = value.file_candidates()
                if candidates:
                    self._step(
                        "file_field_skipped_multi",
                        field=name,
                        item_id=ctx.item_id,
                        count=len(candidates),
                    )
                resolved[name] = value
            elif isinstance(value, FileRef) and not value.resolved:
                resolved[name] = await self._resolve_field(name, value, ctx)
            else:
                resolved[name] = value
        return resolved

    async def _resolve_field(self, name: str, ref: FileRef, ctx: ItemFileContext) -> FieldValue:
        source_file_id = ref.file_id
        try:
            cached = ctx.cache.get(source_file_id)
            if cached is not None:
                return FileRef(file_id=cached, raw=ref.raw, resolved=True)

            cached = self.run_cache.get(source_file_id)
            if cached is not None:
                ctx.cache[source_file_id] = cached
                return FileRef(file_id=cached, raw=ref.raw, resolved=True)

            if not await self.source.probe_file(source_file_id):
                return ref.as_untouched()

            source_meta = FileMetadata.from_directus(await self.source.get_file(source_file_id))

            reused = await self._reuse_existing(name, source_meta, ctx)
            if reused is not None:
                ctx.cache[source_file_id] = reused
                self.run_cache[source_file_id] = reused
                return FileRef(file_id=reused, raw=ref.raw, resolved=True)

            target_file_id = await self._copy(source_meta, ctx)
            if target_file_id is None:
                return ref.as_untouched()
            ctx.cache[source_file_id] = target_file_id
            self.run_cache[source_file_id] = target_file_id
            return FileRef(file_id=target_file_id, raw=ref.raw, resolved=True)
        except Exception as e:
            logger.warning(
                f"File copy failed for field '{name}' of item {ctx.item_id}: {e}",
                extra={"field": name, "item_id": ctx.item_id, "source_file_id": source_file_id},
            )
            if self.stats is not None:
                self.stats.files_failed += 1
            self._step(
                "file_copy_error",
                field=name,
                item_id=ctx.item_id,
                source_file_id=source_file_id,
                error=str(e),
                status=getattr(e, "status", None),
                details=getattr(e, "details", None),
            )
            return ref.as_untouched()

    async def _reuse_existing(self, name: str, source_meta: FileMetadata, ctx: ItemFileContext) -> str | None:
        """Target file id to reuse from the snapshot's same field, if it holds the same binary."""
        if not ctx.snapshot:
            return None
        existing = ctx.snapshot.get(name)
        if isinstance(existing, dict):
            existing = existing.get("id")
        if not existing:
            return None
        if not await self.target.probe_file(str(existing)):
            return None

        target_meta = FileMetadata.from_directus(await self.target.get_file(str(existing)))
        if not source_meta.matches(target_meta):
            return None

        if self.stats is not None:
            self.stats.files_reused += 1
        self._step("file_reused", field=name, item_id=ctx.item_id, target_file_id=target_meta.id)
        await self._patch_metadata(target_meta, source_meta, ctx)
        return target_meta.id

    async def _patch_metadata(self, target_meta: FileMetadata, source_meta: FileMetadata, ctx: ItemFileContext) -> None:
        if target_meta.id in ctx.patched:
            return
        ctx.patched.add(target_meta.id)

        changes: dict[str, Any] = {}
        wanted_title = ctx.title or source_meta.title
        if wanted_title and target_meta.title != wanted_title:
            changes["title"] = wanted_title
        if self.folder_id and target_meta.folder != self.folder_id:
            changes["folder"] = self.folder_id
        if not changes or self.dry_run:
            return
        await self.target.update_file(target_meta.id, changes)
        self._step("file_metadata_patched", target_file_id=target_meta.id, fields=sorted(changes))

    async def _copy(self, source_meta: FileMetadata, ctx: ItemFileContext) -> str | None:
        """Download from source and upload to target. Returns None in dry-run."""
        if self.dry_run:
            self._step("file_upload_planned", item_id=ctx.item_id, source_file_id=source_meta.id)
            return None

        content = await self.source.download_asset(source_meta.id)
        filename = source_meta.filename_download or source_meta.id
        uploaded = await self.target.upload_file(
            content,
            filename=filename,
            content_type=guess_content_type(filename, source_meta.type),
            title=ctx.title or source_meta.title,
            folder=self.folder_id,
        )
        if not uploaded.get("id"):
            raise FileTransferError(source_meta.id, "target returned no file id after upload")
        target_file_id = str(uploaded["id"])
        if self.stats is not None:
            self.stats.files_uploaded += 1
        self._step(
            "file_uploaded",
            item_id=ctx.item_id,
            source_file_id=source_meta.id,
            target_file_id=target_file_id,
            filename=filename,
            size=len(content),
        )
        return target_file_id
