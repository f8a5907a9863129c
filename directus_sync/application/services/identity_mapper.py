"""Application service for the durable (collection, source id) -> target id table."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...domain.errors import DirectusAPIError
from ...domain.models.identity_mapping import IdentityMapping

if TYPE_CHECKING:
    from typing import Any

    from ...domain.models.import_log import ImportLog
    from ..ports.directus_api import DirectusApiPort

logger = logging.getLogger(__name__)

DEFAULT_MAPPING_COLLECTION = "sync_id_map"


class IdentityMapper:
    """
    Looks up and records which target item a source item became.

    Backed by a plain items collection on the target. When that collection is
    missing (or unreadable) the mapper degrades to "nothing is mapped", which
    turns the run into always-create mode. Write failures are logged, never
    raised: losing idempotency for one item must not abort the run.
    """

    def __init__(
        self,
        target: DirectusApiPort,
        mapping_collection: str = DEFAULT_MAPPING_COLLECTION,
        log: ImportLog | None = None,
    ) -> None:
        """
        Initialize mapper.

        Args:
            target: Target instance holding the mapping collection
            mapping_collection: Name of the mapping collection
            log: Run step log for degraded/error events
        """
        self.target = target
        self.mapping_collection = mapping_collection
        self.log = log
        self._available: bool | None = None

    @property
    def available(self) -> bool:
        """False once the mapping store has been found missing in this run."""
        return self._available is not False

    def _mark_unavailable(self, error: DirectusAPIError) -> None:
        if self._available is False:
            return
        self._available = False
        logger.warning(
            f"Identity mapping store '{self.mapping_collection}' unavailable, every item will be created: {error}",
            extra={"mapping_collection": self.mapping_collection, "status": error.status},
        )
        if self.log is not None:
            self.log.step(
                "identity_map_unavailable",
                mapping_collection=self.mapping_collection,
                error=error.message,
                status=error.status,
            )

    async def _find(self, collection: str, source_id: str) -> IdentityMapping | None:
        rows = await self.target.list_items(
            self.mapping_collection,
            limit=1,
            filter={
                "_and": [
                    {"table": {"_eq": collection}},
                    {"sync_id": {"_eq": source_id}},
                ]
            },
        )
        self._available = True
        if not rows:
            return None
        return IdentityMapping.from_row(rows[0])

    async def lookup(self, collection: str, source_id: Any) -> str | None:
        """
        Target id recorded for a source item.

        Args:
            collection: Collection name
            source_id: Source-scoped item id

        Returns:
            Target id, or None if unmapped or the store is unavailable
        """
        if not self.available or source_id is None:
            return None
        try:
            mapping = await self._find(collection, str(source_id))
        except DirectusAPIError as e:
            if e.is_not_found:
                self._mark_unavailable(e)
            else:
                logger.warning(
                    f"Identity lookup failed for {collection}/{source_id}: {e}",
                    extra={"collection": collection, "source_id": str(source_id), "status": e.status},
                )
            return None
        return mapping.target_id if mapping else None

    async def upsert(self, collection: str, source_id: Any, target_id: Any) -> None:
        """
        Record that a source item now lives at target_id.

        Updates the existing row if it points elsewhere, inserts one if absent,
        and leaves an identical row untouched. Never raises.
        """
        if not self.available or source_id is None or target_id is None:
            return
        wanted = IdentityMapping(collection=collection, source_id=str(source_id), target_id=str(target_id))
        try:
            existing = await self._find(collection, wanted.source_id)
            if existing is None:
                await self.target.create_item(self.mapping_collection, wanted.to_row())
            elif existing.target_id != wanted.target_id:
                await self.target.update_item(
                    self.mapping_collection,
                    existing.row_id,
                    {"local_id": wanted.target_id},
                )
        except DirectusAPIError as e:
            if e.is_not_found:
                self._mark_unavailable(e)
                return
            logger.warning(
                f"Failed to record identity mapping {collection}/{source_id} -> {target_id}: {e}",
                extra={"collection": collection, "source_id": str(source_id), "status": e.status},
            )
            if self.log is not None:
                self.log.step(
                    "identity_map_error",
                    collection=collection,
                    source_id=str(source_id),
                    target_id=str(target_id),
                    error=e.message,
                    status=e.status,
                )
