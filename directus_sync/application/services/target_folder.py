"""Application service for the per-collection target file folder."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...domain.errors import DirectusAPIError
from ...domain.models.file_metadata import TargetFolder

if TYPE_CHECKING:
    from ...domain.models.import_log import ImportLog
    from ..ports.directus_api import DirectusApiPort

logger = logging.getLogger(__name__)


async def ensure_target_folder(
    target: DirectusApiPort,
    name: str,
    log: ImportLog | None = None,
) -> TargetFolder | None:
    """
    Find the folder named after a collection, creating it if absent.

    Lookup-or-create is idempotent: a second run finds the first run's folder.
    Provisioning failures are logged and yield None (files land unfiled).

    Args:
        target: Target instance
        name: Folder name (the collection name)
        log: Run step log

    Returns:
        TargetFolder, or None if it could not be provisioned
    """
    try:
        existing = await target.list_folders(name=name)
        for row in existing:
            if row.get("name") == name:
                folder = TargetFolder.from_directus(row)
                if log is not None:
                    log.step("folder_found", folder_name=name, folder_id=folder.id)
                return folder

        created = TargetFolder.from_directus(await target.create_folder(name))
        if log is not None:
            log.step("folder_created", folder_name=name, folder_id=created.id)
        return created
    except DirectusAPIError as e:
        logger.warning(
            f"Failed to provision target folder '{name}': {e}",
            extra={"folder_name": name, "status": e.status},
        )
        if log is not None:
            log.step("folder_error", folder_name=name, error=e.message, status=e.status, details=e.details)
        return None
