"""Application service for token and permission preflight checks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...domain.errors import DirectusAPIError
from ..dto.sync import AccessCheckResult, ValidationResult

if TYPE_CHECKING:
    from ..ports.directus_api import DirectusApiPort

logger = logging.getLogger(__name__)


def _error_payload(error: DirectusAPIError) -> dict:
    payload: dict = {"message": error.message}
    if error.status is not None:
        payload["status"] = error.status
    if error.details is not None:
        payload["details"] = error.details
    return payload


async def validate_api_access(api: DirectusApiPort) -> ValidationResult:
    """
    Check that an instance answers and accepts the client's token.

    Runs three steps in order and stops at the first failure:
    ping (server reachable), list collections (token accepted), server info.

    Args:
        api: Instance handle carrying base URL and token

    Returns:
        ValidationResult (never raises for API errors)
    """
    if not api.token:
        return ValidationResult(
            success=False,
            message=f"No token configured for {api.base_url}",
            error={"message": "missing token"},
        )

    try:
        await api.ping()
    except DirectusAPIError as e:
        logger.warning(f"Server unreachable at {api.base_url}: {e}", extra={"base_url": api.base_url})
        return ValidationResult(
            success=False,
            message=f"Server at {api.base_url} is not reachable: {e.message}",
            error=_error_payload(e),
        )

    try:
        collections = await api.list_collections()
    except DirectusAPIError as e:
        logger.warning(f"Token rejected by {api.base_url}: {e}", extra={"base_url": api.base_url, "status": e.status})
        return ValidationResult(
            success=False,
            message=f"Token was rejected by {api.base_url}: {e.message}",
            error=_error_payload(e),
        )

    try:
        info = await api.server_info()
    except DirectusAPIError as e:
        return ValidationResult(
            success=False,
            message=f"Token accepted but server info is not readable: {e.message}",
            error=_error_payload(e),
        )

    logger.info(
        f"Token validated against {api.base_url}",
        extra={"base_url": api.base_url, "collections": len(collections)},
    )
    return ValidationResult(
        success=True,
        message=f"Token is valid ({len(collections)} collections visible)",
        server_info=info,
    )


async def check_collection_access(api: DirectusApiPort, collection: str) -> AccessCheckResult:
    """
    Check that the token can read a collection.

    Args:
        api: Instance handle
        collection: Collection name

    Returns:
        AccessCheckResult (never raises for API errors)
    """
    try:
        await api.list_items(collection, limit=1, fields=["id"])
    except DirectusAPIError as e:
        if e.is_not_found:
            message = f"Collection '{collection}' does not exist or is not readable with this token"
        else:
            message = f"Cannot read collection '{collection}': {e.message}"
        return AccessCheckResult(success=False, message=message)
    return AccessCheckResult(success=True, message=f"Collection '{collection}' is readable")
