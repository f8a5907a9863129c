"""Token preflight adapter that opens a short-lived client per check."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...application.ports.token_validator import TokenValidatorPort
from ...application.services.access_check import check_collection_access, validate_api_access
from ...domain.policy.retry_policy import NO_RETRY
from .directus_client import DirectusClient

if TYPE_CHECKING:
    import httpx

    from ...application.dto.sync import AccessCheckResult, ValidationResult
    from ...domain.policy.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)


class DirectusTokenValidator(TokenValidatorPort):
    """
    Validates credentials against any instance by URL and token.

    Checks fail fast (no retries by default) so a bad URL is reported quickly.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        retry_policy: RetryPolicy = NO_RETRY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.retry_policy = retry_policy
        self.transport = transport

    def _client(self, url: str, token: str) -> DirectusClient:
        return DirectusClient(
            url,
            token,
            timeout=self.timeout,
            retry_policy=self.retry_policy,
            transport=self.transport,
        )

    async def validate(self, url: str, token: str) -> ValidationResult:
        logger.debug(f"Validating token against {url}", extra={"base_url": url})
        async with self._client(url, token) as client:
            return await validate_api_access(client)

    async def check_collection_access(self, url: str, token: str, collection: str) -> AccessCheckResult:
        logger.debug(
            f"Checking read access to '{collection}' on {url}",
            extra={"base_url": url, "collection": collection},
        )
        async with self._client(url, token) as client:
            return await check_collection_access(client, collection)
