"""Directus REST API adapter on httpx with retry on idempotent reads."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from ...application.ports.directus_api import DirectusApiPort
from ...domain.errors import DirectusAPIError, DirectusConnectionError, DirectusRateLimitError
from ...domain.policy.retry_policy import RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

LANGUAGES_COLLECTION = "languages"


def _error_message(response: httpx.Response) -> tuple[str, Any]:
    """Extract the first backend error message and the parsed body."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return (text[:200] or response.reason_phrase or "Request failed"), text or None
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            return str(errors[0].get("message") or response.reason_phrase), body
    return (response.reason_phrase or "Request failed"), body


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class DirectusClient(DirectusApiPort):
    """
    Adapter for one Directus instance over its REST API.

    GET requests are retried with exponential backoff and jitter on 5xx,
    429, timeouts and transport errors. POST/PATCH writes are sent once:
    a retried create could duplicate an item.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None,
        timeout: float = 30.0,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize client.

        Args:
            base_url: Instance base URL, e.g. https://cms.example.com
            token: Static or admin token sent as a Bearer credential
            timeout: Per-request timeout in seconds
            retry_policy: Backoff policy for reads (default: 3 attempts)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.retry_policy = retry_policy or RetryPolicy()
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> DirectusClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json_body,
                data=data,
                files=files,
            )
        except httpx.TimeoutException as e:
            raise DirectusAPIError(
                f"{method} {path} timed out",
                details={"base_url": self.base_url, "path": path},
            ) from e
        except httpx.TransportError as e:
            raise DirectusConnectionError(self.base_url, str(e)) from e

        if response.status_code == 429:
            message, body = _error_message(response)
            raise DirectusRateLimitError(message, retry_after=_retry_after(response), details=body)
        if response.status_code >= 400:
            message, body = _error_message(response)
            raise DirectusAPIError(message, status=response.status_code, details=body)
        return response

    async def _retry_with_backoff(self, func: Callable[[], Awaitable[Any]], description: str) -> Any:
        """
        Retry an idempotent call with exponential backoff and jitter.

        Only transient failures are retried; 4xx answers propagate at once.

        Raises:
            DirectusAPIError: If the call fails permanently or all retries fail
        """
        policy = self.retry_policy
        attempt = 0

        while True:
            try:
                return await func()
            except DirectusAPIError as e:
                if not e.is_transient:
                    raise
                attempt += 1
                if attempt >= policy.max_retries:
                    logger.error(
                        f"{description}: all {policy.max_retries} attempts failed: {e}",
                        extra={"max_retries": policy.max_retries, "base_url": self.base_url},
                    )
                    if policy.max_retries == 1:
                        raise
                    raise DirectusAPIError(
                        f"{description} failed after {policy.max_retries} attempts: {e.message}",
                        status=e.status,
                        details=e.details,
                    ) from e

                delay = policy.delay_for(attempt - 1)
                if isinstance(e, DirectusRateLimitError) and e.retry_after:
                    delay = max(delay, min(e.retry_after, policy.max_delay))
                logger.warning(
                    f"{description}: attempt {attempt}/{policy.max_retries} failed, retrying in {delay:.2f}s: {e}",
                    extra={"attempt": attempt, "max_retries": policy.max_retries, "error": str(e)},
                )
                await asyncio.sleep(delay)

    @staticmethod
    def _data(response: httpx.Response) -> Any:
        """Unwrap the ``data`` envelope of a JSON response."""
        if response.status_code == 204 or not response.content:
            return None
        body = response.json()
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        async def call() -> Any:
            return self._data(await self._request("GET", path, params=params))

        return await self._retry_with_backoff(call, f"GET {path}")

    @staticmethod
    def _query(
        limit: int | None = None,
        filter: dict[str, Any] | None = None,
        fields: list[str] | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"limit": limit if limit is not None else -1}
        if filter:
            params["filter"] = json.dumps(filter)
        if fields:
            params["fields"] = ",".join(fields)
        return params

    async def ping(self) -> bool:
        async def call() -> bool:
            await self._request("GET", "/server/ping")
            return True

        return await self._retry_with_backoff(call, "GET /server/ping")

    async def server_info(self) -> dict[str, Any]:
        return await self._get("/server/info") or {}

    async def list_collections(self) -> list[dict[str, Any]]:
        return await self._get("/collections") or []

    async def list_items(
        self,
        collection: str,
        *,
        limit: int | None = None,
        filter: dict[str, Any] | None = None,
        fields: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        return await self._get(f"/items/{collection}", self._query(limit, filter, fields)) or []

    async def get_item(
        self,
        collection: str,
        item_id: Any,
        *,
        fields: list[str] | None = None,
    ) -> dict[str, Any]:
        params = {"fields": ",".join(fields)} if fields else None
        item = await self._get(f"/items/{collection}/{item_id}", params)
        if item is None:
            raise DirectusAPIError(f"Item {item_id} not found in '{collection}'", status=404)
        return item

    async def create_item(self, collection: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("POST", f"/items/{collection}", json_body=payload)
        return self._data(response) or {}

    async def update_item(self, collection: str, item_id: Any, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("PATCH", f"/items/{collection}/{item_id}", json_body=payload)
        return self._data(response) or {}

    async def get_file(self, file_id: str) -> dict[str, Any]:
        meta = await self._get(f"/files/{file_id}")
        if meta is None:
            raise DirectusAPIError(f"File {file_id} not found", status=404)
        return meta

    async def probe_file(self, file_id: str) -> bool:
        try:
            await self.get_file(file_id)
        except DirectusAPIError as e:
            if e.status is not None and 400 <= e.status < 500:
                return False
            raise
        return True

    async def update_file(self, file_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("PATCH", f"/files/{file_id}", json_body=payload)
        return self._data(response) or {}

    async def download_asset(self, file_id: str) -> bytes:
        async def call() -> bytes:
            response = await self._request("GET", f"/assets/{file_id}")
            return response.content

        return await self._retry_with_backoff(call, f"GET /assets/{file_id}")

    async def upload_file(
        self,
        content: bytes,
        *,
        filename: str,
        content_type: str,
        title: str | None = None,
        folder: str | None = None,
    ) -> dict[str, Any]:
        # Directus reads form fields in order; metadata must precede the file part
        form: dict[str, Any] = {"filename_download": filename}
        if title:
            form["title"] = title
        if folder:
            form["folder"] = folder
        response = await self._request(
            "POST",
            "/files",
            data=form,
            files={"file": (filename, content, content_type)},
        )
        return self._data(response) or {}

    async def list_folders(self, *, name: str | None = None) -> list[dict[str, Any]]:
        filter_ = {"name": {"_eq": name}} if name else None
        return await self._get("/folders", self._query(filter=filter_)) or []

    async def create_folder(self, name: str, parent: str | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": name}
        if parent:
            payload["parent"] = parent
        response = await self._request("POST", "/folders", json_body=payload)
        return self._data(response) or {}

    async def get_fields(self, collection: str) -> list[dict[str, Any]]:
        return await self._get(f"/fields/{collection}") or []

    async def get_relations(self, collection: str) -> list[dict[str, Any]]:
        return await self._get(f"/relations/{collection}") or []

    async def list_languages(self) -> list[dict[str, Any]]:
        return await self.list_items(LANGUAGES_COLLECTION, fields=["code"])
