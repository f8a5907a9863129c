"""Domain errors for cross-instance item synchronization."""

from __future__ import annotations

from typing import Any


class DirectusAPIError(Exception):
    """
    Raised when a Directus data API call fails.

    Attributes:
        message: Error message
        status: Upstream HTTP status code (None for transport failures)
        details: Backend-provided error payload (parsed JSON body when available)
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        details: Any = None,
    ) -> None:
        self.message = message
        self.status = status
        self.details = details
        super().__init__(f"{message} (HTTP {status})" if status is not None else message)

    @property
    def is_transient(self) -> bool:
        """True for failures worth retrying on idempotent reads (5xx, no status)."""
        return self.status is None or self.status >= 500

    @property
    def is_not_found(self) -> bool:
        """True when the backend reported the resource as missing or forbidden."""
        return self.status in (403, 404)


class DirectusConnectionError(DirectusAPIError):
    """
    Raised when a Directus instance cannot be reached at all.

    Attributes:
        base_url: Base URL that was contacted
    """

    def __init__(self, base_url: str, reason: str | None = None) -> None:
        self.base_url = base_url
        self.reason = reason
        msg = f"Cannot connect to Directus at {base_url}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class DirectusRateLimitError(DirectusAPIError):
    """
    Raised when Directus answers 429 Too Many Requests.

    Attributes:
        retry_after: Seconds suggested by the server before retrying (if provided)
    """

    def __init__(self, message: str, retry_after: float | None = None, details: Any = None) -> None:
        self.retry_after = retry_after
        super().__init__(message, status=429, details=details)

    @property
    def is_transient(self) -> bool:
        return True


class ItemWriteError(Exception):
    """
    Raised when the target rejects both the update and the create of one item.

    Attributes:
        collection: Target collection
        source_id: Source-scoped item identifier
        cause: Underlying API error of the last attempt
    """

    def __init__(self, collection: str, source_id: Any, cause: DirectusAPIError) -> None:
        self.collection = collection
        self.source_id = source_id
        self.cause = cause
        super().__init__(f"Failed to write item {source_id} to '{collection}': {cause.message}")


class FileTransferError(Exception):
    """
    Raised when a single file cannot be copied from source to target.

    Attributes:
        source_file_id: Source-scoped file identifier
        reason: Why the transfer failed
    """

    def __init__(self, source_file_id: str, reason: str) -> None:
        self.source_file_id = source_file_id
        self.reason = reason
        super().__init__(f"File transfer failed for {source_file_id}: {reason}")


class BundleFormatError(Exception):
    """
    Raised when a bundle is missing its manifest or the manifest is malformed.

    Attributes:
        bundle_path: Bundle location
        reason: What is wrong with it
    """

    def __init__(self, bundle_path: str, reason: str) -> None:
        self.bundle_path = bundle_path
        self.reason = reason
        super().__init__(f"Invalid bundle {bundle_path}: {reason}")


class ImportCancelled(Exception):
    """Raised by CancellationToken.raise_if_cancelled between items."""

    pass
