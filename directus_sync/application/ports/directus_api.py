"""Port interface for the Directus data API of one instance."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class DirectusApiPort(ABC):
    """
    Port for one Directus instance (source or target).

    Implementations carry their own base URL, credentials and timeout/retry
    policy; components receive the handle explicitly.
    """

    base_url: str
    token: str | None

    @abstractmethod
    async def ping(self) -> bool:
        """
        Check that the server answers.

        Returns:
            True if GET /server/ping succeeded
        """
        pass

    @abstractmethod
    async def server_info(self) -> dict[str, Any]:
        """
        Get server information.

        Returns:
            Dict from GET /server/info (project, version when exposed)
        """
        pass

    @abstractmethod
    async def list_collections(self) -> list[dict[str, Any]]:
        """
        List collections visible to the token.

        Returns:
            Entries of GET /collections
        """
        pass

    @abstractmethod
    async def list_items(
        self,
        collection: str,
        *,
        limit: int | None = None,
        filter: dict[str, Any] | None = None,
        fields: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """
        List items of a collection.

        Args:
            collection: Collection name
            limit: Maximum number of items (None = all, sent as -1)
            filter: Directus filter object (supports nested relation filters)
            fields: Field selection, e.g. ["*", "translations.*"]

        Returns:
            Raw item dicts
        """
        pass

    @abstractmethod
    async def get_item(
        self,
        collection: str,
        item_id: Any,
        *,
        fields: list[str] | None = None,
    ) -> dict[str, Any]:
        """
        Read a single item.

        Raises:
            DirectusAPIError: If the item does not exist or cannot be read
        """
        pass

    @abstractmethod
    async def create_item(self, collection: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Create an item (nested relation rows in the payload are created with it).

        Returns:
            Created item, including its new id
        """
        pass

    @abstractmethod
    async def update_item(self, collection: str, item_id: Any, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Partially update an item.

        Returns:
            Updated item
        """
        pass

    @abstractmethod
    async def get_file(self, file_id: str) -> dict[str, Any]:
        """
        Read file metadata (GET /files/{id}).

        Raises:
            DirectusAPIError: If the file does not exist
        """
        pass

    @abstractmethod
    async def probe_file(self, file_id: str) -> bool:
        """
        Check whether a file id resolves on this instance.

        Returns:
            True if GET /files/{id} answered 200, False otherwise
        """
        pass

    @abstractmethod
    async def update_file(self, file_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Patch file metadata (title, folder)."""
        pass

    @abstractmethod
    async def download_asset(self, file_id: str) -> bytes:
        """Fetch the binary of a file (GET /assets/{id})."""
        pass

    @abstractmethod
    async def upload_file(
        self,
        content: bytes,
        *,
        filename: str,
        content_type: str,
        title: str | None = None,
        folder: str | None = None,
    ) -> dict[str, Any]:
        """
        Upload a binary as a multipart form (title, folder, filename_download, file).

        Returns:
            Created file metadata, including its new id
        """
        pass

    @abstractmethod
    async def list_folders(self, *, name: str | None = None) -> list[dict[str, Any]]:
        """List folders, optionally only those with an exact name."""
        pass

    @abstractmethod
    async def create_folder(self, name: str, parent: str | None = None) -> dict[str, Any]:
        """Create a folder."""
        pass

    @abstractmethod
    async def get_fields(self, collection: str) -> list[dict[str, Any]]:
        """Field metadata of a collection (GET /fields/{collection})."""
        pass

    @abstractmethod
    async def get_relations(self, collection: str) -> list[dict[str, Any]]:
        """Relation metadata of a collection (GET /relations/{collection})."""
        pass

    @abstractmethod
    async def list_languages(self) -> list[dict[str, Any]]:
        """Rows of the languages collection (each with a ``code``)."""
        pass

    @abstractmethod
    async def aclose(self) -> None:
        """Release network resources."""
        pass
