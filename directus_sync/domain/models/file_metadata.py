"""Domain models for file metadata and target folders."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


@dataclass(frozen=True)
class FileMetadata:
    """
    Subset of a directus_files row used for reuse decisions and uploads.

    Attributes:
        id: File id on its own instance
        title: Display title
        filename_download: Original download filename
        type: MIME type as stored
        filesize: Size in bytes
        checksum: Content checksum (if the instance records one)
        folder: Folder id (if filed)
    """

    id: str
    title: str | None = None
    filename_download: str | None = None
    type: str | None = None
    filesize: int | None = None
    checksum: str | None = None
    folder: str | None = None

    def matches(self, other: FileMetadata) -> bool:
        """
        True if both rows describe the same binary.

        Checksum decides whenever both sides carry one, even if sizes disagree.
        Otherwise sizes must be equal, and types too when both are known.
        """
        if self.checksum and other.checksum:
            return self.checksum == other.checksum
        if self.filesize is None or other.filesize is None:
            return False
        if self.filesize != other.filesize:
            return False
        if self.type and other.type:
            return self.type == other.type
        return True

    @classmethod
    def from_directus(cls, data: dict[str, Any]) -> FileMetadata:
        """Build from a /files/{id} payload."""
        filesize = data.get("filesize")
        folder = data.get("folder")
        if isinstance(folder, dict):
            folder = folder.get("id")
        return cls(
            id=str(data["id"]),
            title=data.get("title"),
            filename_download=data.get("filename_download"),
            type=data.get("type"),
            filesize=int(filesize) if filesize not in (None, "") else None,
            checksum=data.get("checksum") or (data.get("metadata") or {}).get("checksum"),
            folder=str(folder) if folder else None,
        )


@dataclass(frozen=True)
class TargetFolder:
    """Folder on the target that receives all files of one collection."""

    name: str
    id: str

    @classmethod
    def from_directus(cls, data: dict[str, Any]) -> TargetFolder:
        return cls(name=data["name"], id=str(data["id"]))
