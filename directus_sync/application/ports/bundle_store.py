"""Port interface for reading and writing transfer bundles."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.models.bundle_manifest import BundleManifest


class BundleStorePort(ABC):
    """Port for a bundle container: one manifest plus a files/ directory."""

    location: str

    @abstractmethod
    def write_manifest(self, manifest: BundleManifest) -> None:
        """
        Write the manifest (replaces an existing one).

        Args:
            manifest: BundleManifest domain entity
        """
        pass

    @abstractmethod
    def read_manifest(self) -> BundleManifest:
        """
        Read the manifest.

        Raises:
            BundleFormatError: If the manifest is missing or malformed
        """
        pass

    @abstractmethod
    def add_file(self, name: str, content: bytes) -> None:
        """
        Store a binary under files/.

        Args:
            name: Entry name (``{sourceFileId}_{originalName}``)
            content: File bytes
        """
        pass

    @abstractmethod
    def has_file(self, name: str) -> bool:
        """Check whether files/ already holds an entry."""
        pass

    @abstractmethod
    def list_files(self) -> list[str]:
        """Entry names under files/, sorted."""
        pass

    @abstractmethod
    def read_file(self, name: str) -> bytes:
        """Read one entry under files/."""
        pass
