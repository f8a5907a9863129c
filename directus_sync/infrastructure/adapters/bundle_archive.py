"""Bundle containers: a plain directory or a .zip archive with the same layout."""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING

from ...application.ports.bundle_store import BundleStorePort
from ...domain.errors import BundleFormatError
from ...domain.models.bundle_manifest import FILES_DIR, MANIFEST_NAME, BundleManifest

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


def _parse_manifest(raw: bytes | str, location: str) -> BundleManifest:
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise BundleFormatError(location, f"manifest is not valid JSON: {e}") from e
    if not isinstance(data, dict) or not data.get("collection"):
        raise BundleFormatError(location, "manifest has no collection")
    if not isinstance(data.get("items", []), list):
        raise BundleFormatError(location, "manifest items must be a list")
    return BundleManifest.from_dict(data)


def _dump_manifest(manifest: BundleManifest) -> str:
    return json.dumps(manifest.to_dict(), indent=2, ensure_ascii=False, default=str)


class DirectoryBundleStore(BundleStorePort):
    """Bundle stored as ``<dir>/manifest.json`` plus ``<dir>/files/``."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self.location = str(self.root)

    @property
    def files_dir(self) -> Path:
        return self.root / FILES_DIR

    def write_manifest(self, manifest: BundleManifest) -> None:
        """Write the manifest atomically (temp file, then rename)."""
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.root / MANIFEST_NAME
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=self.root,
            prefix=f".{MANIFEST_NAME}.tmp.",
            delete=False,
            encoding="utf-8",
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(_dump_manifest(manifest))
            temp_file.flush()
            os.fsync(temp_file.fileno())
        shutil.move(str(temp_path), str(path))
        logger.debug(
            f"Manifest written: {path}",
            extra={"bundle": self.location, "items": len(manifest.items)},
        )

    def read_manifest(self) -> BundleManifest:
        path = self.root / MANIFEST_NAME
        if not path.is_file():
            raise BundleFormatError(self.location, f"{MANIFEST_NAME} not found")
        return _parse_manifest(path.read_text(encoding="utf-8"), self.location)

    def add_file(self, name: str, content: bytes) -> None:
        self.files_dir.mkdir(parents=True, exist_ok=True)
        (self.files_dir / name).write_bytes(content)

    def has_file(self, name: str) -> bool:
        return (self.files_dir / name).is_file()

    def list_files(self) -> list[str]:
        if not self.files_dir.is_dir():
            return []
        return sorted(p.name for p in self.files_dir.iterdir() if p.is_file())

    def read_file(self, name: str) -> bytes:
        return (self.files_dir / name).read_bytes()


class ZipBundleStore(BundleStorePort):
    """Bundle stored as a .zip archive with ``manifest.json`` and ``files/`` entries."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.location = str(self.path)

    def _names(self) -> list[str]:
        if not self.path.is_file():
            return []
        try:
            with zipfile.ZipFile(self.path) as archive:
                return archive.namelist()
        except zipfile.BadZipFile as e:
            raise BundleFormatError(self.location, f"not a zip archive: {e}") from e

    def _drop_entry(self, entry: str) -> None:
        """Rewrite the archive without one entry (zip members cannot be replaced in place)."""
        with tempfile.NamedTemporaryFile(dir=self.path.parent, suffix=".zip", delete=False) as temp_file:
            temp_path = Path(temp_file.name)
        with zipfile.ZipFile(self.path) as src, zipfile.ZipFile(temp_path, "w", zipfile.ZIP_DEFLATED) as dst:
            for info in src.infolist():
                if info.filename != entry:
                    dst.writestr(info, src.read(info.filename))
        shutil.move(str(temp_path), str(self.path))

    def write_manifest(self, manifest: BundleManifest) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if MANIFEST_NAME in self._names():
            self._drop_entry(MANIFEST_NAME)
        with zipfile.ZipFile(self.path, "a", zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(MANIFEST_NAME, _dump_manifest(manifest))
        logger.debug(
            f"Manifest written: {self.path}",
            extra={"bundle": self.location, "items": len(manifest.items)},
        )

    def read_manifest(self) -> BundleManifest:
        if not self.path.is_file():
            raise BundleFormatError(self.location, "archive not found")
        if MANIFEST_NAME not in self._names():
            raise BundleFormatError(self.location, f"{MANIFEST_NAME} not found")
        with zipfile.ZipFile(self.path) as archive:
            return _parse_manifest(archive.read(MANIFEST_NAME), self.location)

    def add_file(self, name: str, content: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(self.path, "a", zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(f"{FILES_DIR}/{name}", content)

    def has_file(self, name: str) -> bool:
        return f"{FILES_DIR}/{name}" in self._names()

    def list_files(self) -> list[str]:
        prefix = f"{FILES_DIR}/"
        return sorted(
            n[len(prefix):] for n in self._names() if n.startswith(prefix) and len(n) > len(prefix) and not n.endswith("/")
        )

    def read_file(self, name: str) -> bytes:
        with zipfile.ZipFile(self.path) as archive:
            return archive.read(f"{FILES_DIR}/{name}")


def open_bundle(path: Path | str) -> BundleStorePort:
    """
    Open a bundle by path: ``.zip`` files are archives, anything else a directory.

    Args:
        path: Bundle location

    Returns:
        BundleStorePort implementation for the path
    """
    path = Path(path)
    if path.suffix.lower() == ".zip":
        return ZipBundleStore(path)
    return DirectoryBundleStore(path)
