"""Shared fixtures: an in-memory Directus instance implementing DirectusApiPort."""

from __future__ import annotations

import copy
import uuid
from typing import Any, Callable

import pytest

from directus_sync.application.ports.directus_api import DirectusApiPort
from directus_sync.domain.errors import DirectusAPIError, DirectusConnectionError


def _collapse_relations(row: dict[str, Any], fields: list[str] | None) -> dict[str, Any]:
    """Return related rows as bare ids unless ``<field>.*`` was requested, like Directus."""
    expanded = {f[:-2] for f in fields or [] if f.endswith(".*")}
    result = {}
    for key, value in row.items():
        if key not in expanded:
            if isinstance(value, dict) and "id" in value:
                value = value["id"]
            elif isinstance(value, list) and value and all(isinstance(v, dict) and "id" in v for v in value):
                value = [v["id"] for v in value]
        result[key] = value
    return result


def _matches(row: Any, flt: dict[str, Any]) -> bool:
    """Evaluate the subset of the Directus filter language used by the sync engine."""
    if not isinstance(row, dict):
        return False
    for key, cond in flt.items():
        if key == "_and":
            if not all(_matches(row, c) for c in cond):
                return False
        elif key == "_or":
            if not any(_matches(row, c) for c in cond):
                return False
        elif isinstance(cond, dict) and cond and all(k.startswith("_") for k in cond):
            value = row.get(key)
            for op, operand in cond.items():
                if op == "_eq" and not (value == operand or (value is not None and str(value) == str(operand))):
                    return False
                if op == "_contains" and not (isinstance(value, str) and str(operand) in value):
                    return False
        else:
            value = row.get(key)
            if isinstance(value, list):
                if not any(_matches(v, cond) for v in value):
                    return False
            elif not _matches(value, cond):
                return False
    return True


class FakeDirectus(DirectusApiPort):
    """
    In-memory Directus instance.

    Attributes:
        items: collection -> rows
        files: file id -> metadata row
        assets: file id -> bytes
        folders: folder rows
        fields: collection -> /fields payload
        relations: collection -> /relations payload
        languages: language codes (None makes the languages collection unreadable)
        forbidden: collections that answer 403
        fail_create: hook returning an error to raise for a create, or None
        calls: (method, path) log of every call
    """

    def __init__(
        self,
        base_url: str = "https://fake.example",
        token: str | None = "valid-token",
        items: dict[str, list[dict[str, Any]]] | None = None,
    ) -> None:
        self.base_url = base_url
        self.token = token
        self.valid_token = "valid-token"
        self.reachable = True
        self.items: dict[str, list[dict[str, Any]]] = items if items is not None else {}
        self.files: dict[str, dict[str, Any]] = {}
        self.assets: dict[str, bytes] = {}
        self.folders: list[dict[str, Any]] = []
        self.fields: dict[str, list[dict[str, Any]]] = {}
        self.relations: dict[str, list[dict[str, Any]]] = {}
        self.languages: list[str] | None = []
        self.forbidden: set[str] = set()
        self.fail_create: Callable[[str, dict[str, Any]], DirectusAPIError | None] | None = None
        self.fail_update: Callable[[str, Any, dict[str, Any]], DirectusAPIError | None] | None = None
        self.uploads: list[dict[str, Any]] = []
        self.calls: list[tuple[str, str]] = []
        self._next_id = 1000

    # helpers for tests

    def add_file(
        self,
        content: bytes,
        filename: str = "photo.jpg",
        file_type: str | None = "image/jpeg",
        checksum: str | None = None,
        file_id: str | None = None,
        **extra: Any,
    ) -> str:
        file_id = file_id or str(uuid.uuid4())
        self.files[file_id] = {
            "id": file_id,
            "filename_download": filename,
            "filename_disk": f"{file_id}.bin",
            "type": file_type,
            "filesize": len(content),
            "title": extra.pop("title", None),
            "folder": extra.pop("folder", None),
            "checksum": checksum,
            "storage": "local",
            **extra,
        }
        self.assets[file_id] = content
        return file_id

    def rows(self, collection: str) -> list[dict[str, Any]]:
        return self.items.get(collection, [])

    def _readable(self, collection: str) -> list[dict[str, Any]]:
        if collection in self.forbidden or collection not in self.items:
            raise DirectusAPIError("You don't have permission to access this.", status=403)
        return self.items[collection]

    def _find(self, collection: str, item_id: Any) -> dict[str, Any]:
        for row in self._readable(collection):
            if str(row.get("id")) == str(item_id):
                return row
        raise DirectusAPIError("You don't have permission to access this.", status=403)

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    # DirectusApiPort

    async def ping(self) -> bool:
        self.calls.append(("GET", "/server/ping"))
        if not self.reachable:
            raise DirectusConnectionError(self.base_url, "connection refused")
        return True

    async def server_info(self) -> dict[str, Any]:
        return {"project": {"project_name": "Fake"}, "directus": {"version": "10.10.0"}}

    async def list_collections(self) -> list[dict[str, Any]]:
        self.calls.append(("GET", "/collections"))
        if self.token != self.valid_token:
            raise DirectusAPIError("Invalid user credentials.", status=401)
        return [{"collection": name} for name in self.items]

    async def list_items(
        self,
        collection: str,
        *,
        limit: int | None = None,
        filter: dict[str, Any] | None = None,
        fields: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append(("GET", f"/items/{collection}"))
        rows = [r for r in self._readable(collection) if not filter or _matches(r, filter)]
        if limit is not None and limit >= 0:
            rows = rows[:limit]
        return [_collapse_relations(r, fields) for r in copy.deepcopy(rows)]

    async def get_item(self, collection: str, item_id: Any, *, fields: list[str] | None = None) -> dict[str, Any]:
        self.calls.append(("GET", f"/items/{collection}/{item_id}"))
        return copy.deepcopy(self._find(collection, item_id))

    async def create_item(self, collection: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("POST", f"/items/{collection}"))
        if self.fail_create is not None:
            error = self.fail_create(collection, payload)
            if error is not None:
                raise error
        rows = self._readable(collection)
        row = {**copy.deepcopy(payload), "id": self._new_id()}
        rows.append(row)
        return copy.deepcopy(row)

    async def update_item(self, collection: str, item_id: Any, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("PATCH", f"/items/{collection}/{item_id}"))
        if self.fail_update is not None:
            error = self.fail_update(collection, item_id, payload)
            if error is not None:
                raise error
        row = self._find(collection, item_id)
        row.update(copy.deepcopy(payload))
        return copy.deepcopy(row)

    async def get_file(self, file_id: str) -> dict[str, Any]:
        self.calls.append(("GET", f"/files/{file_id}"))
        if file_id not in self.files:
            raise DirectusAPIError("You don't have permission to access this.", status=403)
        return copy.deepcopy(self.files[file_id])

    async def probe_file(self, file_id: str) -> bool:
        return file_id in self.files

    async def update_file(self, file_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("PATCH", f"/files/{file_id}"))
        self.files[file_id].update(payload)
        return copy.deepcopy(self.files[file_id])

    async def download_asset(self, file_id: str) -> bytes:
        self.calls.append(("GET", f"/assets/{file_id}"))
        return self.assets[file_id]

    async def upload_file(
        self,
        content: bytes,
        *,
        filename: str,
        content_type: str,
        title: str | None = None,
        folder: str | None = None,
    ) -> dict[str, Any]:
        self.calls.append(("POST", "/files"))
        file_id = self.add_file(content, filename=filename, file_type=content_type, title=title, folder=folder)
        self.uploads.append(copy.deepcopy(self.files[file_id]))
        return copy.deepcopy(self.files[file_id])

    async def list_folders(self, *, name: str | None = None) -> list[dict[str, Any]]:
        return [copy.deepcopy(f) for f in self.folders if name is None or f["name"] == name]

    async def create_folder(self, name: str, parent: str | None = None) -> dict[str, Any]:
        folder = {"id": str(uuid.uuid4()), "name": name, "parent": parent}
        self.folders.append(folder)
        return copy.deepcopy(folder)

    async def get_fields(self, collection: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self.fields.get(collection, []))

    async def get_relations(self, collection: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self.relations.get(collection, []))

    async def list_languages(self) -> list[dict[str, Any]]:
        if self.languages is None:
            raise DirectusAPIError("You don't have permission to access this.", status=403)
        return [{"code": code} for code in self.languages]

    async def aclose(self) -> None:
        pass


@pytest.fixture
def source() -> FakeDirectus:
    """Source instance with an empty articles collection."""
    return FakeDirectus(base_url="https://source.example", items={"articles": []})


@pytest.fixture
def target() -> FakeDirectus:
    """Target instance with an empty articles collection and a mapping store."""
    return FakeDirectus(base_url="https://target.example", items={"articles": [], "sync_id_map": []})


@pytest.fixture
def make_directus() -> Callable[..., FakeDirectus]:
    """Factory for extra instances (unreachable, wrong token, missing collections)."""
    return FakeDirectus
