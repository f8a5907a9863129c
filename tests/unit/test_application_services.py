"""Unit tests for identity mapping, file transfer, field sanitizing, folders and access checks."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from directus_sync.application.services.access_check import check_collection_access, validate_api_access
from directus_sync.application.services.field_sanitizer import FieldSanitizer, source_read_fields
from directus_sync.application.services.file_transfer import FileTransferEngine, ItemFileContext
from directus_sync.application.services.identity_mapper import IdentityMapper
from directus_sync.application.services.target_folder import ensure_target_folder
from directus_sync.domain.errors import DirectusAPIError
from directus_sync.domain.models.field_schema import CollectionSchema, FieldSchema
from directus_sync.domain.models.field_value import FileRef, Primitive, RelationList, classify_item
from directus_sync.domain.models.import_log import ImportLog
from directus_sync.domain.models.import_result import SyncStats


class TestIdentityMapper:
    """Tests for IdentityMapper."""

    @pytest.mark.asyncio
    async def test_upsert_then_lookup(self, target):
        mapper = IdentityMapper(target)

        assert await mapper.lookup("articles", 1) is None
        await mapper.upsert("articles", 1, 42)

        assert await mapper.lookup("articles", 1) == "42"
        assert target.rows("sync_id_map") == [{"table": "articles", "sync_id": "1", "local_id": "42", "id": 1001}]

    @pytest.mark.asyncio
    async def test_upsert_is_noop_when_unchanged_and_updates_when_moved(self, target):
        mapper = IdentityMapper(target)
        await mapper.upsert("articles", 1, 42)
        await mapper.upsert("articles", 1, 42)

        assert len(target.rows("sync_id_map")) == 1
        assert sum(1 for method, path in target.calls if path == "/items/sync_id_map" and method == "POST") == 1

        await mapper.upsert("articles", 1, 99)

        assert len(target.rows("sync_id_map")) == 1
        assert await mapper.lookup("articles", 1) == "99"

    @pytest.mark.asyncio
    async def test_mappings_are_scoped_by_collection(self, target):
        mapper = IdentityMapper(target)
        await mapper.upsert("articles", 1, 42)

        assert await mapper.lookup("pages", 1) is None

    @pytest.mark.asyncio
    async def test_missing_store_degrades_once(self, make_directus):
        target = make_directus(items={"articles": []})
        log = ImportLog()
        mapper = IdentityMapper(target, log=log)

        assert await mapper.lookup("articles", 1) is None
        await mapper.upsert("articles", 1, 42)
        assert await mapper.lookup("articles", 2) is None

        assert not mapper.available
        assert len(log.find("identity_map_unavailable")) == 1

    @pytest.mark.asyncio
    async def test_write_failure_is_logged_not_raised(self, target):
        target.fail_create = lambda collection, payload: (
            DirectusAPIError("Invalid payload", status=400) if collection == "sync_id_map" else None
        )
        log = ImportLog()
        mapper = IdentityMapper(target, log=log)

        await mapper.upsert("articles", 1, 42)

        assert mapper.available
        assert log.find("identity_map_error")[0].details["status"] == 400


class TestFileTransferEngine:
    """Tests for FileTransferEngine."""

    @pytest.mark.asyncio
    async def test_same_file_in_two_fields_is_uploaded_once(self, source, target):
        file_id = source.add_file(b"binary", filename="photo.jpg", title="Source title")
        stats = SyncStats()
        engine = FileTransferEngine(source, target, folder_id="fold-1", stats=stats, log=ImportLog())
        ctx = ItemFileContext(item_id=1, title="Hello")

        resolved = await engine.resolve_fields(classify_item({"cover": file_id, "thumb": file_id}), ctx)

        assert len(target.uploads) == 1
        upload = target.uploads[0]
        assert upload["filename_download"] == "photo.jpg"
        assert upload["title"] == "Hello"
        assert upload["folder"] == "fold-1"
        assert resolved["cover"] == resolved["thumb"]
        assert resolved["cover"].file_id == upload["id"]
        assert resolved["cover"].resolved
        assert stats.files_uploaded == 1

    @pytest.mark.asyncio
    async def test_run_cache_avoids_reupload_across_items(self, source, target):
        file_id = source.add_file(b"binary")
        engine = FileTransferEngine(source, target)

        await engine.resolve_fields(classify_item({"cover": file_id}), ItemFileContext(item_id=1))
        await engine.resolve_fields(classify_item({"cover": file_id}), ItemFileContext(item_id=2))

        assert len(target.uploads) == 1

    @pytest.mark.asyncio
    async def test_reuses_snapshot_file_by_checksum_even_when_size_differs(self, source, target):
        source_file = source.add_file(b"short", checksum="abc", title="Old")
        target_file = target.add_file(b"a much longer binary", checksum="abc", title="Stale")
        stats = SyncStats()
        log = ImportLog()
        engine = FileTransferEngine(source, target, folder_id="fold-1", stats=stats, log=log)
        ctx = ItemFileContext(item_id=1, title="Hello", snapshot={"cover": {"id": target_file}})

        resolved = await engine.resolve_fields(classify_item({"cover": source_file}), ctx)

        assert resolved["cover"] == FileRef(file_id=target_file, raw=source_file, resolved=True)
        assert target.uploads == []
        assert stats.files_reused == 1
        assert target.files[target_file]["title"] == "Hello"
        assert target.files[target_file]["folder"] == "fold-1"
        assert log.find("file_metadata_patched")[0].details["fields"] == ["folder", "title"]

    @pytest.mark.asyncio
    async def test_different_binary_in_snapshot_is_replaced(self, source, target):
        source_file = source.add_file(b"new", checksum="new")
        target_file = target.add_file(b"old", checksum="old")
        engine = FileTransferEngine(source, target)
        ctx = ItemFileContext(item_id=1, snapshot={"cover": target_file})

        resolved = await engine.resolve_fields(classify_item({"cover": source_file}), ctx)

        assert len(target.uploads) == 1
        assert resolved["cover"].file_id != target_file

    @pytest.mark.asyncio
    async def test_uuid_that_is_not_a_file_stays_untouched(self, source, target):
        engine = FileTransferEngine(source, target)
        not_a_file = "11111111-2222-4333-8444-555555555555"

        resolved = await engine.resolve_fields(classify_item({"ref": not_a_file}), ItemFileContext(item_id=1))

        assert resolved["ref"] == Primitive(not_a_file)
        assert target.uploads == []

    @pytest.mark.asyncio
    async def test_dry_run_plans_without_uploading(self, source, target):
        file_id = source.add_file(b"binary")
        log = ImportLog()
        engine = FileTransferEngine(source, target, log=log, dry_run=True)

        resolved = await engine.resolve_fields(classify_item({"cover": file_id}), ItemFileContext(item_id=1))

        assert target.uploads == []
        assert resolved["cover"] == Primitive(file_id)
        assert len(log.find("file_upload_planned")) == 1

    @pytest.mark.asyncio
    async def test_copy_failure_keeps_original_value(self, source, target):
        file_id = source.add_file(b"binary")
        source.download_asset = AsyncMock(side_effect=DirectusAPIError("Service unavailable", status=503))
        stats = SyncStats()
        log = ImportLog()
        engine = FileTransferEngine(source, target, stats=stats, log=log)

        resolved = await engine.resolve_fields(classify_item({"cover": file_id}), ItemFileContext(item_id=7))

        assert resolved["cover"] == Primitive(file_id)
        assert stats.files_failed == 1
        error = log.find("file_copy_error")[0].details
        assert error["item_id"] == 7
        assert error["status"] == 503

    @pytest.mark.asyncio
    async def test_multi_file_relation_lists_are_reported_not_copied(self, source, target):
        file_id = source.add_file(b"binary")
        log = ImportLog()
        engine = FileTransferEngine(source, target, log=log)

        resolved = await engine.resolve_fields(
            classify_item({"gallery": [{"directus_files_id": file_id}]}),
            ItemFileContext(item_id=1),
        )

        assert isinstance(resolved["gallery"], RelationList)
        assert log.find("file_field_skipped_multi")[0].details["count"] == 1
        assert target.uploads == []


class TestFieldSanitizer:
    """Tests for FieldSanitizer."""

    @pytest.mark.asyncio
    async def test_fill_required_defaults(self, target):
        target.items["categories"] = [{"id": 5}, {"id": 6}]
        schema = CollectionSchema(
            collection="articles",
            fields={
                "status": FieldSchema(name="status", required=True, default="draft"),
                "category": FieldSchema(name="category", kind="m2o", required=True, related_collection="categories"),
                "slug": FieldSchema(name="slug", required=True),
            },
        )
        log = ImportLog()
        sanitizer = FieldSanitizer(target, log=log)

        payload = await sanitizer.fill_required_defaults({"status": ""}, schema)

        assert payload == {"status": "draft", "category": 5}
        assert log.find("required_field_defaulted")[0].details["field"] == "category"

    @pytest.mark.asyncio
    async def test_null_dangling_references(self, target):
        target.items["authors"] = [{"id": 7}]
        present_file = target.add_file(b"x")
        schema = CollectionSchema(
            collection="articles",
            fields={
                "author": FieldSchema(name="author", kind="m2o", related_collection="authors"),
                "editor": FieldSchema(name="editor", kind="m2o", related_collection="authors"),
                "cover": FieldSchema(name="cover", kind="file", related_collection="directus_files"),
                "thumb": FieldSchema(name="thumb", kind="file", related_collection="directus_files"),
            },
        )
        log = ImportLog()
        sanitizer = FieldSanitizer(target, log=log)

        payload = await sanitizer.null_dangling_references(
            {"author": 7, "editor": 8, "cover": present_file, "thumb": "missing", "title": "x"},
            schema,
        )

        assert payload == {"author": 7, "editor": None, "cover": present_file, "thumb": None, "title": "x"}
        assert {e.details["field"] for e in log.find("dangling_reference_cleared")} == {"editor", "thumb"}

    @pytest.mark.asyncio
    async def test_known_ids_skip_the_existence_check(self, target):
        schema = CollectionSchema(
            collection="articles",
            fields={"cover": FieldSchema(name="cover", kind="file", related_collection="directus_files")},
        )
        sanitizer = FieldSanitizer(target)

        payload = await sanitizer.null_dangling_references({"cover": "fresh"}, schema, known_ids={"fresh"})

        assert payload == {"cover": "fresh"}

    @pytest.mark.asyncio
    async def test_load_schema_is_cached_and_degrades(self, target):
        target.get_fields = AsyncMock(side_effect=DirectusAPIError("Forbidden", status=403))
        log = ImportLog()
        sanitizer = FieldSanitizer(target, log=log)

        schema = await sanitizer.load_schema("articles")
        await sanitizer.load_schema("articles")

        assert not schema.is_known
        assert schema.accepts("anything")
        assert target.get_fields.await_count == 1
        assert len(log.find("schema_fetch_warning")) == 1

    @pytest.mark.asyncio
    async def test_load_schema_from_fields(self, target):
        target.fields["articles"] = [
            {"field": "title", "type": "string", "meta": {"required": True}},
            {"field": "cover", "type": "uuid", "meta": {"special": ["file"]}},
        ]
        sanitizer = FieldSanitizer(target)

        schema = await sanitizer.load_schema("articles")

        assert schema.get("cover").kind == "file"
        assert [f.name for f in schema.required_fields()] == ["title"]

    @pytest.mark.asyncio
    async def test_supported_languages(self, target):
        target.languages = ["en-US", "de-DE"]

        assert await FieldSanitizer(target).supported_languages() == ["en-US", "de-DE"]

    @pytest.mark.asyncio
    async def test_supported_languages_unknown(self, target):
        target.languages = None
        log = ImportLog()

        assert await FieldSanitizer(target, log=log).supported_languages() is None
        assert len(log.find("languages_fetch_warning")) == 1


class TestSourceReadFields:
    """Tests for source_read_fields."""

    @pytest.mark.asyncio
    async def test_translations_fields_from_schema(self, source):
        source.fields["articles"] = [
            {"field": "title", "type": "string", "meta": {}, "schema": {}},
            {"field": "locales", "type": "alias", "meta": {"special": ["translations"]}, "schema": None},
        ]

        assert await source_read_fields(source, "articles", expand=["author"]) == ["*", "locales.*", "author.*"]

    @pytest.mark.asyncio
    async def test_unreadable_schema_assumes_translations(self, source):
        source.get_fields = AsyncMock(side_effect=DirectusAPIError("Forbidden", status=403))
        log = ImportLog()

        fields = await source_read_fields(source, "articles", expand=["translations"], log=log)

        assert fields == ["*", "translations.*"]
        assert log.find("source_schema_warning")[0].details["status"] == 403


class TestTargetFolder:
    """Tests for ensure_target_folder."""

    @pytest.mark.asyncio
    async def test_create_then_find(self, target):
        log = ImportLog()

        first = await ensure_target_folder(target, "articles", log)
        second = await ensure_target_folder(target, "articles", log)

        assert first == second
        assert len(target.folders) == 1
        assert [e.step for e in log] == ["folder_created", "folder_found"]

    @pytest.mark.asyncio
    async def test_failure_yields_none(self, target):
        target.list_folders = AsyncMock(side_effect=DirectusAPIError("Forbidden", status=403))
        log = ImportLog()

        assert await ensure_target_folder(target, "articles", log) is None
        assert log.find("folder_error")[0].details["status"] == 403


class TestAccessCheck:
    """Tests for validate_api_access and check_collection_access."""

    @pytest.mark.asyncio
    async def test_valid_token(self, source):
        result = await validate_api_access(source)

        assert result.success
        assert result.message == "Token is valid (1 collections visible)"
        assert result.server_info["directus"]["version"] == "10.10.0"

    @pytest.mark.asyncio
    async def test_missing_token(self, make_directus):
        result = await validate_api_access(make_directus(token=None))

        assert not result.success
        assert "No token configured" in result.message

    @pytest.mark.asyncio
    async def test_unreachable_server(self, source):
        source.reachable = False

        result = await validate_api_access(source)

        assert not result.success
        assert result.message.startswith("Server at https://source.example is not reachable")

    @pytest.mark.asyncio
    async def test_rejected_token(self, make_directus):
        result = await validate_api_access(make_directus(token="wrong"))

        assert not result.success
        assert "Token was rejected" in result.message
        assert result.error["status"] == 401

    @pytest.mark.asyncio
    async def test_collection_access(self, source):
        readable = await check_collection_access(source, "articles")
        missing = await check_collection_access(source, "secrets")

        assert readable.success
        assert not missing.success
        assert "does not exist or is not readable" in missing.message
