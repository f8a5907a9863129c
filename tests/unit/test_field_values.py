"""Unit tests for field classification and collection schema parsing."""

import pytest

from directus_sync.domain.models.field_schema import FILES_COLLECTION, CollectionSchema, FieldSchema
from directus_sync.domain.models.field_value import (
    FileRef,
    Primitive,
    RelationList,
    RelationRef,
    TranslationList,
    classify,
    classify_item,
    looks_like_file_id,
)

FILE_ID = "3f2c9a1e-7b4d-4c8e-9f10-2a3b4c5d6e7f"
OTHER_FILE_ID = "9a8b7c6d-5e4f-4a3b-8c2d-1e0f9a8b7c6d"


def test_looks_like_file_id():
    """Only UUID strings are file id candidates."""
    assert looks_like_file_id(FILE_ID)
    assert not looks_like_file_id("hello")
    assert not looks_like_file_id(42)
    assert not looks_like_file_id(None)


def test_classify_without_schema_uses_value_shape():
    """UUID strings become file candidates, other scalars stay primitive."""
    assert classify("image", FILE_ID) == FileRef(file_id=FILE_ID, raw=FILE_ID)
    assert classify("views", 12) == Primitive(12)
    assert classify("title", "Hello") == Primitive("Hello")
    assert classify("meta", {"a": 1}) == Primitive({"a": 1})


def test_classify_file_shaped_object_is_file_candidate():
    """An expanded directus_files row is recognized even without schema."""
    raw = {"id": FILE_ID, "filename_download": "photo.jpg", "filesize": 10}
    value = classify("cover", raw)

    assert isinstance(value, FileRef)
    assert value.file_id == FILE_ID
    assert value.raw == raw


def test_classify_expanded_relation_without_file_keys():
    """An object with an id but no file keys is a single relation."""
    value = classify("author", {"id": 7, "name": "Ada"})

    assert value == RelationRef(target_id=7, embedded={"id": 7, "name": "Ada"})


def test_classify_schema_wins_over_shape():
    """Known field kinds decide the tag."""
    m2o = FieldSchema(name="author", kind="m2o", related_collection="authors")
    file_field = FieldSchema(name="cover", kind="file", related_collection=FILES_COLLECTION)
    json_field = FieldSchema(name="settings", kind="json")
    primitive = FieldSchema(name="code", kind="primitive")

    assert classify("author", 5, m2o) == RelationRef(target_id=5)
    assert classify("cover", "not-a-uuid", file_field) == FileRef(file_id="not-a-uuid", raw="not-a-uuid")
    assert classify("settings", {"id": 1, "x": 2}, json_field) == Primitive({"id": 1, "x": 2})
    assert isinstance(classify("code", FILE_ID, primitive), FileRef)


def test_classify_lists():
    """Translations lists keep only dict rows; other lists are relation lists."""
    translations = classify("translations", [{"languages_code": "en-US"}, "garbage"])
    relations = classify("tags", [1, 2, 3])

    assert translations == TranslationList(entries=({"languages_code": "en-US"},))
    assert relations == RelationList(entries=(1, 2, 3))


def test_relation_list_file_candidates():
    """File candidates are found as bare ids and inside junction rows."""
    value = RelationList(entries=(FILE_ID, {"id": 3, "directus_files_id": OTHER_FILE_ID}, 17))

    assert value.file_candidates() == [FILE_ID, OTHER_FILE_ID]


def test_file_ref_as_untouched():
    """A candidate that is not a file falls back to its original shape."""
    plain = FileRef(file_id=FILE_ID, raw=FILE_ID)
    embedded = FileRef(file_id=FILE_ID, raw={"id": FILE_ID, "storage": "local"})

    assert plain.as_untouched() == Primitive(FILE_ID)
    assert embedded.as_untouched() == RelationRef(target_id=FILE_ID, embedded={"id": FILE_ID, "storage": "local"})


def test_classify_item_strips_server_managed_fields():
    """id and audit fields are never copied."""
    values = classify_item({
        "id": 1,
        "date_created": "2024-01-01T00:00:00Z",
        "user_updated": "u1",
        "title": "Hello",
    })

    assert values == {"title": Primitive("Hello")}


def test_field_schema_from_directus_kinds():
    """Kinds derive from special flags, interface and storage type."""
    cover = FieldSchema.from_directus({
        "field": "cover",
        "type": "uuid",
        "meta": {"interface": "file-image", "special": ["file"]},
        "schema": {"foreign_key_table": "directus_files"},
    })
    translations = FieldSchema.from_directus({
        "field": "translations",
        "type": "alias",
        "meta": {"special": ["translations"]},
    })
    author = FieldSchema.from_directus({
        "field": "author",
        "type": "integer",
        "meta": {"special": ["m2o"]},
        "schema": {"foreign_key_table": "authors"},
    })
    tags = FieldSchema.from_directus({"field": "tags", "type": "alias", "meta": {"special": ["m2m"]}})
    settings = FieldSchema.from_directus({"field": "settings", "type": "json", "meta": {"special": ["cast-json"]}})
    title = FieldSchema.from_directus({
        "field": "title",
        "type": "string",
        "meta": {"required": True},
        "schema": {"default_value": "Untitled"},
    })

    assert cover.kind == "file" and cover.related_collection == FILES_COLLECTION
    assert translations.kind == "translations"
    assert author.kind == "m2o" and author.related_collection == "authors"
    assert tags.kind == "list"
    assert settings.kind == "json"
    assert title.kind == "primitive"
    assert title.required is True
    assert title.default == "Untitled"
    assert cover.is_single_reference and author.is_single_reference
    assert not tags.is_single_reference


def test_field_schema_rejects_unknown_kind():
    """Invalid kinds are rejected at construction."""
    with pytest.raises(ValueError, match="kind must be one of"):
        FieldSchema(name="x", kind="blob")


def test_collection_schema_from_directus_with_relations():
    """Relations fill in related collections, including child-side o2m declarations."""
    schema = CollectionSchema.from_directus(
        "articles",
        [
            {"field": "id", "type": "integer", "meta": {}},
            {"field": "category", "type": "integer", "meta": {}},
            {"field": "translations", "type": "alias", "meta": {"special": ["translations"]}},
            {"meta": {}},
        ],
        [
            {"collection": "articles", "field": "category", "related_collection": "categories", "meta": {}},
            {
                "collection": "articles_translations",
                "field": "articles_id",
                "related_collection": "articles",
                "meta": {"one_collection": "articles", "one_field": "translations"},
            },
        ],
    )

    assert set(schema.fields) == {"id", "category", "translations"}
    assert schema.get("category").kind == "m2o"
    assert schema.get("category").related_collection == "categories"
    assert schema.get("translations").related_collection == "articles_translations"
    assert schema.translations_field().name == "translations"


def test_empty_collection_schema_accepts_everything():
    """Unknown schema degrades to pass-through."""
    unknown = CollectionSchema(collection="articles")
    known = CollectionSchema(collection="articles", fields={"title": FieldSchema(name="title", required=True)})

    assert unknown.accepts("anything")
    assert known.accepts("title")
    assert not known.accepts("anything")
    assert [f.name for f in known.required_fields()] == ["title"]
