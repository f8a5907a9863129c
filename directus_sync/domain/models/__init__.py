"""Domain models for cross-instance item synchronization."""

from .bundle_manifest import BundleManifest
from .cancellation import CancellationToken
from .field_schema import CollectionSchema, FieldSchema
from .field_value import FieldValue, FileRef, Primitive, RelationList, RelationRef, TranslationList
from .file_metadata import FileMetadata, TargetFolder
from .identity_mapping import IdentityMapping
from .import_log import ImportLog, ImportLogEntry
from .import_result import ImportedItemResult, ItemError, SyncStats

__all__ = [
    "BundleManifest",
    "CancellationToken",
    "CollectionSchema",
    "FieldSchema",
    "FieldValue",
    "FileRef",
    "Primitive",
    "RelationList",
    "RelationRef",
    "TranslationList",
    "FileMetadata",
    "TargetFolder",
    "IdentityMapping",
    "ImportLog",
    "ImportLogEntry",
    "ImportedItemResult",
    "ItemError",
    "SyncStats",
]
