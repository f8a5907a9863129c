"""Application services for orchestrating domain logic."""

from .access_check import check_collection_access, validate_api_access
from .field_sanitizer import FieldSanitizer, source_read_fields
from .file_transfer import FileTransferEngine, ItemFileContext
from .identity_mapper import DEFAULT_MAPPING_COLLECTION, IdentityMapper
from .target_folder import ensure_target_folder

__all__ = [
    "DEFAULT_MAPPING_COLLECTION",
    "FieldSanitizer",
    "FileTransferEngine",
    "IdentityMapper",
    "ItemFileContext",
    "check_collection_access",
    "ensure_target_folder",
    "source_read_fields",
    "validate_api_access",
]
