from typing import Any

from pydantic import BaseModel, Field


class ImportOptions(BaseModel):
    """Options for one import run (live or from a bundle)."""
    
    limit: int | None = Field(default=None, ge=1)  # None imports everything
    title_filter: str | None = None  # substring matched against translation titles
    dry_run: bool = False  # decide create/update without writing
    heuristic_match: bool = False  # opt-in url/path/slug/name/title fallback lookup
    mapping_collection: str = "sync_id_map"


class ValidationResult(BaseModel):
    """Result DTO for token validation."""
    
    success: bool
    message: str
    server_info: dict[str, Any] | None = None
    error: dict[str, Any] | None = None


class AccessCheckResult(BaseModel):
    """Result DTO for a collection access check."""
    
    success: bool
    message: str


class RunResult(BaseModel):
    """Result DTO for an import run."""
    
    success: bool
    message: str
    collection: str
    imported_items: list[Any] = []  # ImportedItemResult, in run order
    import_log: list[Any] = []  # ImportLogEntry, in run order
    stats: Any = None  # SyncStats
    cancelled: bool = False
    dry_run: bool = False
    correlation_id: str | None = None
    duration_seconds: float = 0.0
    error: dict[str, Any] | None = None
    
    def to_dict(self) -> dict[str, Any]:
        """Serialize to the caller-facing (camelCase) contract."""
        result: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "collection": self.collection,
            "importedItems": [item.to_dict() for item in self.imported_items],
            "importLog": [entry.to_dict() for entry in self.import_log],
            "cancelled": self.cancelled,
            "dryRun": self.dry_run,
            "durationSeconds": self.duration_seconds,
        }
        if self.stats is not None:
            result["stats"] = self.stats.to_dict()
        if self.correlation_id:
            result["correlationId"] = self.correlation_id
        if self.error is not None:
            result["error"] = self.error
        return result


class BundleExportResult(BaseModel):
    """Result DTO for a bundle export."""
    
    success: bool
    message: str
    collection: str
    bundle_location: str
    items: int = 0
    files: int = 0
    files_skipped: int = 0
    import_log: list[Any] = []
