"""Pydantic settings for directus-sync.toml configuration."""

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ...domain.policy.retry_policy import RetryPolicy
from .environment import get_env, get_instance_config, load_environment_variables

DEFAULT_CONFIG_FILE = "directus-sync.toml"


class InstanceSettings(BaseModel):
    """Connection settings of one Directus instance."""

    url: str = ""
    token: str = ""
    timeout_seconds: float = 30.0

    @field_validator("url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: Any) -> str:
        """Normalize base URL."""
        return str(v or "").rstrip("/")

    @property
    def configured(self) -> bool:
        return bool(self.url and self.token)

    @classmethod
    def for_role(cls, role: str, data: dict[str, Any] | None = None) -> "InstanceSettings":
        """
        Build instance settings with environment variable precedence.

        Args:
            role: "source" or "target" (selects DIRECTUS_SOURCE_* or DIRECTUS_TARGET_*)
            data: Values from the TOML section

        Returns:
            InstanceSettings with environment values overriding TOML values
        """
        load_environment_variables()
        data = dict(data or {})
        data.update(get_instance_config(role))
        return cls(**data)


class RetrySettings(BaseModel):
    """Retry settings for idempotent reads."""

    max_retries: int = Field(default=3, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)
    jitter: bool = True

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            jitter=self.jitter,
        )


class SyncSettings(BaseModel):
    """Import behavior settings."""

    mapping_collection: str = "sync_id_map"
    heuristic_match: bool = False
    page_limit: int | None = Field(default=None, ge=1)


class PathsSettings(BaseModel):
    """Path configuration settings."""

    bundles_dir: str = "var/bundles"
    audit_dir: str = "var/audit"


class Settings(BaseModel):
    """Main settings loaded from directus-sync.toml."""

    source: InstanceSettings = Field(default_factory=InstanceSettings)
    target: InstanceSettings = Field(default_factory=InstanceSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    paths: PathsSettings = Field(default_factory=PathsSettings)

    @classmethod
    def from_toml(cls, toml_path: Path | str | None = None) -> "Settings":
        """
        Load settings from directus-sync.toml with environment variable precedence.

        Environment variables (system env > .env file) override TOML values.
        The file location itself can be set with DIRECTUS_SYNC_CONFIG.

        Args:
            toml_path: Path to the TOML file

        Returns:
            Settings instance with loaded configuration
        """
        load_environment_variables()

        if toml_path is None:
            toml_path = get_env("DIRECTUS_SYNC_CONFIG") or DEFAULT_CONFIG_FILE
        toml_path = Path(toml_path)

        data: dict[str, Any] = {}
        if toml_path.exists():
            with toml_path.open("rb") as f:
                data = tomllib.load(f)

        return cls(
            source=InstanceSettings.for_role("source", data.get("source", {})),
            target=InstanceSettings.for_role("target", data.get("target", {})),
            retry=RetrySettings(**data.get("retry", {})),
            sync=SyncSettings(**data.get("sync", {})),
            paths=PathsSettings(**data.get("paths", {})),
        )

    def require_instance(self, role: str) -> InstanceSettings:
        """
        Get settings of an instance that must be fully configured.

        Args:
            role: "source" or "target"

        Returns:
            InstanceSettings with url and token

        Raises:
            ValueError: If url or token is missing
        """
        instance = self.source if role == "source" else self.target
        if not instance.configured:
            prefix = f"DIRECTUS_{role.upper()}_"
            raise ValueError(
                f"The {role} instance is not configured.\n"
                f"  How to fix: Set {prefix}URL and {prefix}TOKEN in your environment or .env file,\n"
                f"  or add url/token under [{role}] in {DEFAULT_CONFIG_FILE}."
            )
        return instance
