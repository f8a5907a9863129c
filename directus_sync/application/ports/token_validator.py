"""Port interface for token and permission preflight checks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..dto.sync import AccessCheckResult, ValidationResult


class TokenValidatorPort(ABC):
    """Port for best-effort credential diagnostics against an instance."""

    @abstractmethod
    async def validate(self, url: str, token: str) -> ValidationResult:
        """
        Validate a token: server reachable, token accepted, server info readable.

        Args:
            url: Instance base URL
            token: Static or admin token

        Returns:
            ValidationResult with success flag, message and server info
        """
        pass

    @abstractmethod
    async def check_collection_access(self, url: str, token: str, collection: str) -> AccessCheckResult:
        """
        Check that the token can read a collection.

        Returns:
            AccessCheckResult with success flag and message
        """
        pass
