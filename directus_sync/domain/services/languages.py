"""Language code normalization against the codes a target instance supports."""

from __future__ import annotations

from typing import Any, Iterable


def language_code_of(value: Any) -> str | None:
    """Extract a code from ``"en-US"`` or an expanded ``{"code": "en-US"}`` row."""
    if isinstance(value, dict):
        value = value.get("code")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_language_code(code: str, supported: Iterable[str]) -> str | None:
    """
    Map a source language code onto one the target supports.
    
    Exact match first (case-insensitive), then the first supported code sharing
    the same base language (``de-AT`` -> ``de-DE``). None if nothing fits.
    """
    supported = list(supported)
    for candidate in supported:
        if candidate == code:
            return candidate
    lowered = code.lower()
    for candidate in supported:
        if candidate.lower() == lowered:
            return candidate
    base = lowered.replace("_", "-").split("-")[0]
    for candidate in supported:
        if candidate.lower().replace("_", "-").split("-")[0] == base:
            return candidate
    return None
