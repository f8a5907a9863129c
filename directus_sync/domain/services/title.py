"""Display title derivation for source items."""

from __future__ import annotations

from typing import Any


def unwrap_rich_text(value: Any) -> Any:
    """Return the plain string of a ``{"value": str}`` wrapper, else the value unchanged."""
    if isinstance(value, dict) and isinstance(value.get("value"), str):
        return value["value"]
    return value


def derive_title(item: dict[str, Any]) -> str | None:
    """
    Compute an item's display title.
    
    Uses the item's own non-empty ``title``, else the first translation with a
    non-empty title (plain or ``{value}``-wrapped), else None.
    """
    own = unwrap_rich_text(item.get("title"))
    if isinstance(own, str) and own.strip():
        return own.strip()

    translations = item.get("translations")
    if isinstance(translations, list):
        for entry in translations:
            if not isinstance(entry, dict):
                continue
            title = unwrap_rich_text(entry.get("title"))
            if isinstance(title, str) and title.strip():
                return title.strip()
    return None
