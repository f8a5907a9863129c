from dataclasses import dataclass

# Checked in this order when no identity mapping exists
HEURISTIC_MATCH_FIELDS = ("url", "path", "slug", "name", "title")


@dataclass(frozen=True)
class MatchPolicy:
    """Policy for finding an existing target item without an identity mapping."""
    
    heuristic_enabled: bool = False
    fields: tuple[str, ...] = HEURISTIC_MATCH_FIELDS
