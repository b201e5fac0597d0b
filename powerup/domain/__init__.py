"""Domain layer definitions."""

from .sheets import ALL_SCOPE, CacheEntry, Column, FilterState, GoalBand, Identity, RollupResult, Row, Sheet

__all__ = [
    "ALL_SCOPE",
    "CacheEntry",
    "Column",
    "FilterState",
    "GoalBand",
    "Identity",
    "RollupResult",
    "Row",
    "Sheet",
]
