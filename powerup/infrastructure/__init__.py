"""Infrastructure layer exports."""

from .cache import SheetCache, SheetFetcher
from .sessions import InMemorySessionStore, SessionStore
from .sheets import SheetClient

__all__ = [
    "InMemorySessionStore",
    "SessionStore",
    "SheetCache",
    "SheetClient",
    "SheetFetcher",
]
