"""In-process publish/subscribe channel for cross-view notifications."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Union


@dataclass(slots=True, frozen=True)
class ScopeChanged:
    session_id: str
    scope: str


@dataclass(slots=True, frozen=True)
class EntityAdded:
    """Fired after a write succeeded and the touched sheets were invalidated."""

    kind: str
    sheet_key: str
    identifier: str | None = None
    detail: dict[str, Any] = field(default_factory=dict)


Event = Union[ScopeChanged, EntityAdded]
Listener = Callable[[Event], None]


class EventBus:
    """Synchronous fan-out: every listener registered for an event type runs
    once, in registration order, before :meth:`publish` returns."""

    def __init__(self) -> None:
        self._listeners: dict[type, list[Listener]] = {}

    def subscribe(self, event_type: type, listener: Listener) -> Callable[[], None]:
        self._listeners.setdefault(event_type, []).append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(event_type, listener)

        return unsubscribe

    def unsubscribe(self, event_type: type, listener: Listener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def publish(self, event: Event) -> int:
        # snapshot so a listener may unsubscribe itself while being notified
        listeners = list(self._listeners.get(type(event), []))
        for listener in listeners:
            listener(event)
        return len(listeners)

    def reset(self) -> None:
        self._listeners.clear()
