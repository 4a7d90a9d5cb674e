"""
Lifecycle event channel.

Hosts publish application lifecycle events here instead of wiring the
engine to a particular platform's notification system.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from ..logging_utils import get_sync_logger
from ..protocol import Subscription

logger = get_sync_logger("events")


class LifecycleEventType(Enum):
    """Types of lifecycle events."""

    APP_RESUMED = "app_resumed"
    EXTERNAL_STORE_CHANGED = "external_store_changed"


@dataclass(frozen=True)
class LifecycleEvent:
    """A lifecycle event published by the host application."""

    event_type: LifecycleEventType
    keys: frozenset[str] = frozenset()
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())


EventCallback = Callable[[LifecycleEvent], None]


class EventChannel:
    """Fan-out channel for lifecycle events.

    Example:
        >>> channel = EventChannel()
        >>> sub = channel.subscribe(lambda event: print(event.event_type))
        >>> channel.app_resumed()
        LifecycleEventType.APP_RESUMED
        >>> sub.cancel()
    """

    def __init__(self) -> None:
        self._subscribers: list[EventCallback] = []

    def subscribe(self, callback: EventCallback) -> Subscription:
        self._subscribers.append(callback)

        def release() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return Subscription(key=None, _release=release)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: LifecycleEvent) -> None:
        """Deliver an event to every subscriber.

        A failing subscriber is logged and does not stop delivery to the rest.
        """
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Lifecycle event subscriber failed for {event.event_type.value}")

    def app_resumed(self) -> None:
        self.publish(LifecycleEvent(LifecycleEventType.APP_RESUMED))

    def external_store_changed(self, keys: Iterable[str]) -> None:
        self.publish(LifecycleEvent(LifecycleEventType.EXTERNAL_STORE_CHANGED, frozenset(keys)))
