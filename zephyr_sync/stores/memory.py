"""
In-memory store adapters.

Dictionary-backed implementations of the store capability. The remote
variant can simulate writes arriving from another device so that the
external-change path can be driven without a real cloud store.
"""

from __future__ import annotations

import copy
from typing import Any

from ..logging_utils import get_sync_logger

from ..protocol import (
    DataStore,
    ExternalChangeCallback,
    ObservationCallback,
    RemoteStoreAdapter,
    StoreAdapter,
    Subscription,
    validate_value,
)

logger = get_sync_logger("stores")

_MISSING = object()


class InMemoryStore(StoreAdapter):
    """Dictionary-backed store with per-key observers.

    Example:
        >>> store = InMemoryStore({"theme": "light"})
        >>> sub = store.observe("theme", lambda store, key, value: print(key, value))
        >>> await store.write("theme", "dark")
        theme dark
        >>> sub.cancel()
    """

    def __init__(
        self,
        initial: dict[str, Any] | None = None,
        kind: DataStore = DataStore.LOCAL,
    ) -> None:
        self._kind = kind
        self._data: dict[str, Any] = {}
        self._observers: dict[str, list[ObservationCallback]] = {}

        for key, value in (initial or {}).items():
            validate_value(key, value)
            if value is not None:
                self._data[key] = copy.deepcopy(value)

    @property
    def kind(self) -> DataStore:
        return self._kind

    def get(self, key: str) -> Any | None:
        """Read a single value without taking a snapshot."""
        return copy.deepcopy(self._data.get(key))

    def __contains__(self, key: str) -> bool:
        return key in self._data

    async def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    async def write(self, key: str, value: Any) -> None:
        if value is None:
            await self.delete(key)
            return

        validate_value(key, value)
        previous = self._data.get(key, _MISSING)
        self._data[key] = copy.deepcopy(value)
        try:
            await self._persist()
        except Exception:
            self._restore(key, previous)
            raise
        self._notify(key, value)

    async def delete(self, key: str) -> None:
        if key not in self._data:
            return

        previous = self._data.pop(key)
        try:
            await self._persist()
        except Exception:
            self._restore(key, previous)
            raise
        self._notify(key, None)

    def observe(self, key: str, callback: ObservationCallback) -> Subscription:
        self._observers.setdefault(key, []).append(callback)

        def release() -> None:
            callbacks = self._observers.get(key)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._observers[key]

        return Subscription(key=key, _release=release)

    def unobserve(self, key: str) -> None:
        self._observers.pop(key, None)

    def is_observed(self, key: str) -> bool:
        return bool(self._observers.get(key))

    async def _persist(self) -> None:
        """Hook for subclasses that write the data somewhere durable."""

    def _restore(self, key: str, previous: Any) -> None:
        # Undo a change that never reached durable storage
        if previous is _MISSING:
            self._data.pop(key, None)
        else:
            self._data[key] = previous

    def _notify(self, key: str, value: Any) -> None:
        # Copy: callbacks may unobserve while we iterate
        for callback in list(self._observers.get(key, ())):
            callback(self._kind, key, copy.deepcopy(value))


class InMemoryRemoteStore(InMemoryStore, RemoteStoreAdapter):
    """In-memory stand-in for a cloud-synchronized store.

    Writes made through ``write``/``delete`` are this device's own writes and
    are never reported as external changes. ``apply_external_changes``
    plays the part of another device.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        super().__init__(initial, kind=DataStore.REMOTE)
        self._external_subscribers: list[ExternalChangeCallback] = []
        self.flush_count = 0

    async def flush(self) -> None:
        self.flush_count += 1
        logger.debug(f"Remote store flushed ({self.flush_count} total)")

    def subscribe_to_external_changes(self, callback: ExternalChangeCallback) -> Subscription:
        self._external_subscribers.append(callback)

        def release() -> None:
            if callback in self._external_subscribers:
                self._external_subscribers.remove(callback)

        return Subscription(key=None, _release=release)

    async def apply_external_changes(self, values: dict[str, Any]) -> None:
        """Apply writes from another device and announce the changed keys.

        Args:
            values: Key-value pairs to apply; ``None`` values delete the key
        """
        for key, value in values.items():
            validate_value(key, value)

        previous = dict(self._data)
        for key, value in values.items():
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = copy.deepcopy(value)
        try:
            await self._persist()
        except Exception:
            self._data = previous
            raise

        changed = set(values)
        for callback in list(self._external_subscribers):
            callback(changed)
