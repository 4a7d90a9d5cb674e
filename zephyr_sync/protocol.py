"""
Core types and abstract base classes for store adapters.

This module defines the capability the sync engine consumes from each of
the two stores it keeps consistent. Persistence and transport live behind
these interfaces.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

from .exceptions import ValidationError

# =============================================================================
# Values
# =============================================================================

Value = Union[str, int, float, bool, datetime, bytes, list, dict]

_SCALAR_TYPES = (str, int, float, bool, datetime, bytes)

# Dictionary key reserved for tagging datetime and bytes values on disk
TYPE_TAG = "__zephyr_type__"


def validate_value(key: str, value: Any) -> None:
    """Check that a value can be held by a store.

    ``None`` is accepted and means deletion. Collections are checked
    recursively; dictionary keys must be strings. The ``TYPE_TAG`` key is
    reserved and may not appear in a dictionary.

    Raises:
        ValidationError: If the value (or a nested member) is not supported
    """
    if value is None or isinstance(value, _SCALAR_TYPES):
        return
    if isinstance(value, list):
        for item in value:
            if item is None:
                raise ValidationError(key, "collections cannot contain None")
            validate_value(key, item)
        return
    if isinstance(value, dict):
        if TYPE_TAG in value:
            raise ValidationError(key, f"dictionary key '{TYPE_TAG}' is reserved")
        for k, item in value.items():
            if not isinstance(k, str):
                raise ValidationError(key, "dictionary keys must be strings", repr(k))
            if item is None:
                raise ValidationError(key, "collections cannot contain None")
            validate_value(key, item)
        return
    raise ValidationError(key, f"unsupported value type {type(value).__name__}")


# =============================================================================
# Stores and subscriptions
# =============================================================================


class DataStore(Enum):
    """The two stores kept in sync."""

    LOCAL = "local"
    REMOTE = "remote"

    @property
    def other(self) -> DataStore:
        return DataStore.REMOTE if self is DataStore.LOCAL else DataStore.LOCAL


ObservationCallback = Callable[[DataStore, str, Any], None]
ExternalChangeCallback = Callable[[set[str]], None]


@dataclass(eq=False)
class Subscription:
    """Handle for a registered callback.

    Cancelling releases the callback; cancelling twice is a no-op.
    """

    key: str | None
    _release: Callable[[], None] | None = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return self._release is not None

    def cancel(self) -> None:
        release, self._release = self._release, None
        if release is not None:
            release()


class StoreAdapter(ABC):
    """Uniform read/write/observe interface over one physical store.

    Implementations fire observers registered with ``observe`` synchronously,
    after the write or delete of the observed key has been applied.
    """

    @property
    @abstractmethod
    def kind(self) -> DataStore:
        """Which side of the sync this store represents."""

    @abstractmethod
    async def snapshot(self) -> dict[str, Any]:
        """Return a copy of every key-value pair in the store."""

    @abstractmethod
    async def write(self, key: str, value: Any) -> None:
        """Store a value under key.

        Args:
            key: Key to write
            value: Value to store; ``None`` deletes the key
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Deleting a missing key is a no-op."""

    @abstractmethod
    def observe(self, key: str, callback: ObservationCallback) -> Subscription:
        """Begin receiving change callbacks for a key.

        Returns:
            Subscription handle; cancelling it is equivalent to ``unobserve``
        """

    @abstractmethod
    def unobserve(self, key: str) -> None:
        """Stop receiving change callbacks for a key."""


class RemoteStoreAdapter(StoreAdapter):
    """A store that propagates its contents to other devices."""

    @property
    def kind(self) -> DataStore:
        return DataStore.REMOTE

    @abstractmethod
    async def flush(self) -> None:
        """Force propagation of pending changes and refresh cached remote state."""

    @abstractmethod
    def subscribe_to_external_changes(self, callback: ExternalChangeCallback) -> Subscription:
        """Receive the set of keys changed by another device.

        Writes made through this adapter must not be reported here.
        """
