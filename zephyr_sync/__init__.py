"""
zephyr-sync

Keeps a local and a remote key-value store eventually consistent.

Provides:
- Last-writer-wins conflict resolution based on per-store sync timestamps
- Serialized full and partial synchronization
- Per-key monitoring with feedback-loop suppression
- In-memory and JSON file store adapters

Usage:

    >>> from zephyr_sync import InMemoryRemoteStore, JsonFileStore, Zephyr
    >>> local = await JsonFileStore.create(Path("~/.myapp/settings.json").expanduser())
    >>> async with Zephyr(local, InMemoryRemoteStore()) as zephyr:
    ...     await zephyr.sync()
    ...     await zephyr.monitor(["theme", "volume"])

Custom stores implement ``StoreAdapter`` (local) and
``RemoteStoreAdapter`` (remote) from ``zephyr_sync.protocol``.
"""

from .config import SYNC_KEY, ZephyrConfig
from .exceptions import EngineClosedError, StoreIOError, ValidationError, ZephyrError
from .logging_utils import configure_structured_logging, get_sync_logger
from .protocol import (
    DataStore,
    RemoteStoreAdapter,
    StoreAdapter,
    Subscription,
    Value,
    validate_value,
)
from .stores import InMemoryRemoteStore, InMemoryStore, JsonFileStore
from .sync import (
    ConflictResolver,
    EventChannel,
    LifecycleEvent,
    LifecycleEventType,
    SyncResult,
    resolve,
)
from .zephyr import Zephyr

__all__ = [
    # Engine
    "Zephyr",
    "ZephyrConfig",
    "SYNC_KEY",
    "SyncResult",
    "ConflictResolver",
    "resolve",
    # Stores
    "DataStore",
    "StoreAdapter",
    "RemoteStoreAdapter",
    "Subscription",
    "Value",
    "validate_value",
    "InMemoryStore",
    "InMemoryRemoteStore",
    "JsonFileStore",
    # Events
    "EventChannel",
    "LifecycleEvent",
    "LifecycleEventType",
    # Logging
    "configure_structured_logging",
    "get_sync_logger",
    # Exceptions
    "ZephyrError",
    "StoreIOError",
    "ValidationError",
    "EngineClosedError",
]

__version__ = "0.1.0"
