"""
Sync module.

Conflict resolution, the serial execution queue, key monitoring and the
engine that keeps a local and a remote store consistent.
"""

from .conflict import ConflictResolver, resolve, sync_timestamp
from .engine import SyncEngine, SyncResult
from .events import EventChannel, LifecycleEvent, LifecycleEventType
from .monitor import KeyMonitorRegistry
from .notifier import ChangeNotifier
from .queue import SerialExecutionQueue

__all__ = [
    "ChangeNotifier",
    "ConflictResolver",
    "EventChannel",
    "KeyMonitorRegistry",
    "LifecycleEvent",
    "LifecycleEventType",
    "SerialExecutionQueue",
    "SyncEngine",
    "SyncResult",
    "resolve",
    "sync_timestamp",
]
