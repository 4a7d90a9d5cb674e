"""
Change notifier.

Turns change events into queued sync jobs:
- Remote reports keys changed by another device → pull monitored keys
- App resumed → refresh the remote store's cached state
- Monitored local key changed → stamp local, push the key

All jobs are fire-and-forget; none of the handlers block their caller.
"""

from typing import Any

from ..exceptions import ZephyrError
from ..logging_utils import get_sync_logger
from ..protocol import DataStore
from .engine import SyncEngine, SyncResult
from .events import LifecycleEvent, LifecycleEventType
from .monitor import KeyMonitorRegistry
from .queue import SerialExecutionQueue

logger = get_sync_logger("notifier")


class ChangeNotifier:
    """Schedules partial syncs in response to change events."""

    def __init__(
        self,
        engine: SyncEngine,
        registry: KeyMonitorRegistry,
        queue: SerialExecutionQueue,
    ):
        self.engine = engine
        self.registry = registry
        self.queue = queue

    def handle_event(self, event: LifecycleEvent) -> None:
        """Route a lifecycle event from the event channel."""
        if event.event_type == LifecycleEventType.APP_RESUMED:
            self.on_app_resumed()
        elif event.event_type == LifecycleEventType.EXTERNAL_STORE_CHANGED:
            self.on_external_change(set(event.keys))

    def on_external_change(self, keys: set[str]) -> None:
        """The remote store reports keys changed by another device."""
        if self.queue.closed:
            return
        changed = set(keys)
        self.queue.submit(lambda: self.pull_external_change(changed), "pull external change")

    def on_app_resumed(self) -> None:
        """The host application came back to the foreground."""
        if self.queue.closed:
            return
        self.queue.submit(self.refresh_remote, "refresh remote")

    def on_local_change(self, store: DataStore, key: str, value: Any) -> None:
        """Observation callback registered for every subscribed key."""
        if self.queue.closed or not self.registry.is_monitored(key):
            return
        self.queue.submit(lambda: self.push_local_change(key, store), f"push '{key}'")

    async def pull_external_change(self, keys: set[str]) -> SyncResult | None:
        """Pull the monitored keys among ``keys`` if the remote synced last.

        A notification is ignored unless the remote timestamp is strictly
        newer than the local one, which filters out echoes of our own pushes
        and stale or duplicate notifications.
        """
        try:
            local_snapshot, remote_snapshot = await self.engine.snapshots()
        except ZephyrError as e:
            logger.warning(f"Ignoring external change, could not read stores: {e}")
            return None

        if not self.engine.resolver.remote_is_newer(local_snapshot, remote_snapshot):
            logger.debug("Ignoring external change, remote is not newer")
            return None

        monitored = [key for key in self.registry.monitored_keys if key in keys]
        if not monitored:
            return None

        return await self.engine.sync_keys_from(monitored, DataStore.REMOTE)

    async def refresh_remote(self) -> None:
        try:
            await self.engine.remote.flush()
        except ZephyrError as e:
            logger.warning(f"Failed to refresh remote store: {e}")

    async def push_local_change(self, key: str, origin: DataStore) -> SyncResult | None:
        """Push a changed key, unless its subscription went away meanwhile."""
        if not self.registry.is_subscribed(key):
            return None

        if origin is DataStore.LOCAL:
            try:
                await self.engine.stamp(DataStore.LOCAL)
            except ZephyrError as e:
                logger.warning(f"Failed to stamp local sync timestamp: {e}")

        return await self.engine.sync_keys_from([key], DataStore.LOCAL)
