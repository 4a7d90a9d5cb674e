"""
Key monitor registry.

Tracks which keys are monitored for automatic sync and which of them
currently have a live observation subscription on the local store. The
sync engine suspends a key's subscription while it writes that key so the
store never reports the engine's own write back as a change.
"""

from collections.abc import Iterable

from ..config import SYNC_KEY
from ..logging_utils import SyncStatusLogger, get_sync_logger
from ..protocol import ObservationCallback, StoreAdapter, Subscription

logger = get_sync_logger("monitor")


class KeyMonitorRegistry:
    """Monitored keys and their observation subscriptions.

    Invariants:
    - subscribed keys are always a subset of monitored keys
    - the sync key is never monitored or observed
    - monitoring a key twice, or unmonitoring an unknown key, is a no-op
    """

    def __init__(
        self,
        store: StoreAdapter,
        callback: ObservationCallback,
        sync_key: str = SYNC_KEY,
        status: SyncStatusLogger | None = None,
    ):
        """Initialize the registry.

        Args:
            store: Store whose keys are observed (the local store)
            callback: Change callback registered for every subscribed key
            sync_key: Reserved key that is never observed
            status: Status logger for subscription messages
        """
        self.store = store
        self.callback = callback
        self.sync_key = sync_key
        self.status = status or SyncStatusLogger(logger)

        # dicts keep insertion order, used as ordered sets
        self._monitored: dict[str, None] = {}
        self._subscriptions: dict[str, Subscription] = {}

    @property
    def monitored_keys(self) -> tuple[str, ...]:
        return tuple(self._monitored)

    @property
    def subscribed_keys(self) -> tuple[str, ...]:
        return tuple(self._subscriptions)

    def is_monitored(self, key: str) -> bool:
        return key in self._monitored

    def is_subscribed(self, key: str) -> bool:
        return key in self._subscriptions

    def monitor(self, keys: Iterable[str]) -> list[str]:
        """Start monitoring keys.

        Returns:
            Keys that were not monitored before this call
        """
        added = []
        for key in keys:
            if key == self.sync_key:
                logger.warning(f"Ignoring request to monitor reserved key '{key}'")
                continue
            if key in self._monitored:
                continue

            self._monitored[key] = None
            self.resume(key)
            added.append(key)

        return added

    def unmonitor(self, keys: Iterable[str]) -> list[str]:
        """Stop monitoring keys and tear down their subscriptions.

        Returns:
            Keys that were monitored before this call
        """
        removed = []
        for key in keys:
            if key not in self._monitored:
                continue

            del self._monitored[key]
            self.suspend(key)
            removed.append(key)

        return removed

    def suspend(self, key: str) -> None:
        """Drop the key's subscription, if it has one."""
        subscription = self._subscriptions.pop(key, None)
        if subscription is None:
            return

        subscription.cancel()
        self.status.status(f"Unsubscribed '{key}' from observation.", key=key)

    def resume(self, key: str) -> None:
        """Subscribe a monitored key that is not currently subscribed."""
        if key == self.sync_key or key not in self._monitored or key in self._subscriptions:
            return

        self._subscriptions[key] = self.store.observe(key, self.callback)
        self.status.status(f"Subscribed '{key}' for observation.", key=key)

    def release_all(self) -> None:
        """Cancel every subscription. Monitored keys are kept."""
        for key in list(self._subscriptions):
            self.suspend(key)
