"""
Public entry point for zephyr-sync.

``Zephyr`` owns the two store adapters, the monitored key set and the
serial queue, and wires change events from the stores and the host's
lifecycle channel into the sync engine.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .config import ZephyrConfig
from .logging_utils import SyncStatusLogger, get_sync_logger
from .protocol import DataStore, RemoteStoreAdapter, StoreAdapter, Subscription
from .stores import InMemoryRemoteStore, InMemoryStore, JsonFileStore
from .sync.conflict import ConflictResolver
from .sync.engine import SyncEngine, SyncResult
from .sync.events import EventChannel
from .sync.monitor import KeyMonitorRegistry
from .sync.notifier import ChangeNotifier
from .sync.queue import SerialExecutionQueue

logger = get_sync_logger("zephyr")


def _key_list(keys: Iterable[str] | str) -> list[str]:
    if isinstance(keys, str):
        return [keys]
    return list(keys)


class Zephyr:
    """Keeps a local and a remote key-value store eventually consistent.

    Explicit syncs and monitor changes wait for the serial queue; changes
    detected on monitored keys and remote notifications are synced in the
    background.

    Example:
        >>> async with Zephyr(local, remote) as zephyr:
        ...     await zephyr.sync()
        ...     await zephyr.monitor(["theme"])
        ...     await local.write("theme", "dark")  # pushed in the background
    """

    def __init__(
        self,
        local: StoreAdapter,
        remote: RemoteStoreAdapter,
        config: ZephyrConfig | None = None,
        events: EventChannel | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the engine. Call ``start()`` or use ``async with``.

        Args:
            local: Local store adapter (observed for changes)
            remote: Remote store adapter
            config: Engine configuration
            events: Lifecycle event channel to subscribe to (a private one if omitted)
            clock: Source of sync timestamps
        """
        self.local = local
        self.remote = remote
        self.config = config or ZephyrConfig()
        self.events = events or EventChannel()

        self.status = SyncStatusLogger(logger, self.config.debug_logging_enabled)
        self.queue = SerialExecutionQueue()
        self.registry = KeyMonitorRegistry(
            local, self._on_local_change, self.config.sync_key, self.status
        )
        self.engine = SyncEngine(
            local,
            remote,
            self.registry,
            ConflictResolver(self.config.sync_key),
            self.config,
            self.status,
            clock or (lambda: datetime.now(UTC)),
        )
        self.notifier = ChangeNotifier(self.engine, self.registry, self.queue)

        self._subscriptions: list[Subscription] = []
        self._started = False
        self._closed = False

    @classmethod
    async def create(
        cls,
        config: ZephyrConfig | None = None,
        remote: RemoteStoreAdapter | None = None,
        events: EventChannel | None = None,
    ) -> Zephyr:
        """Create and start an engine from configuration.

        The local store is a ``JsonFileStore`` when ``config.local_path`` is
        set and in-memory otherwise; the remote defaults to in-memory.
        """
        config = config or ZephyrConfig()
        if config.local_path:
            local: StoreAdapter = await JsonFileStore.create(Path(config.local_path))
        else:
            local = InMemoryStore()

        zephyr = cls(local, remote or InMemoryRemoteStore(), config, events)
        await zephyr.start()
        return zephyr

    # =========================================================================
    # Configuration flags
    # =========================================================================

    @property
    def debug_logging_enabled(self) -> bool:
        return self.config.debug_logging_enabled

    @debug_logging_enabled.setter
    def debug_logging_enabled(self, enabled: bool) -> None:
        self.config.debug_logging_enabled = enabled
        self.status.enabled = enabled

    @property
    def flush_remote_on_every_change(self) -> bool:
        return self.config.flush_remote_on_every_change

    @flush_remote_on_every_change.setter
    def flush_remote_on_every_change(self, enabled: bool) -> None:
        self.config.flush_remote_on_every_change = enabled

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start the queue, subscribe to change events and refresh the remote."""
        if self._started:
            return
        self._started = True

        self.queue.start()
        self._subscriptions.append(
            self.remote.subscribe_to_external_changes(self.notifier.on_external_change)
        )
        self._subscriptions.append(self.events.subscribe(self.notifier.handle_event))

        if self.config.monitored_keys:
            await self.monitor(self.config.monitored_keys)

        await self.queue.run(self.notifier.refresh_remote, "initial remote refresh")
        logger.debug("Zephyr started")

    async def close(self) -> None:
        """Stop listening, run what is queued and release every subscription."""
        if self._closed:
            return
        self._closed = True

        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

        await self.queue.close()
        self.registry.release_all()
        logger.debug("Zephyr closed")

    async def __aenter__(self) -> Zephyr:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # =========================================================================
    # Public API
    # =========================================================================

    async def sync(self, keys: Iterable[str] | str | None = None) -> SyncResult:
        """Synchronize the stores and wait for it to finish.

        Args:
            keys: Keys to synchronize. If omitted, every key is synchronized.

        Returns:
            Result of the sync operation
        """
        await self.start()
        if keys is None:
            return await self.queue.run(self.engine.full_sync, "full sync")

        key_list = _key_list(keys)
        return await self.queue.run(lambda: self.engine.sync_keys(key_list), "sync keys")

    async def monitor(self, keys: Iterable[str] | str) -> list[str]:
        """Start monitoring keys; changes to them are synced automatically.

        Returns:
            Keys that were newly monitored
        """
        key_list = _key_list(keys)

        async def job() -> list[str]:
            return self.registry.monitor(key_list)

        await self.start()
        return await self.queue.run(job, "monitor keys")

    async def unmonitor(self, keys: Iterable[str] | str) -> list[str]:
        """Stop monitoring keys.

        Returns:
            Keys that were monitored before the call
        """
        key_list = _key_list(keys)

        async def job() -> list[str]:
            return self.registry.unmonitor(key_list)

        await self.start()
        return await self.queue.run(job, "unmonitor keys")

    async def wait_idle(self) -> None:
        """Wait until all background sync work queued so far has finished."""
        await self.queue.join()

    @property
    def monitored_keys(self) -> tuple[str, ...]:
        return self.registry.monitored_keys

    @property
    def subscribed_keys(self) -> tuple[str, ...]:
        return self.registry.subscribed_keys

    def _on_local_change(self, store: DataStore, key: str, value: Any) -> None:
        self.notifier.on_local_change(store, key, value)
