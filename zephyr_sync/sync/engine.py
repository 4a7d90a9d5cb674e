"""
Synchronization engine for the local and remote stores.

Moves values from the authoritative store to the other one:
- Push: Local → Remote, stamping the remote with a fresh sync timestamp
- Pull: Remote → Local
- Full sync covers every key; partial sync only the keys asked for

Every write is bracketed by suspending and resuming the key's observation
subscription so the engine never sees its own writes as local changes.
The engine does no scheduling of its own; callers run its operations on
the serial execution queue.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..config import ZephyrConfig
from ..exceptions import ZephyrError
from ..logging_utils import SyncStatusLogger, get_sync_logger
from ..protocol import DataStore, RemoteStoreAdapter, StoreAdapter
from .conflict import ConflictResolver
from .monitor import KeyMonitorRegistry

logger = get_sync_logger("engine")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _direction(source: DataStore) -> str:
    return "TO remote" if source is DataStore.LOCAL else "FROM remote"


@dataclass
class SyncResult:
    """Result of a sync operation."""

    source: DataStore
    written: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def destination(self) -> DataStore:
        return self.source.other

    @property
    def success(self) -> bool:
        return not self.failed and not self.errors


class SyncEngine:
    """Last-writer-wins sync between a local and a remote store.

    Handles:
    - Choosing the authoritative store from the sync timestamps
    - Pushing or pulling every key, or a given list of keys
    - Propagating deletions as absent values
    - Suspending observation around its own writes
    """

    def __init__(
        self,
        local: StoreAdapter,
        remote: RemoteStoreAdapter,
        registry: KeyMonitorRegistry,
        resolver: ConflictResolver | None = None,
        config: ZephyrConfig | None = None,
        status: SyncStatusLogger | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize the sync engine.

        Args:
            local: Local store adapter
            remote: Remote store adapter
            registry: Registry whose subscriptions are suspended around writes
            resolver: Conflict resolver (one using the config's sync key if omitted)
            config: Engine configuration
            status: Status logger for debug messages
            clock: Source of sync timestamps
        """
        self.local = local
        self.remote = remote
        self.registry = registry
        self.config = config or ZephyrConfig()
        self.resolver = resolver or ConflictResolver(self.config.sync_key)
        self.status = status or SyncStatusLogger(logger, self.config.debug_logging_enabled)
        self._clock = clock

    @property
    def sync_key(self) -> str:
        return self.config.sync_key

    def _store(self, kind: DataStore) -> StoreAdapter:
        return self.local if kind is DataStore.LOCAL else self.remote

    async def snapshots(self) -> tuple[dict[str, Any], dict[str, Any]]:
        """Read both stores."""
        return await self.local.snapshot(), await self.remote.snapshot()

    async def authoritative_store(self) -> DataStore:
        """Resolve which store currently holds the newest data."""
        local_snapshot, remote_snapshot = await self.snapshots()
        return self.resolver.resolve(local_snapshot, remote_snapshot)

    async def full_sync(self) -> SyncResult:
        """Make the non-authoritative store match the authoritative one.

        Keys only present in the destination are deleted there.
        """
        start = time.monotonic()
        try:
            local_snapshot, remote_snapshot = await self.snapshots()
        except ZephyrError as e:
            return self._aborted(DataStore.LOCAL, e, start)

        source = self.resolver.resolve(local_snapshot, remote_snapshot)
        snapshots = {DataStore.LOCAL: local_snapshot, DataStore.REMOTE: remote_snapshot}
        keys = list(dict.fromkeys([*snapshots[source], *snapshots[source.other]]))

        return await self._transfer_all(source, keys, snapshots, start)

    async def sync_keys(self, keys: Iterable[str]) -> SyncResult:
        """Sync only the given keys, in the direction picked by the resolver.

        A key missing from the authoritative store is deleted from the other.
        """
        start = time.monotonic()
        keys = list(keys)
        try:
            local_snapshot, remote_snapshot = await self.snapshots()
        except ZephyrError as e:
            return self._aborted(DataStore.LOCAL, e, start)

        source = self.resolver.resolve(local_snapshot, remote_snapshot)
        if not keys:
            return SyncResult(source=source)

        snapshots = {DataStore.LOCAL: local_snapshot, DataStore.REMOTE: remote_snapshot}
        return await self._transfer_all(source, keys, snapshots, start)

    async def sync_keys_from(self, keys: Iterable[str], source: DataStore) -> SyncResult:
        """Sync the given keys from a known source, skipping conflict resolution."""
        keys = list(keys)
        if not keys:
            # Nothing to copy, so the remote must not get a fresh timestamp
            return SyncResult(source=source)

        start = time.monotonic()
        try:
            local_snapshot, remote_snapshot = await self.snapshots()
        except ZephyrError as e:
            return self._aborted(source, e, start)

        snapshots = {DataStore.LOCAL: local_snapshot, DataStore.REMOTE: remote_snapshot}
        return await self._transfer_all(source, keys, snapshots, start)

    async def stamp(self, kind: DataStore) -> datetime:
        """Write a fresh sync timestamp into a store."""
        now = self._clock()
        await self._store(kind).write(self.sync_key, now)
        return now

    async def _transfer_all(
        self,
        source: DataStore,
        keys: list[str],
        snapshots: dict[DataStore, dict[str, Any]],
        start: float,
    ) -> SyncResult:
        result = SyncResult(source=source)
        source_snapshot = snapshots[source]
        destination_snapshot = snapshots[source.other]
        pushing = source is DataStore.LOCAL

        self.status.status(
            f"Started synchronization {_direction(source)}", destination=source.other.value
        )

        if pushing:
            # The remote gets a new timestamp, never the local one
            keys = [key for key in keys if key != self.sync_key]
            try:
                await self.stamp(DataStore.REMOTE)
            except ZephyrError as e:
                logger.warning(f"Failed to stamp remote sync timestamp: {e}")
                result.errors.append(f"stamp: {e}")

        for key in keys:
            value = source_snapshot.get(key)
            if value is None and key not in destination_snapshot:
                continue
            await self._transfer(key, value, source, result)

        self.status.status(
            f"Finished synchronization {_direction(source)}", destination=source.other.value
        )
        result.duration_ms = int((time.monotonic() - start) * 1000)
        return result

    async def _transfer(
        self,
        key: str,
        value: Any,
        source: DataStore,
        result: SyncResult,
    ) -> None:
        """Write one key into the destination with its observation suspended."""
        destination = self._store(source.other)

        self.registry.suspend(key)
        try:
            if value is None:
                await destination.delete(key)
                result.deleted.append(key)
            else:
                await destination.write(key, value)
                result.written.append(key)

            self.status.status(
                f"Synchronized key '{key}' with value '{value}' {_direction(source)}",
                key=key,
                destination=source.other.value,
            )

        except ZephyrError as e:
            logger.warning(f"Failed to sync key '{key}' {_direction(source)}: {e}")
            result.failed.append(key)
            return
        finally:
            self.registry.resume(key)

        if source is DataStore.LOCAL and self.config.flush_remote_on_every_change:
            try:
                await self.remote.flush()
            except ZephyrError as e:
                logger.warning(f"Failed to flush remote store after '{key}': {e}")
                result.errors.append(f"flush {key}: {e}")

    def _aborted(self, source: DataStore, error: ZephyrError, start: float) -> SyncResult:
        logger.warning(f"Sync skipped, could not read stores: {error}")
        return SyncResult(
            source=source,
            errors=[str(error)],
            duration_ms=int((time.monotonic() - start) * 1000),
        )
