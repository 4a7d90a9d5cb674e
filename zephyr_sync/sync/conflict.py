"""
Conflict resolution between the local and remote stores.

Resolution is last-writer-wins at store granularity: whichever store
completed a sync most recently, as recorded under the sync key, is
authoritative and the other store is made to match it.
"""

from datetime import UTC, datetime
from typing import Any

from ..config import SYNC_KEY
from ..logging_utils import get_sync_logger
from ..protocol import DataStore

logger = get_sync_logger("conflict")


def sync_timestamp(snapshot: dict[str, Any], sync_key: str = SYNC_KEY) -> datetime | None:
    """Return the sync timestamp in a snapshot, or None if absent or not a timestamp."""
    value = snapshot.get(sync_key)
    if not isinstance(value, datetime):
        return None
    # Naive timestamps are taken as UTC so they compare with the ones we write
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def resolve(
    local_snapshot: dict[str, Any],
    remote_snapshot: dict[str, Any],
    sync_key: str = SYNC_KEY,
) -> DataStore:
    """Pick the authoritative store from the two snapshots.

    - Both timestamps present: LOCAL only if the local one is strictly newer.
      Equal timestamps resolve to REMOTE.
    - Remote never synced: LOCAL, so the remote is bootstrapped from local.
    - Local never synced: REMOTE.
    - Neither synced: LOCAL.
    """
    local_ts = sync_timestamp(local_snapshot, sync_key)
    remote_ts = sync_timestamp(remote_snapshot, sync_key)

    if local_ts is not None and remote_ts is not None:
        return DataStore.LOCAL if local_ts > remote_ts else DataStore.REMOTE
    if remote_ts is None:
        return DataStore.LOCAL
    return DataStore.REMOTE


class ConflictResolver:
    """Resolves which store holds the newest data."""

    def __init__(self, sync_key: str = SYNC_KEY):
        self.sync_key = sync_key

    def resolve(
        self,
        local_snapshot: dict[str, Any],
        remote_snapshot: dict[str, Any],
    ) -> DataStore:
        """Pick the authoritative store; see :func:`resolve`."""
        winner = resolve(local_snapshot, remote_snapshot, self.sync_key)
        logger.debug(
            "Resolved authoritative store",
            extra={
                "authoritative": winner.value,
                "local_ts": str(sync_timestamp(local_snapshot, self.sync_key)),
                "remote_ts": str(sync_timestamp(remote_snapshot, self.sync_key)),
            },
        )
        return winner

    def remote_is_newer(
        self,
        local_snapshot: dict[str, Any],
        remote_snapshot: dict[str, Any],
    ) -> bool:
        """True only if both stores have synced and the remote did so more recently."""
        local_ts = sync_timestamp(local_snapshot, self.sync_key)
        remote_ts = sync_timestamp(remote_snapshot, self.sync_key)
        return local_ts is not None and remote_ts is not None and remote_ts > local_ts
