"""Test doubles for store adapters and the sync clock."""

from datetime import UTC, datetime, timedelta
from typing import Any

from zephyr_sync import SYNC_KEY, StoreIOError
from zephyr_sync.stores import InMemoryRemoteStore, InMemoryStore

T0 = datetime(2026, 1, 1, tzinfo=UTC)


class FakeClock:
    """Clock that advances one second per call."""

    def __init__(self, start: datetime = T0):
        self.now = start
        self.calls = 0

    def __call__(self) -> datetime:
        self.calls += 1
        self.now = self.now + timedelta(seconds=1)
        return self.now


class _RecordingMixin:
    """Records ("write" | "delete", key) for every mutation."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.operations: list[tuple[str, str]] = []

    async def write(self, key: str, value: Any) -> None:
        if value is not None:
            self.operations.append(("write", key))
        await super().write(key, value)

    async def delete(self, key: str) -> None:
        self.operations.append(("delete", key))
        await super().delete(key)

    def data_keys(self) -> set[str]:
        """Keys other than the sync timestamp."""
        return {k for k in self._data if k != SYNC_KEY}


class RecordingStore(_RecordingMixin, InMemoryStore):
    pass


class RecordingRemoteStore(_RecordingMixin, InMemoryRemoteStore):
    pass


class FailingRemoteStore(RecordingRemoteStore):
    """Remote store whose writes fail for selected keys."""

    def __init__(self, *args: Any, fail_keys: set[str] | None = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.fail_keys = fail_keys or set()

    async def write(self, key: str, value: Any) -> None:
        if key in self.fail_keys:
            raise StoreIOError("write", key)
        await super().write(key, value)
