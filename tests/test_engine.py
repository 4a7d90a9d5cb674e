"""Tests for the sync engine.

Covers push/pull direction, convergence, deletion propagation,
idempotence, timestamp handling and per-key failures.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from zephyr_sync import SYNC_KEY, DataStore, ZephyrConfig
from zephyr_sync.sync.engine import SyncEngine
from zephyr_sync.sync.monitor import KeyMonitorRegistry

from .fakes import FailingRemoteStore, FakeClock, RecordingRemoteStore, RecordingStore

T1 = datetime(2025, 6, 1, tzinfo=UTC)
T2 = datetime(2025, 7, 1, tzinfo=UTC)


def make_engine(
    local: RecordingStore,
    remote: RecordingRemoteStore,
    clock: FakeClock,
    **config_kwargs,
) -> SyncEngine:
    registry = KeyMonitorRegistry(local, lambda *args: None)
    return SyncEngine(
        local,
        remote,
        registry,
        config=ZephyrConfig(**config_kwargs),
        clock=clock,
    )


class TestFullSync:
    """Tests for full_sync()."""

    async def test_bootstraps_empty_remote(self, clock: FakeClock) -> None:
        """Local data is pushed to a remote that never synced."""
        local = RecordingStore({"a": 1, SYNC_KEY: T1})
        remote = RecordingRemoteStore()
        engine = make_engine(local, remote, clock)

        result = await engine.full_sync()

        assert result.source is DataStore.LOCAL
        assert result.success
        assert remote.get("a") == 1
        assert remote.get(SYNC_KEY) > T1
        assert remote.get(SYNC_KEY) == clock.now

    async def test_remote_stamped_before_any_key(self, clock: FakeClock) -> None:
        """The fresh timestamp is the first thing written to the remote."""
        local = RecordingStore({"a": 1, "b": 2})
        remote = RecordingRemoteStore()
        engine = make_engine(local, remote, clock)

        await engine.full_sync()

        assert remote.operations[0] == ("write", SYNC_KEY)
        assert remote.operations.count(("write", SYNC_KEY)) == 1

    async def test_pulls_when_remote_newer(self, clock: FakeClock) -> None:
        """Remote data and timestamp are copied to local."""
        local = RecordingStore({"a": 1, SYNC_KEY: T1})
        remote = RecordingRemoteStore({"a": 2, "b": [1, 2], SYNC_KEY: T2})
        engine = make_engine(local, remote, clock)

        result = await engine.full_sync()

        assert result.source is DataStore.REMOTE
        assert local.get("a") == 2
        assert local.get("b") == [1, 2]
        assert local.get(SYNC_KEY) == T2
        assert remote.operations == []

    async def test_equal_timestamps_pull(self, clock: FakeClock) -> None:
        """A tie is resolved in favour of the remote."""
        local = RecordingStore({"a": "local", SYNC_KEY: T1})
        remote = RecordingRemoteStore({"a": "remote", SYNC_KEY: T1})
        engine = make_engine(local, remote, clock)

        result = await engine.full_sync()

        assert result.source is DataStore.REMOTE
        assert local.get("a") == "remote"

    async def test_convergence_with_mixed_values(self, clock: FakeClock) -> None:
        """Every value type arrives unchanged."""
        values = {
            "s": "text",
            "n": 3.5,
            "i": 7,
            "flag": False,
            "when": T1,
            "blob": b"\x00\x01",
            "list": ["x", 1],
            "map": {"nested": {"deep": True}},
        }
        local = RecordingStore({**values, SYNC_KEY: T2})
        remote = RecordingRemoteStore({SYNC_KEY: T1})
        engine = make_engine(local, remote, clock)

        await engine.full_sync()

        for key, value in values.items():
            assert remote.get(key) == value

    async def test_deletion_propagates(self, clock: FakeClock) -> None:
        """Keys missing from the authoritative store are removed from the other."""
        local = RecordingStore({"keep": 1, "stale": 2, SYNC_KEY: T1})
        remote = RecordingRemoteStore({"keep": 1, SYNC_KEY: T2})
        engine = make_engine(local, remote, clock)

        result = await engine.full_sync()

        assert "stale" not in local
        assert result.deleted == ["stale"]
        assert local.get("keep") == 1

    async def test_deletion_propagates_on_push(self, clock: FakeClock) -> None:
        local = RecordingStore({"keep": 1, SYNC_KEY: T2})
        remote = RecordingRemoteStore({"keep": 1, "gone": 5, SYNC_KEY: T1})
        engine = make_engine(local, remote, clock)

        await engine.full_sync()

        assert "gone" not in remote
        assert remote.get("keep") == 1

    async def test_idempotent(self, clock: FakeClock) -> None:
        """A second full sync changes nothing but timestamps."""
        local = RecordingStore({"a": 1, "b": "two", SYNC_KEY: T1})
        remote = RecordingRemoteStore({"c": 3})
        engine = make_engine(local, remote, clock)

        await engine.full_sync()
        local_before = {k: local.get(k) for k in local.data_keys()}
        remote_before = {k: remote.get(k) for k in remote.data_keys()}

        await engine.full_sync()

        assert {k: local.get(k) for k in local.data_keys()} == local_before
        assert {k: remote.get(k) for k in remote.data_keys()} == remote_before
        assert local_before == remote_before == {"a": 1, "b": "two"}

    async def test_pull_writes_nothing_to_remote(self, clock: FakeClock) -> None:
        """Pulling never causes a write back to the source."""
        local = RecordingStore({SYNC_KEY: T1})
        remote = RecordingRemoteStore({"a": 1, "b": 2, SYNC_KEY: T2})
        engine = make_engine(local, remote, clock)
        engine.registry.monitor(["a", "b"])

        await engine.full_sync()

        assert remote.operations == []


class TestSyncKeys:
    """Tests for sync_keys() and sync_keys_from()."""

    async def test_only_listed_keys_are_pushed(self, clock: FakeClock) -> None:
        local = RecordingStore({"a": 1, "b": 2, SYNC_KEY: T2})
        remote = RecordingRemoteStore({SYNC_KEY: T1})
        engine = make_engine(local, remote, clock)

        result = await engine.sync_keys(["a"])

        assert result.written == ["a"]
        assert remote.get("a") == 1
        assert "b" not in remote

    async def test_absent_source_key_deletes_destination(self, clock: FakeClock) -> None:
        """A key missing at the source is deleted, not an error."""
        local = RecordingStore({"a": 1, SYNC_KEY: T1})
        remote = RecordingRemoteStore({SYNC_KEY: T2})
        engine = make_engine(local, remote, clock)

        result = await engine.sync_keys(["a"])

        assert result.success
        assert "a" not in local
        assert result.deleted == ["a"]

    async def test_key_absent_everywhere_is_skipped(self, clock: FakeClock) -> None:
        local = RecordingStore({SYNC_KEY: T1})
        remote = RecordingRemoteStore({SYNC_KEY: T2})
        engine = make_engine(local, remote, clock)

        result = await engine.sync_keys(["ghost"])

        assert result.success
        assert result.written == [] and result.deleted == []
        assert local.operations == []

    async def test_keyed_pull_leaves_local_timestamp(self, clock: FakeClock) -> None:
        """Only the listed keys are pulled; the sync key is untouched."""
        local = RecordingStore({"a": 1, SYNC_KEY: T1})
        remote = RecordingRemoteStore({"a": 9, SYNC_KEY: T2})
        engine = make_engine(local, remote, clock)

        await engine.sync_keys_from(["a"], DataStore.REMOTE)

        assert local.get("a") == 9
        assert local.get(SYNC_KEY) == T1

    async def test_keyed_push_stamps_remote(self, clock: FakeClock) -> None:
        local = RecordingStore({"a": 1})
        remote = RecordingRemoteStore({SYNC_KEY: T2})
        engine = make_engine(local, remote, clock)

        await engine.sync_keys_from(["a"], DataStore.LOCAL)

        assert remote.get("a") == 1
        assert remote.get(SYNC_KEY) == clock.now

    async def test_sync_key_is_never_pushed_as_data(self, clock: FakeClock) -> None:
        """Asking to push the sync key still writes a fresh timestamp."""
        local = RecordingStore({SYNC_KEY: T1})
        remote = RecordingRemoteStore()
        engine = make_engine(local, remote, clock)

        await engine.sync_keys_from([SYNC_KEY], DataStore.LOCAL)

        assert remote.get(SYNC_KEY) == clock.now

    async def test_empty_key_list_writes_nothing(self, clock: FakeClock) -> None:
        """An empty key list neither stamps the remote nor copies anything."""
        local = RecordingStore({"a": 1, SYNC_KEY: T2})
        remote = RecordingRemoteStore({SYNC_KEY: T1})
        engine = make_engine(local, remote, clock)

        pushed = await engine.sync_keys([])
        pushed_from = await engine.sync_keys_from([], DataStore.LOCAL)

        assert pushed.source is DataStore.LOCAL
        assert pushed.written == [] and pushed_from.written == []
        assert remote.operations == []
        assert remote.get(SYNC_KEY) == T1
        assert clock.calls == 0


class TestFlushAndFailures:
    """Tests for remote flushing and best-effort error handling."""

    async def test_flush_after_every_pushed_key(self, clock: FakeClock) -> None:
        local = RecordingStore({"a": 1, "b": 2})
        remote = RecordingRemoteStore()
        engine = make_engine(local, remote, clock)

        await engine.full_sync()

        assert remote.flush_count == 2

    async def test_flush_disabled(self, clock: FakeClock) -> None:
        local = RecordingStore({"a": 1, "b": 2})
        remote = RecordingRemoteStore()
        engine = make_engine(local, remote, clock, flush_remote_on_every_change=False)

        await engine.full_sync()

        assert remote.flush_count == 0

    async def test_pull_does_not_flush(self, clock: FakeClock) -> None:
        local = RecordingStore({SYNC_KEY: T1})
        remote = RecordingRemoteStore({"a": 1, SYNC_KEY: T2})
        engine = make_engine(local, remote, clock)

        await engine.full_sync()

        assert remote.flush_count == 0

    async def test_failed_key_is_skipped(self, clock: FakeClock) -> None:
        """One failing write does not stop the others and is not retried."""
        local = RecordingStore({"bad": 1, "good": 2})
        remote = FailingRemoteStore(fail_keys={"bad"})
        engine = make_engine(local, remote, clock)
        engine.registry.monitor(["bad"])

        result = await engine.full_sync()

        assert not result.success
        assert result.failed == ["bad"]
        assert remote.get("good") == 2
        assert "bad" not in remote
        assert engine.registry.is_subscribed("bad")

    async def test_failed_stamp_is_reported(self, clock: FakeClock) -> None:
        local = RecordingStore({"a": 1})
        remote = FailingRemoteStore(fail_keys={SYNC_KEY})
        engine = make_engine(local, remote, clock)

        result = await engine.full_sync()

        assert result.errors
        assert remote.get("a") == 1

    async def test_status_messages_logged_when_enabled(
        self, clock: FakeClock, caplog: pytest.LogCaptureFixture
    ) -> None:
        local = RecordingStore({"a": 1})
        remote = RecordingRemoteStore()
        engine = make_engine(local, remote, clock, debug_logging_enabled=True)

        with caplog.at_level("INFO", logger="zephyr_sync"):
            await engine.full_sync()

        messages = [r.getMessage() for r in caplog.records]
        assert "[Zephyr] Started synchronization TO remote" in messages
        assert "[Zephyr] Synchronized key 'a' with value '1' TO remote" in messages
        assert "[Zephyr] Finished synchronization TO remote" in messages

    async def test_status_messages_silent_by_default(
        self, clock: FakeClock, caplog: pytest.LogCaptureFixture
    ) -> None:
        local = RecordingStore({"a": 1})
        remote = RecordingRemoteStore()
        engine = make_engine(local, remote, clock)

        with caplog.at_level("INFO", logger="zephyr_sync"):
            await engine.full_sync()

        assert not [r for r in caplog.records if r.getMessage().startswith("[Zephyr]")]
