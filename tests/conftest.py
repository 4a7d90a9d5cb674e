"""
Shared test configuration and fixtures.

Provides recording store adapters, a deterministic clock for sync
timestamps, and a started Zephyr engine wired to both.
"""

from collections.abc import AsyncIterator

import pytest

from zephyr_sync import EventChannel, Zephyr, ZephyrConfig

from .fakes import FakeClock, RecordingRemoteStore, RecordingStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def local() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def remote() -> RecordingRemoteStore:
    return RecordingRemoteStore()


@pytest.fixture
def events() -> EventChannel:
    return EventChannel()


@pytest.fixture
def config() -> ZephyrConfig:
    return ZephyrConfig(debug_logging_enabled=True)


@pytest.fixture
async def zephyr(
    local: RecordingStore,
    remote: RecordingRemoteStore,
    config: ZephyrConfig,
    events: EventChannel,
    clock: FakeClock,
) -> AsyncIterator[Zephyr]:
    """A started engine over the recording stores."""
    engine = Zephyr(local, remote, config, events, clock)
    await engine.start()
    yield engine
    await engine.close()
