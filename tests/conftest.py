"""Shared fixtures for traffic worker tests."""

import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from traffic_worker.cycle.job import Snapshot, WorkItem
from traffic_worker.storage.db import OutcomeDB


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records delays and advances a fake clock."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        self.clock.advance(seconds)


class StaticSnapshotSource:
    def __init__(self, snapshot: Snapshot):
        self.snapshot = snapshot

    def latest_snapshot(self) -> Snapshot:
        return self.snapshot


def make_items(*identifiers: str) -> tuple:
    return tuple(
        WorkItem(identifier=i, image_urls=(f"http://cams.test/{i}/1.jpg", f"http://cams.test/{i}/2.jpg"))
        for i in identifiers
    )


def make_snapshot(*identifiers: str) -> Snapshot:
    return Snapshot(items=make_items(*identifiers), timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_sleep(clock):
    return RecordingSleep(clock)


@pytest.fixture
def db():
    """Create a temporary outcome database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        database = OutcomeDB(Path(tmpdir) / "test.db")
        yield database
        database.close()
