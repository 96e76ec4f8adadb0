"""Tests for the JSON snapshot source."""

import json
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from traffic_worker.acquisition.snapshot import JsonSnapshotSource
from traffic_worker.errors import NoSnapshotError, SetupError


@pytest.fixture
def snapshot_dir():
    """Create temporary snapshot directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def write_snapshot(directory: Path, name: str, payload) -> Path:
    path = directory / name
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f)
    return path


def test_latest_snapshot_picks_newest_timestamp(snapshot_dir):
    write_snapshot(
        snapshot_dir,
        "b_old.json",
        {"timestamp": "2024-01-01T00:00:00+00:00", "cameras": [{"id": "old", "image_urls": ["http://x/1.jpg"]}]},
    )
    write_snapshot(
        snapshot_dir,
        "a_new.json",
        {
            "timestamp": "2024-06-01T00:00:00+00:00",
            "cameras": [
                {"name": "Main & 1st", "imageUrls": ["http://x/2.jpg", "http://x/3.jpg"], "country": "CA"},
                {"id": "cam-2", "image_urls": "http://x/4.jpg", "city": "Toronto"},
            ],
        },
    )

    snapshot = JsonSnapshotSource(snapshot_dir).latest_snapshot()

    assert [item.identifier for item in snapshot.items] == ["Main & 1st", "cam-2"]
    assert snapshot.items[0].image_urls == ("http://x/2.jpg", "http://x/3.jpg")
    assert snapshot.items[0].country == "CA"
    assert snapshot.items[1].image_urls == ("http://x/4.jpg",)
    assert snapshot.items[1].locality == "Toronto"
    assert snapshot.timestamp.year == 2024 and snapshot.timestamp.month == 6


def test_list_snapshot_uses_file_mtime(snapshot_dir):
    write_snapshot(snapshot_dir, "cameras.json", [{"name": "A", "imageUrls": ["http://x/a.jpg"]}])

    snapshot = JsonSnapshotSource(snapshot_dir).latest_snapshot()

    assert [item.identifier for item in snapshot.items] == ["A"]
    assert snapshot.timestamp.tzinfo is not None


def test_missing_directory_raises(snapshot_dir):
    with pytest.raises(NoSnapshotError):
        JsonSnapshotSource(snapshot_dir / "missing").latest_snapshot()


def test_empty_directory_raises(snapshot_dir):
    with pytest.raises(NoSnapshotError):
        JsonSnapshotSource(snapshot_dir).latest_snapshot()


def test_empty_latest_snapshot_raises(snapshot_dir):
    write_snapshot(snapshot_dir, "empty.json", {"timestamp": "2024-01-01T00:00:00", "cameras": []})

    with pytest.raises(NoSnapshotError):
        JsonSnapshotSource(snapshot_dir).latest_snapshot()


def test_duplicate_identifiers_rejected(snapshot_dir):
    write_snapshot(
        snapshot_dir,
        "dupes.json",
        [{"name": "A", "imageUrls": ["http://x/1.jpg"]}, {"name": "A", "imageUrls": ["http://x/2.jpg"]}],
    )

    with pytest.raises(SetupError):
        JsonSnapshotSource(snapshot_dir).latest_snapshot()


def test_camera_without_urls_rejected(snapshot_dir):
    write_snapshot(snapshot_dir, "bad.json", [{"name": "A", "imageUrls": []}])

    with pytest.raises(SetupError):
        JsonSnapshotSource(snapshot_dir).latest_snapshot()


def test_corrupt_snapshot_rejected(snapshot_dir):
    (snapshot_dir / "broken.json").write_text("{invalid json", encoding="utf-8")

    with pytest.raises(SetupError):
        JsonSnapshotSource(snapshot_dir).latest_snapshot()


def test_unreadable_file_skipped_when_valid_snapshot_exists(snapshot_dir):
    (snapshot_dir / "a_old.json").write_text("{not json", encoding="utf-8")
    write_snapshot(
        snapshot_dir,
        "b_new.json",
        {"timestamp": "2024-06-01T00:00:00+00:00", "cameras": [{"id": "cam-1", "image_urls": ["http://x/1.jpg"]}]},
    )

    snapshot = JsonSnapshotSource(snapshot_dir).latest_snapshot()

    assert [item.identifier for item in snapshot.items] == ["cam-1"]


def test_list_snapshot_timestamp_read_from_filename(snapshot_dir):
    write_snapshot(snapshot_dir, "cameras_20240301T080000.json", [{"name": "newer", "imageUrls": ["http://x/a.jpg"]}])
    write_snapshot(snapshot_dir, "cameras_20240101T080000.json", [{"name": "older", "imageUrls": ["http://x/b.jpg"]}])

    snapshot = JsonSnapshotSource(snapshot_dir).latest_snapshot()

    assert [item.identifier for item in snapshot.items] == ["newer"]
    assert snapshot.timestamp == datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
