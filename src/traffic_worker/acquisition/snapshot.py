"""Camera snapshots stored as JSON files in a directory."""

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..cycle.job import Snapshot, WorkItem
from ..errors import NoSnapshotError, SetupError
from ..utils.logger import logger as LOGGER

# cameras_20240501T120000.json
FILENAME_TIMESTAMP = re.compile(r"(\d{8}T\d{6})")


def _parse_timestamp(value: Any, path: Path) -> datetime:
    if value is None:
        match = FILENAME_TIMESTAMP.search(path.stem)
        if match:
            try:
                return datetime.strptime(match.group(1), "%Y%m%dT%H%M%S").replace(tzinfo=timezone.utc)
            except ValueError:
                pass
        return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)

    try:
        timestamp = datetime.fromisoformat(str(value))
    except ValueError as e:
        raise SetupError(f"Invalid snapshot timestamp in {path.name}: {value!r}") from e

    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def parse_camera(entry: Any, path: Path) -> WorkItem:
    """Build a work item from one snapshot entry.

    Accepts both ``name``/``imageUrls`` and ``id``/``image_urls`` keys.
    """
    if not isinstance(entry, dict):
        raise SetupError(f"Camera entry in {path.name} must be an object, got {type(entry).__name__}")

    identifier = entry.get("id") or entry.get("name")
    if not identifier or not isinstance(identifier, str):
        raise SetupError(f"Camera entry in {path.name} has no identifier: {entry}")

    urls = entry.get("image_urls", entry.get("imageUrls"))
    if isinstance(urls, str):
        urls = [urls]
    if not urls or not all(isinstance(u, str) and u for u in urls):
        raise SetupError(f"Camera {identifier} in {path.name} has no image URLs")

    return WorkItem(
        identifier=identifier,
        image_urls=tuple(urls),
        country=entry.get("country"),
        locality=entry.get("locality") or entry.get("city"),
    )


def load_snapshot_file(path: Path) -> Snapshot:
    """Load a single snapshot file.

    The file holds either a list of camera entries (timestamped by the file's
    modification time) or an object with ``timestamp`` and ``cameras``.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise SetupError(f"Failed to read snapshot {path}: {e}") from e

    if isinstance(data, list):
        entries, timestamp = data, _parse_timestamp(None, path)
    elif isinstance(data, dict):
        entries, timestamp = data.get("cameras", []), _parse_timestamp(data.get("timestamp"), path)
    else:
        raise SetupError(f"Snapshot {path} must be a JSON list or object")

    items = [parse_camera(entry, path) for entry in entries]

    seen = set()
    for item in items:
        if item.identifier in seen:
            raise SetupError(f"Duplicate camera identifier in {path.name}: {item.identifier}")
        seen.add(item.identifier)

    return Snapshot(items=tuple(items), timestamp=timestamp)


class JsonSnapshotSource:
    """Reads the newest snapshot from a directory of JSON files."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def latest_snapshot(self) -> Snapshot:
        """Return the snapshot with the newest timestamp.

        Files that cannot be read or parsed are skipped with a warning.

        Raises:
            NoSnapshotError: If the directory is missing or holds no usable, non-empty snapshot.
        """
        if not self.directory.is_dir():
            raise NoSnapshotError(f"Snapshot directory not found: {self.directory}")

        snapshots = []
        for path in sorted(self.directory.glob("*.json")):
            try:
                snapshots.append(load_snapshot_file(path))
            except SetupError as e:
                LOGGER.warning(f"Skipping unusable snapshot {path.name}: {e}")

        if not snapshots:
            raise NoSnapshotError(f"No usable snapshots in {self.directory}")

        latest = max(snapshots, key=lambda s: s.timestamp)
        if not latest.items:
            raise NoSnapshotError(f"Latest snapshot ({latest.timestamp.isoformat()}) has no cameras")
        return latest
