"""SQLite database for vehicle count outcomes and cycle progress."""

import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from ..cycle.job import JobOutcome


class OutcomeDB:
    """Durable store for job outcomes (append-only time series) and the cycle cursor."""

    def __init__(self, db_path: Path):
        """Initialize database connection and create schema if needed."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # Writes are issued from a worker thread via asyncio.to_thread.
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._create_schema()

    def _create_schema(self):
        """Create database schema if it doesn't exist."""
        cursor = self.conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS outcomes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                camera_id TEXT NOT NULL,
                count INTEGER NOT NULL,
                success INTEGER NOT NULL,
                reason TEXT,
                completed_at TEXT NOT NULL,
                recorded_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_outcomes_camera
            ON outcomes (camera_id, completed_at)
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS cursor (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                fingerprint TEXT NOT NULL,
                next_chunk_index INTEGER NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        self.conn.commit()

    def append_batch(self, records: Sequence[JobOutcome]) -> int:
        """Insert all outcomes in a single transaction.

        Returns:
            Number of rows written
        """
        recorded_at = datetime.now(timezone.utc).isoformat()
        rows = [
            (r.identifier, r.count, int(r.success), r.reason, r.completed_at.isoformat(), recorded_at)
            for r in records
        ]

        with self._lock, self.conn:
            self.conn.executemany(
                """
                INSERT INTO outcomes (camera_id, count, success, reason, completed_at, recorded_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
                rows,
            )

        return len(rows)

    def save_cursor(self, fingerprint: str, next_chunk_index: int) -> None:
        """Persist the index of the next chunk to dispatch for the given chunk order."""
        updated_at = datetime.now(timezone.utc).isoformat()

        with self._lock, self.conn:
            self.conn.execute(
                """
                INSERT OR REPLACE INTO cursor (id, fingerprint, next_chunk_index, updated_at)
                VALUES (1, ?, ?, ?)
            """,
                (fingerprint, next_chunk_index, updated_at),
            )

    def load_cursor(self, fingerprint: Optional[str] = None) -> Optional[dict]:
        """Get the saved cursor, or None if absent or saved for a different chunk order."""
        with self._lock:
            row = self.conn.execute("SELECT * FROM cursor WHERE id = 1").fetchone()

        if row is None:
            return None
        if fingerprint is not None and row["fingerprint"] != fingerprint:
            return None
        return dict(row)

    def count_outcomes(self, camera_id: Optional[str] = None) -> int:
        """Count stored outcomes, optionally for a single camera."""
        with self._lock:
            if camera_id is None:
                row = self.conn.execute("SELECT COUNT(*) FROM outcomes").fetchone()
            else:
                row = self.conn.execute("SELECT COUNT(*) FROM outcomes WHERE camera_id = ?", (camera_id,)).fetchone()
        return row[0]

    def recent_outcomes(self, limit: int = 20) -> list[dict]:
        """Get the most recently recorded outcomes, newest first."""
        with self._lock:
            rows = self.conn.execute(
                """
                SELECT camera_id, count, success, reason, completed_at
                FROM outcomes ORDER BY id DESC LIMIT ?
            """,
                (limit,),
            ).fetchall()

        return [dict(row) | {"success": bool(row["success"])} for row in rows]

    def close(self):
        """Close database connection."""
        self.conn.close()
