"""Progress inspection CLI command."""

from pathlib import Path

from traffic_worker.storage.db import OutcomeDB


def cmd_status(args):
    """Show the saved cursor and the most recent outcomes."""
    db_path = Path(args.db)
    if not db_path.exists():
        print(f"Database not found: {db_path}")
        return 1

    db = OutcomeDB(db_path)
    try:
        cursor = db.load_cursor()
        if cursor:
            print(f"Next chunk: {cursor['next_chunk_index']} (updated {cursor['updated_at']})")
        else:
            print("No cycle progress recorded")

        print(f"Outcomes recorded: {db.count_outcomes()}")

        recent = db.recent_outcomes(args.limit)
        if recent:
            print(f"\nLast {len(recent)} outcomes:")
        for row in recent:
            if row["success"]:
                print(f"  ✓ {row['camera_id']}: {row['count']} vehicles at {row['completed_at']}")
            else:
                print(f"  ✗ {row['camera_id']}: {row['reason'] or 'failed'} at {row['completed_at']}")
    finally:
        db.close()

    return 0


def setup_status_commands(subparsers):
    """Setup status subcommands."""
    status_parser = subparsers.add_parser("status", help="Show cycle progress and recent outcomes")
    status_parser.add_argument("--db", default="data/vehicle_counts.db", help="Path to the SQLite outcome database")
    status_parser.add_argument("--limit", type=int, default=10, help="Number of recent outcomes to show")
    status_parser.set_defaults(func=cmd_status)
