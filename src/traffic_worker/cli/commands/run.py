"""Worker loop CLI command."""

import asyncio
from pathlib import Path

import httpx

from traffic_worker.acquisition.fetcher import ImageFetcher
from traffic_worker.acquisition.snapshot import JsonSnapshotSource
from traffic_worker.config import WorkerConfig, load_config
from traffic_worker.cycle.coordinator import JobCycleCoordinator
from traffic_worker.errors import ConfigError, SetupError
from traffic_worker.inference.client import InferenceClient
from traffic_worker.storage.db import OutcomeDB
from traffic_worker.utils.logger import configure_logging
from traffic_worker.utils.logger import logger as LOGGER
from traffic_worker.worker import Worker, install_signal_handlers


def config_from_args(args) -> WorkerConfig:
    """Merge config file, environment and command-line flags."""
    overrides = {
        "chunk_size": args.chunk_size,
        "cycle_seconds": args.cycle_seconds,
        "db_path": args.db,
        "snapshot_dir": args.snapshots,
        "api_base_url": args.api_url,
        "log_level": args.log_level,
    }
    if args.no_shuffle:
        overrides["shuffle"] = False

    return load_config(Path(args.config) if args.config else None, overrides=overrides)


async def run_worker(config: WorkerConfig) -> int:
    """Set up the coordinator, check the inference API and loop until signalled."""
    db = OutcomeDB(config.db_path)
    try:
        coordinator = JobCycleCoordinator(
            snapshot_source=JsonSnapshotSource(config.snapshot_dir),
            store=db,
            chunk_size=config.chunk_size,
            cycle_seconds=config.cycle_seconds,
            shuffle=config.shuffle,
            shuffle_seed=config.shuffle_seed,
            report_every=config.report_every,
        )
        coordinator.setup()

        async with httpx.AsyncClient(follow_redirects=True) as client:
            inference = InferenceClient(client, config.resolved_api_base_url, timeout=config.inference_timeout)
            if not await inference.health():
                LOGGER.error(f"Failed to establish connection with inference API at {inference.health_endpoint}")
                return 1
            LOGGER.info(f"Pinged inference API at {inference.health_endpoint}")

            worker = Worker(coordinator, ImageFetcher(client, timeout=config.fetch_timeout), inference)
            stop_event = asyncio.Event()
            install_signal_handlers(stop_event)
            await worker.run(stop_event)
    finally:
        db.close()

    return 0


def cmd_run(args):
    """Run the job cycle worker."""
    try:
        config = config_from_args(args)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    configure_logging(config.log_level)

    try:
        return asyncio.run(run_worker(config))
    except SetupError as e:
        LOGGER.error(f"Setup failed: {e}")
        return 1


def setup_run_commands(subparsers):
    """Setup worker subcommands."""
    run_parser = subparsers.add_parser("run", help="Run the job cycle worker until interrupted")
    run_parser.add_argument("--config", help="Path to JSON config file")
    run_parser.add_argument("--chunk-size", type=int, help="Cameras per chunk")
    run_parser.add_argument("--cycle-seconds", type=float, help="Target duration of a full sweep")
    run_parser.add_argument("--no-shuffle", action="store_true", help="Keep snapshot order instead of shuffling")
    run_parser.add_argument("--db", help="Path to the SQLite outcome database")
    run_parser.add_argument("--snapshots", help="Directory holding camera snapshot JSON files")
    run_parser.add_argument("--api-url", help="Inference API base URL (default derived from APP_ENV)")
    run_parser.add_argument("--log-level", help="Logging level")
    run_parser.set_defaults(func=cmd_run)
