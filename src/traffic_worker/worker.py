"""Driving loop: dispatch chunks, fetch images, count vehicles, complete chunks."""

import asyncio
import signal
from datetime import datetime, timezone
from typing import Mapping, Optional, Sequence

from .acquisition.fetcher import CameraImage, ImageFetcher, identifier_from_image_name
from .cycle.coordinator import JobCycleCoordinator
from .cycle.job import Chunk, JobOutcome
from .errors import ChunkError, InferenceError
from .inference.client import InferenceClient
from .utils.logger import logger as LOGGER


def build_outcomes(
    chunk: Chunk,
    images_by_item: Mapping[str, Sequence[CameraImage]],
    counts: Optional[Mapping[str, int]],
    completed_at: datetime,
    failure_reason: Optional[str] = None,
) -> list[JobOutcome]:
    """One outcome per camera in the chunk.

    A camera succeeds with the sum of its image counts. It fails when no image
    was fetched, when the inference call failed (``counts`` is None), or when
    none of its images came back with a count.
    """
    per_item: dict[str, list[int]] = {}
    for name, count in (counts or {}).items():
        per_item.setdefault(identifier_from_image_name(name), []).append(count)

    outcomes = []
    for item in chunk.items:
        if not images_by_item.get(item.identifier):
            outcomes.append(JobOutcome.failed(item.identifier, "no images fetched", completed_at))
        elif counts is None:
            outcomes.append(JobOutcome.failed(item.identifier, failure_reason or "inference failed", completed_at))
        elif item.identifier not in per_item:
            outcomes.append(JobOutcome.failed(item.identifier, "no count returned", completed_at))
        else:
            outcomes.append(JobOutcome.succeeded(item.identifier, sum(per_item[item.identifier]), completed_at))
    return outcomes


class Worker:
    """Runs the coordinator's chunks through the fetch and inference collaborators until stopped."""

    def __init__(
        self,
        coordinator: JobCycleCoordinator,
        fetcher: ImageFetcher,
        inference: InferenceClient,
        retry_delay: float = 1.0,
    ):
        self.coordinator = coordinator
        self.fetcher = fetcher
        self.inference = inference
        self.retry_delay = retry_delay

    async def process_chunk(self, chunk: Chunk) -> list[JobOutcome]:
        images_by_item = await self.fetcher.fetch_chunk(chunk.items)
        images = [image for item_images in images_by_item.values() for image in item_images]

        counts: Optional[dict] = None
        reason = None
        try:
            counts = await self.inference.count_vehicles(images)
        except InferenceError as e:
            LOGGER.error(f"Chunk {chunk.index}: {e}")
            reason = str(e)

        return build_outcomes(chunk, images_by_item, counts, datetime.now(timezone.utc), reason)

    async def run_once(self) -> None:
        """Dispatch, process and complete a single chunk."""
        chunk = self.coordinator.get_next_chunk()
        outcomes = await self.process_chunk(chunk)
        await self.coordinator.complete_chunk(outcomes)

    async def run(self, stop_event: asyncio.Event) -> None:
        """Loop until ``stop_event`` is set. Per-chunk errors are logged and the chunk is retried."""
        while not stop_event.is_set():
            try:
                await self.run_once()
            except ChunkError as e:
                LOGGER.error(f"Chunk not completed, will retry: {e}")
                await asyncio.sleep(0)
            except Exception as e:
                # Cancellation is a BaseException and still stops the loop.
                LOGGER.exception(f"Unexpected error, retrying chunk in {self.retry_delay:.1f}s: {e}")
                await asyncio.sleep(self.retry_delay)

        LOGGER.info("Stop requested, worker loop exited")


def install_signal_handlers(stop_event: asyncio.Event) -> None:
    """Set ``stop_event`` on SIGINT/SIGTERM so the loop exits between chunks."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # add_signal_handler is unavailable on some platforms (Windows)
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))
