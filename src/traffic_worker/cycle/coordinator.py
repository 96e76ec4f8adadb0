"""Job cycle coordinator: hands out chunks round-robin and paces full sweeps."""

import asyncio
import hashlib
import random
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, Sequence, Union

from ..errors import (
    CoordinatorStateError,
    EmptyWorkSetError,
    IncompleteChunkError,
    InvalidChunkSizeError,
    NoChunkOutstandingError,
    SetupError,
)
from ..utils.logger import logger as LOGGER
from .job import Chunk, JobOutcome, Snapshot, WorkItem
from .pacing import PacingController
from .partition import partition
from .recorder import OutcomeStore, ProgressRecorder, validate_outcomes
from .state import CycleState


class SnapshotSource(Protocol):
    def latest_snapshot(self) -> Snapshot:
        """Return the newest snapshot or raise NoSnapshotError."""
        ...


class CycleStore(OutcomeStore, Protocol):
    def save_cursor(self, fingerprint: str, next_chunk_index: int) -> None:
        ...

    def load_cursor(self, fingerprint: Optional[str] = None) -> Optional[dict]:
        ...


class CoordinatorStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    DISPATCHED = "dispatched"
    COMPLETING = "completing"


def order_fingerprint(chunks: Sequence[Chunk], chunk_size: int) -> str:
    """Hash of the chunk size and the ordered identifiers, used to match a saved cursor."""
    h = hashlib.sha256(f"{chunk_size}\n".encode("utf-8"))
    for chunk in chunks:
        for identifier in chunk.identifiers:
            h.update(identifier.encode("utf-8"))
            h.update(b"\n")
    return h.hexdigest()


def order_items(items: Sequence[WorkItem], shuffle: bool, seed: Optional[int]) -> list[WorkItem]:
    """Fix the dispatch order for the life of the process, optionally shuffled with a stable seed."""
    ordered = list(items)
    if shuffle:
        random.Random(seed).shuffle(ordered)
    return ordered


class JobCycleCoordinator:
    """Single-outstanding-chunk state machine over a partitioned camera set.

    ``setup`` loads the latest snapshot and moves to Ready. ``get_next_chunk``
    dispatches the chunk at the current index. ``complete_chunk`` records the
    chunk's outcomes, waits out the pacing delay and only then advances. A
    rejected completion leaves the chunk outstanding; the next
    ``get_next_chunk`` hands the same chunk out again.
    """

    def __init__(
        self,
        snapshot_source: SnapshotSource,
        store: CycleStore,
        chunk_size: int,
        cycle_seconds: float,
        shuffle: bool = False,
        shuffle_seed: Optional[int] = None,
        report_every: int = 10,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.snapshot_source = snapshot_source
        self.store = store
        self.recorder = ProgressRecorder(store)
        self.chunk_size = chunk_size
        self.cycle_seconds = cycle_seconds
        self.shuffle = shuffle
        self.shuffle_seed = shuffle_seed
        self.report_every = report_every
        self._clock = clock
        self._sleep = sleep

        self.status = CoordinatorStatus.UNINITIALIZED
        self.snapshot: Optional[Snapshot] = None
        self.chunks: list[Chunk] = []
        self.total_items = 0
        self.fingerprint: Optional[str] = None
        self.state: Optional[CycleState] = None
        self.pacing: Optional[PacingController] = None

        self._outstanding: Optional[Chunk] = None
        self._dispatched_at: Optional[float] = None
        self.last_delay: Optional[float] = None

    def setup(self) -> None:
        """Load the latest snapshot, partition it and restore saved progress.

        Raises:
            SetupError: If no usable snapshot exists or the chunk size is invalid.
        """
        snapshot = self.snapshot_source.latest_snapshot()

        seed = self.shuffle_seed
        if seed is None:
            seed = int(snapshot.timestamp.timestamp())
        items = order_items(snapshot.items, self.shuffle, seed)

        try:
            chunks = partition(items, self.chunk_size)
        except (InvalidChunkSizeError, EmptyWorkSetError) as e:
            raise SetupError(f"Cannot set up job cycle: {e}") from e

        fingerprint = order_fingerprint(chunks, self.chunk_size)
        start_index = 0
        cursor = self.store.load_cursor(fingerprint)
        if cursor is not None and 0 <= cursor["next_chunk_index"] < len(chunks):
            start_index = cursor["next_chunk_index"]

        self.snapshot = snapshot
        self.chunks = chunks
        self.total_items = len(items)
        self.fingerprint = fingerprint
        self.state = CycleState(len(chunks), start_index=start_index, clock=self._clock)
        self.pacing = PacingController(self.cycle_seconds, self.total_items, report_every=self.report_every)
        self._outstanding = None
        self._dispatched_at = None
        self.status = CoordinatorStatus.READY

        LOGGER.info(
            f"Loaded snapshot from {snapshot.timestamp.isoformat()}: {self.total_items} cameras "
            f"in {len(chunks)} chunks of up to {self.chunk_size}"
            + (f", resuming at chunk {start_index}" if start_index else "")
        )

    @property
    def outstanding(self) -> Optional[Chunk]:
        return self._outstanding

    def get_next_chunk(self) -> Chunk:
        """Dispatch the chunk at the current index, or the still-outstanding one."""
        if self.status is CoordinatorStatus.UNINITIALIZED:
            raise CoordinatorStateError("setup() must succeed before chunks can be dispatched")

        if self.status is CoordinatorStatus.COMPLETING:
            raise CoordinatorStateError(f"Chunk {self._outstanding.index} is still being completed")

        if self.status is CoordinatorStatus.DISPATCHED:
            LOGGER.warning(f"Chunk {self._outstanding.index} was not completed, dispatching it again")
            self._dispatched_at = self._clock()
            return self._outstanding

        index = self.state.current_index()
        if index == 0:
            self.state.mark_cycle_start()

        self._outstanding = self.chunks[index]
        self._dispatched_at = self._clock()
        self.status = CoordinatorStatus.DISPATCHED
        return self._outstanding

    async def complete_chunk(self, outcomes: Sequence[Union[JobOutcome, Mapping[str, Any]]]) -> None:
        """Record outcomes for the outstanding chunk, pace, then advance.

        Raises:
            NoChunkOutstandingError: If no chunk is dispatched.
            CoordinatorStateError: If the chunk is already being completed.
            IncompleteChunkError: If outcomes do not cover exactly the chunk's items.
            MalformedOutcomeError: If any outcome is invalid.
        """
        if self.status is CoordinatorStatus.COMPLETING:
            raise CoordinatorStateError(f"Chunk {self._outstanding.index} is already being completed")
        if self.status is not CoordinatorStatus.DISPATCHED:
            raise NoChunkOutstandingError("No chunk is outstanding")

        chunk = self._outstanding
        if len(outcomes) != len(chunk):
            raise IncompleteChunkError(
                f"Chunk {chunk.index} has {len(chunk)} items but {len(outcomes)} outcomes were given"
            )

        validated = validate_outcomes(outcomes)
        if sorted(o.identifier for o in validated) != sorted(chunk.identifiers):
            raise IncompleteChunkError(f"Outcome identifiers do not match the items of chunk {chunk.index}")

        # No other call may dispatch or complete while this one is suspended.
        self.status = CoordinatorStatus.COMPLETING
        try:
            await self.recorder.record_chunk(validated)

            elapsed = self._clock() - self._dispatched_at
            self.last_delay = self.pacing.delay_for(len(chunk), elapsed)
            await self._sleep(self.last_delay)

            next_index = (chunk.index + 1) % len(self.chunks)
            await asyncio.to_thread(self.store.save_cursor, self.fingerprint, next_index)
        except BaseException:
            self.status = CoordinatorStatus.DISPATCHED
            raise

        _, cycle_completed = self.state.advance()

        self._outstanding = None
        self.status = CoordinatorStatus.READY

        self.pacing.record_duration(self._clock() - self._dispatched_at)
        LOGGER.debug(f"Chunk {chunk.index} completed ({len(chunk)} cameras, paced {self.last_delay:.2f}s)")

        if cycle_completed:
            cycle_elapsed = self.state.cycle_elapsed()
            if cycle_elapsed is None:
                LOGGER.info(f"Partial cycle completed ({self.total_items} cameras)")
            else:
                LOGGER.info(
                    f"Cycle {self.state.cycles_completed} completed in {cycle_elapsed:.1f}s "
                    f"(target {self.cycle_seconds:.1f}s, {self.total_items} cameras)"
                )
