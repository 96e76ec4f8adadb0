"""Round-robin position within a cycle of chunks."""

import time
from typing import Callable, Optional


class CycleState:
    """Current chunk index, wrapping to 0 after the last chunk.

    Not safe for concurrent callers; the coordinator serializes access.
    """

    def __init__(self, num_chunks: int, start_index: int = 0, clock: Callable[[], float] = time.monotonic):
        if num_chunks < 1:
            raise ValueError(f"num_chunks must be at least 1, got {num_chunks}")
        if not 0 <= start_index < num_chunks:
            raise ValueError(f"start_index {start_index} out of range for {num_chunks} chunks")

        self.num_chunks = num_chunks
        self._index = start_index
        self._clock = clock
        self.cycle_started_at: Optional[float] = None
        self.cycles_completed = 0

    def current_index(self) -> int:
        return self._index

    def mark_cycle_start(self) -> float:
        """Record the start time of the cycle that begins at index 0."""
        self.cycle_started_at = self._clock()
        return self.cycle_started_at

    def advance(self) -> tuple[int, bool]:
        """Move to the next chunk.

        Returns:
            (new_index, cycle_completed) where cycle_completed is True iff the
            index wrapped back to 0.
        """
        self._index = (self._index + 1) % self.num_chunks
        cycle_completed = self._index == 0
        if cycle_completed:
            self.cycles_completed += 1
        return self._index, cycle_completed

    def cycle_elapsed(self) -> Optional[float]:
        """Seconds since the current cycle started, or None if no start was recorded."""
        if self.cycle_started_at is None:
            return None
        return self._clock() - self.cycle_started_at
