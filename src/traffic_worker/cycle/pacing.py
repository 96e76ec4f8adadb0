"""Pace chunks so a full sweep takes roughly the target cycle time."""

from collections import deque
from typing import Optional

from ..utils.logger import logger as LOGGER


def pacing_delay(cycle_seconds: float, chunk_items: int, total_items: int, elapsed: float) -> float:
    """Seconds to wait after a chunk so its share of the cycle matches its share of the items.

    ``max(0, cycle_seconds * chunk_items / total_items - elapsed)``. Overruns are
    not made up later; a slow cycle simply takes longer than the target.
    """
    if total_items <= 0:
        raise ValueError(f"total_items must be positive, got {total_items}")
    if chunk_items < 0:
        raise ValueError(f"chunk_items must be non-negative, got {chunk_items}")

    budget = cycle_seconds * (chunk_items / total_items)
    return max(0.0, budget - elapsed)


class PacingController:
    """Computes per-chunk delays and keeps a rolling average of chunk durations."""

    def __init__(self, cycle_seconds: float, total_items: int, window: int = 10, report_every: int = 10):
        if cycle_seconds <= 0:
            raise ValueError(f"cycle_seconds must be positive, got {cycle_seconds}")
        self.cycle_seconds = cycle_seconds
        self.total_items = total_items
        self.report_every = report_every
        self.chunks_completed = 0
        self.durations: deque[float] = deque(maxlen=window)

    def delay_for(self, chunk_items: int, elapsed: float) -> float:
        delay = pacing_delay(self.cycle_seconds, chunk_items, self.total_items, elapsed)
        if delay == 0.0:
            LOGGER.debug(
                f"Chunk of {chunk_items} items overran its budget "
                f"({elapsed:.2f}s > {self.cycle_seconds * chunk_items / self.total_items:.2f}s)"
            )
        return delay

    def record_duration(self, seconds: float) -> Optional[float]:
        """Track a finished chunk's total duration.

        Returns:
            The rolling average, every ``report_every`` chunks; otherwise None.
        """
        self.chunks_completed += 1
        self.durations.appendleft(seconds)

        if self.chunks_completed % self.report_every != 0:
            return None

        average = self.average_duration()
        LOGGER.info(f"{self.chunks_completed} chunks completed, average chunk time is {average:.3f}s")
        return average

    def average_duration(self) -> float:
        if not self.durations:
            return 0.0
        return sum(self.durations) / len(self.durations)
