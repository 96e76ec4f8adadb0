from .coordinator import CoordinatorStatus, JobCycleCoordinator
from .job import FAILED_COUNT, Chunk, JobOutcome, Snapshot, WorkItem
from .pacing import PacingController, pacing_delay
from .partition import partition
from .recorder import ProgressRecorder
from .state import CycleState

__all__ = [
    "Chunk",
    "CoordinatorStatus",
    "CycleState",
    "FAILED_COUNT",
    "JobCycleCoordinator",
    "JobOutcome",
    "PacingController",
    "ProgressRecorder",
    "Snapshot",
    "WorkItem",
    "pacing_delay",
    "partition",
]
