"""Exception hierarchy for the traffic worker."""


class TrafficWorkerError(Exception):
    """Base class for all worker errors."""

    pass


class ConfigError(TrafficWorkerError):
    """Raised when worker configuration is invalid."""

    pass


class SetupError(TrafficWorkerError):
    """Raised when the coordinator cannot reach the Ready state. Fatal."""

    pass


class NoSnapshotError(SetupError):
    """Raised when no camera snapshot is available."""

    pass


class InvalidChunkSizeError(TrafficWorkerError):
    """Raised when the chunk size is not a positive integer."""

    pass


class EmptyWorkSetError(TrafficWorkerError):
    """Raised when there are no work items to partition."""

    pass


class CoordinatorStateError(TrafficWorkerError):
    """Raised when a coordinator operation is called in the wrong state."""

    pass


class ChunkError(TrafficWorkerError):
    """Base class for recoverable per-chunk errors.

    The chunk stays outstanding and is expected to be retried.
    """

    pass


class IncompleteChunkError(ChunkError):
    """Raised when outcomes do not match the dispatched chunk."""

    pass


class MalformedOutcomeError(ChunkError):
    """Raised when a job outcome fails validation. The whole batch is rejected."""

    pass


class NoChunkOutstandingError(ChunkError):
    """Raised when completing a chunk while none is dispatched."""

    pass


class InferenceError(TrafficWorkerError):
    """Raised when the inference API call fails or returns an invalid response."""

    pass
