"""Split an ordered work set into fixed-size chunks."""

from typing import Sequence

from ..errors import EmptyWorkSetError, InvalidChunkSizeError
from .job import Chunk, WorkItem


def partition(items: Sequence[WorkItem], chunk_size: int) -> list[Chunk]:
    """Partition work items into ordered chunks of at most ``chunk_size`` items.

    Every chunk except possibly the last holds exactly ``chunk_size`` items,
    and concatenating the chunks in order reproduces ``items``.

    Raises:
        InvalidChunkSizeError: If chunk_size is not a positive integer.
        EmptyWorkSetError: If items is empty.
    """
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
        raise InvalidChunkSizeError(f"Chunk size must be a positive integer, got {chunk_size!r}")
    if not items:
        raise EmptyWorkSetError("Cannot partition an empty work set")

    return [
        Chunk(index=i, items=tuple(items[start:start + chunk_size]))
        for i, start in enumerate(range(0, len(items), chunk_size))
    ]
