"""Persist job outcomes to durable storage, one batch per chunk."""

import asyncio
from typing import Any, Mapping, Protocol, Sequence, Union

from ..errors import MalformedOutcomeError
from ..utils.logger import logger as LOGGER
from .job import JobOutcome


class OutcomeStore(Protocol):
    """Durable store contract consumed by the recorder."""

    def append_batch(self, records: Sequence[JobOutcome]) -> int:
        """Write all records in one batch and return once acknowledged."""
        ...


def validate_outcomes(outcomes: Sequence[Union[JobOutcome, Mapping[str, Any]]]) -> list[JobOutcome]:
    """Return the outcomes as JobOutcome values, or reject the whole batch.

    Raises:
        MalformedOutcomeError: If any outcome fails validation.
    """
    validated = []
    for position, outcome in enumerate(outcomes):
        if isinstance(outcome, JobOutcome):
            validated.append(outcome)
            continue
        try:
            validated.append(JobOutcome.from_record(outcome))
        except MalformedOutcomeError as e:
            raise MalformedOutcomeError(f"Outcome #{position} rejected, batch not written: {e}") from e
    return validated


class ProgressRecorder:
    """Validates and persists chunk outcomes. No deduplication: replays accumulate."""

    def __init__(self, store: OutcomeStore):
        self.store = store
        self.records_written = 0

    async def record_chunk(self, outcomes: Sequence[Union[JobOutcome, Mapping[str, Any]]]) -> list[JobOutcome]:
        """Validate the batch, then write it in one call off the event loop."""
        validated = validate_outcomes(outcomes)
        if not validated:
            return validated

        written = await asyncio.to_thread(self.store.append_batch, validated)
        self.records_written += written

        failures = [o for o in validated if not o.success]
        for outcome in failures:
            LOGGER.warning(f"Recorded failure for {outcome.identifier}: {outcome.reason}")
        LOGGER.debug(f"Recorded {written} outcomes ({len(failures)} failed)")

        return validated
