"""Job cycle datastructures."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from ..errors import MalformedOutcomeError

# Stored count for an item that could not be counted.
FAILED_COUNT = -1


@dataclass(frozen=True)
class WorkItem:
    """A camera to process: identifier plus the image URLs to count vehicles in."""

    identifier: str
    image_urls: tuple[str, ...]
    country: Optional[str] = None
    locality: Optional[str] = None


@dataclass(frozen=True)
class Chunk:
    """An ordered batch of work items dispatched and completed as a unit."""

    index: int
    items: tuple[WorkItem, ...]

    def __len__(self) -> int:
        return len(self.items)

    @property
    def identifiers(self) -> list[str]:
        return [item.identifier for item in self.items]


@dataclass(frozen=True)
class Snapshot:
    """A timestamped set of work items from the snapshot source."""

    items: tuple[WorkItem, ...]
    timestamp: datetime


@dataclass(frozen=True)
class JobOutcome:
    """Result of processing one work item for one cycle pass.

    Either a success carrying a non-negative vehicle count, or a failure
    carrying a reason. Failures are stored with ``count == FAILED_COUNT``;
    the ``success`` flag, not the sign of the count, tells them apart.
    """

    identifier: str
    count: int
    completed_at: datetime
    success: bool
    reason: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        if not isinstance(self.identifier, str) or not self.identifier.strip():
            raise MalformedOutcomeError(f"Outcome identifier must be a non-empty string, got {self.identifier!r}")
        if not isinstance(self.completed_at, datetime):
            raise MalformedOutcomeError(f"Outcome for {self.identifier} has no completion timestamp")
        if not isinstance(self.success, bool):
            raise MalformedOutcomeError(f"Outcome for {self.identifier} has non-boolean success flag")
        if isinstance(self.count, bool) or not isinstance(self.count, int):
            raise MalformedOutcomeError(f"Outcome for {self.identifier} has non-integer count {self.count!r}")
        if self.success and self.count < 0:
            raise MalformedOutcomeError(f"Successful outcome for {self.identifier} has negative count {self.count}")
        if not self.success and self.count != FAILED_COUNT:
            raise MalformedOutcomeError(
                f"Failed outcome for {self.identifier} must carry count {FAILED_COUNT}, got {self.count}"
            )

    @classmethod
    def succeeded(cls, identifier: str, count: int, completed_at: datetime) -> "JobOutcome":
        return cls(identifier=identifier, count=count, completed_at=completed_at, success=True)

    @classmethod
    def failed(cls, identifier: str, reason: str, completed_at: datetime) -> "JobOutcome":
        return cls(
            identifier=identifier, count=FAILED_COUNT, completed_at=completed_at, success=False, reason=reason
        )

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "JobOutcome":
        """Build an outcome from a plain mapping, raising MalformedOutcomeError on bad input."""
        if not isinstance(record, Mapping):
            raise MalformedOutcomeError(f"Outcome record must be a mapping, got {type(record).__name__}")

        completed_at = record.get("completed_at", record.get("time"))
        if isinstance(completed_at, str):
            try:
                completed_at = datetime.fromisoformat(completed_at)
            except ValueError as e:
                raise MalformedOutcomeError(f"Invalid completion timestamp: {completed_at!r}") from e

        return cls(
            identifier=record.get("identifier", record.get("id")),
            count=record.get("count"),
            completed_at=completed_at,
            success=record.get("success"),
            reason=record.get("reason"),
        )

    def to_record(self) -> dict:
        return {
            "identifier": self.identifier,
            "count": self.count,
            "success": self.success,
            "reason": self.reason,
            "completed_at": self.completed_at.isoformat(),
        }
