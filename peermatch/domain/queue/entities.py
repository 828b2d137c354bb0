"""
Queue domain entities representing waiting matching requests.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from peermatch.domain.matching.value_objects import MatchingRequest
from peermatch.utils.error_handling import MalformedQueueEntryError


class QueueStatus(Enum):
    """Status of a queue entry"""
    WAITING = "waiting"
    MATCHED = "matched"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not QueueStatus.WAITING


def _parse_timestamp(value: Any, field_name: str, raw: Any) -> datetime:
    if not isinstance(value, str):
        raise MalformedQueueEntryError(f"'{field_name}' is missing or not a timestamp", raw)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise MalformedQueueEntryError(f"'{field_name}' is not ISO-8601: {value}", raw) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class QueueEntry:
    """
    A matching request waiting in the queue.

    Status moves once from WAITING to one of the terminal states and never
    back. Stores persist entries as plain records (see ``to_record``) so the
    same shape works in memory and in Redis.
    """

    request: MatchingRequest
    enqueued_at: datetime
    expires_at: datetime
    entry_id: str = field(default_factory=lambda: str(uuid4()))
    status: QueueStatus = field(default=QueueStatus.WAITING)
    matched_with: Optional[str] = field(default=None)

    @property
    def user_id(self) -> str:
        return self.request.user_id

    def is_waiting(self) -> bool:
        return self.status == QueueStatus.WAITING

    def is_expired(self, now: datetime) -> bool:
        """Check if the entry has outlived its time-to-live."""
        return self.expires_at < now

    def is_available(self, now: datetime) -> bool:
        """Check if the entry can still be offered as a candidate."""
        return self.is_waiting() and not self.is_expired(now)

    def waited_minutes(self, now: datetime) -> float:
        return max(0.0, (now - self.enqueued_at).total_seconds() / 60)

    def _transition(self, status: QueueStatus) -> None:
        if self.status.is_terminal:
            raise ValueError(f"Cannot move queue entry from {self.status.value} to {status.value}")
        self.status = status

    def mark_matched(self, partner_id: Optional[str] = None) -> None:
        self._transition(QueueStatus.MATCHED)
        self.matched_with = partner_id

    def mark_expired(self) -> None:
        self._transition(QueueStatus.EXPIRED)

    def mark_cancelled(self) -> None:
        self._transition(QueueStatus.CANCELLED)

    def to_record(self) -> Dict[str, Any]:
        """Convert the entry to its stored representation."""
        return {
            "entry_id": self.entry_id,
            "user_id": self.user_id,
            "request": self.request.to_dict(),
            "enqueued_at": self.enqueued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            # Numeric copy for backends that compare expiry server-side
            "expires_ts": self.expires_at.timestamp(),
            "status": self.status.value,
            "matched_with": self.matched_with,
        }

    @classmethod
    def from_record(cls, record: Any) -> "QueueEntry":
        """
        Rebuild an entry from its stored representation.

        Raises:
            MalformedQueueEntryError: If the record is missing fields or
                carries values that cannot be decoded
        """
        if not isinstance(record, dict):
            raise MalformedQueueEntryError("record is not a mapping", record)

        enqueued_at = _parse_timestamp(record.get("enqueued_at"), "enqueued_at", record)
        expires_at = _parse_timestamp(record.get("expires_at"), "expires_at", record)

        try:
            request = MatchingRequest.from_dict(record["request"])
            status = QueueStatus(record["status"])
            entry_id = str(record["entry_id"])
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedQueueEntryError(f"invalid field: {e}", record) from e

        return cls(
            request=request,
            enqueued_at=enqueued_at,
            expires_at=expires_at,
            entry_id=entry_id,
            status=status,
            matched_with=record.get("matched_with"),
        )


@dataclass(frozen=True)
class QueuePosition:
    """Where a waiting user stands in the queue."""

    position: int
    total_in_queue: int
    estimated_wait_seconds: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position,
            "total_in_queue": self.total_in_queue,
            "estimated_wait_seconds": self.estimated_wait_seconds,
        }


@dataclass(frozen=True)
class QueueStats:
    """Snapshot of the waiting queue."""

    total_in_queue: int
    by_session_type: Dict[str, int]
    by_urgency: Dict[str, int]
    average_wait_minutes: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_in_queue": self.total_in_queue,
            "by_session_type": dict(self.by_session_type),
            "by_urgency": dict(self.by_urgency),
            "average_wait_minutes": self.average_wait_minutes,
        }
