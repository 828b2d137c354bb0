from datetime import timedelta

import pytest

from peermatch.domain.queue.entities import QueueEntry, QueueStatus
from peermatch.utils.error_handling import MalformedQueueEntryError


@pytest.fixture
def entry(make_request, clock):
    return QueueEntry(
        request=make_request("u1", skills=["python", "sql"]),
        enqueued_at=clock.now,
        expires_at=clock.now + timedelta(minutes=30),
    )


def test_record_round_trip_preserves_entry(entry):
    entry.mark_matched("u2")

    restored = QueueEntry.from_record(entry.to_record())

    assert restored == entry


def test_record_carries_numeric_expiry(entry):
    record = entry.to_record()

    assert record["expires_ts"] == entry.expires_at.timestamp()
    assert record["user_id"] == "u1"
    assert record["status"] == "waiting"


def test_expiry_is_strictly_after_deadline(entry):
    assert not entry.is_expired(entry.expires_at)
    assert entry.is_expired(entry.expires_at + timedelta(seconds=1))


@pytest.mark.parametrize("transition", ["mark_matched", "mark_expired", "mark_cancelled"])
def test_terminal_states_are_final(entry, transition):
    entry.mark_cancelled()

    with pytest.raises(ValueError):
        getattr(entry, transition)()


@pytest.mark.parametrize(
    "mutate",
    [
        lambda record: record.pop("expires_at"),
        lambda record: record.update(expires_at="yesterday"),
        lambda record: record.update(status="paused"),
        lambda record: record["request"].update(urgency="whenever"),
        lambda record: record.pop("request"),
    ],
)
def test_malformed_records_raise(entry, mutate):
    record = entry.to_record()
    mutate(record)

    with pytest.raises(MalformedQueueEntryError):
        QueueEntry.from_record(record)


def test_non_mapping_record_raises():
    with pytest.raises(MalformedQueueEntryError):
        QueueEntry.from_record(["not", "a", "record"])


def test_naive_timestamps_are_read_as_utc(entry):
    record = entry.to_record()
    record["enqueued_at"] = "2024-03-04T12:00:00"

    restored = QueueEntry.from_record(record)

    assert restored.enqueued_at == entry.enqueued_at


def test_status_terminality():
    assert not QueueStatus.WAITING.is_terminal
    assert all(
        status.is_terminal
        for status in (QueueStatus.MATCHED, QueueStatus.EXPIRED, QueueStatus.CANCELLED)
    )
