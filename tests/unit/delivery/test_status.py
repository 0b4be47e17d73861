"""
Unit tests for ObservationStatus and StatusSnapshot.
"""

from datetime import datetime, timezone

import pytest

from brief_measure.delivery import ObservationStatus, StatusSnapshot


@pytest.fixture
def status():
    """Fresh ObservationStatus for each test."""
    return ObservationStatus()


def test_snapshot_immutable():
    snap = StatusSnapshot(pending_count=1)
    with pytest.raises(Exception):  # dataclass frozen raises on assignment
        snap.pending_count = 2  # type: ignore


def test_snapshot_to_dict():
    at = datetime(2026, 10, 16, 9, 0, tzinfo=timezone.utc)
    snap = StatusSnapshot(pending_count=2, next_retry_at=at, last_error="boom")
    assert snap.to_dict() == {
        "pending_count": 2,
        "next_retry_at": "2026-10-16T09:00:00+00:00",
        "last_error": "boom",
        "limit_message": None,
    }
    assert not snap.idle
    assert StatusSnapshot().idle


@pytest.mark.asyncio
async def test_update_publishes_to_subscribers(status):
    received = []

    async def subscriber(snap):
        received.append(snap)

    status.subscribe(subscriber)
    status.subscribe(subscriber)  # duplicate ignored
    assert status.subscriber_count == 1

    await status.update(3, None, "Upload failed with status 500.")

    assert len(received) == 1
    assert received[0] is status.snapshot
    assert received[0].pending_count == 3
    assert received[0].last_error == "Upload failed with status 500."


@pytest.mark.asyncio
async def test_limit_message_lifecycle(status):
    await status.report_limit_exceeded("slow down")
    assert status.snapshot.limit_message == "slow down"
    assert status.snapshot.last_error == "slow down"

    await status.clear_limit_message()
    assert status.snapshot.limit_message is None
    assert status.snapshot.last_error is None


@pytest.mark.asyncio
async def test_clear_limit_keeps_unrelated_error(status):
    await status.report_limit_exceeded("slow down")
    await status.update(1, None, "Upload configuration incomplete.")

    await status.clear_limit_message()
    assert status.snapshot.limit_message is None
    assert status.snapshot.last_error == "Upload configuration incomplete."


@pytest.mark.asyncio
async def test_subscriber_error_isolated(status):
    received = []

    async def failing(snap):
        raise RuntimeError("observer down")

    async def working(snap):
        received.append(snap)

    status.subscribe(failing)
    status.subscribe(working)
    await status.update(0, None, None)

    assert len(received) == 1


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent(status):
    received = []

    async def subscriber(snap):
        received.append(snap)

    status.subscribe(subscriber)
    status.unsubscribe(subscriber)
    status.unsubscribe(subscriber)
    await status.update(1, None, None)

    assert received == []
    assert status.snapshot.pending_count == 1
