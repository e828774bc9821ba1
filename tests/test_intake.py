"""
tests/test_intake.py: durable record-then-enqueue at webhook receipt.
"""
from unittest.mock import MagicMock

import pytest

from events.intake import EventIntake
from events.payloads import EventKind


def test_event_is_stored_before_enqueue(store):
    queue = MagicMock()

    def check_stored(item):
        # the row must already be readable when the worker can see the item
        assert [e.id for e in store.list_events("c1")] == [item.event_id]

    queue.enqueue.side_effect = check_stored
    intake = EventIntake(store, queue, timezone="America/Los_Angeles")

    stored = intake.record_incoming_event(
        {"call_id": "c1", "completed": True}, headers={"user-agent": "bland"}, request_id="req-1",
    )

    queue.enqueue.assert_called_once()
    (item,) = queue.enqueue.call_args.args
    assert item.event_id == stored.id
    assert item.request_id == "req-1"
    assert item.event.kind is EventKind.COMPLETION
    assert item.received_at == stored.received_at
    assert stored.headers == {"user-agent": "bland"}
    assert stored.category is None


def test_received_at_carries_offset(store):
    intake = EventIntake(store, MagicMock(), timezone="America/Los_Angeles")
    stored = intake.record_incoming_event({"call_id": "c1"})
    assert stored.received_at[-6:] in ("-08:00", "-07:00")


def test_unattributed_events_are_still_recorded(store):
    queue = MagicMock()
    intake = EventIntake(store, queue)

    stored = intake.record_incoming_event({"hello": "world"})

    assert stored.call_id is None
    assert stored.payload == {"hello": "world"}
    (item,) = queue.enqueue.call_args.args
    assert item.event.kind is EventKind.UNATTRIBUTED


def test_store_failure_propagates_and_nothing_is_enqueued(store):
    queue = MagicMock()
    store.close()
    with pytest.raises(Exception):
        EventIntake(store, queue).record_incoming_event({"call_id": "c1"})
    queue.enqueue.assert_not_called()
