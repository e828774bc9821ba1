"""
tests/test_store.py: EventStore persistence and the writes ledger primitive.
"""
from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from data.models import Call, WriteKind
from data.store import EventStore, StoreNotOpenError


def test_rejects_non_sqlite_url():
    with pytest.raises(ValueError):
        EventStore("postgresql://localhost/db")


def test_operations_require_open(db_url):
    s = EventStore(db_url)
    with pytest.raises(StoreNotOpenError):
        s.get_call("c1")


def test_open_creates_parent_directory(tmp_path):
    url = f"sqlite:///{tmp_path / 'nested' / 'dir' / 'app.db'}"
    with EventStore(url) as s:
        assert s.is_open
        assert (tmp_path / "nested" / "dir" / "app.db").exists()
    assert not s.is_open


# ── Events ─────────────────────────────────────────────────────────────


def test_record_event_keeps_duplicates_in_append_order(store):
    payload = {"call_id": "c1", "completed": True, "nested": {"a": [1, 2]}}
    first = store.record_event("2026-02-03T13:45:12-08:00", "c1", "call", payload, {"x-request-id": "r1"})
    second = store.record_event("2026-02-03T13:45:13-08:00", "c1", "call", payload)

    assert second.id > first.id
    events = store.list_events("c1")
    assert [e.id for e in events] == [first.id, second.id]
    assert events[0].payload == payload
    assert events[0].headers == {"x-request-id": "r1"}
    assert events[1].headers is None


def test_record_event_without_call_id(store):
    ev = store.record_event("2026-02-03T13:45:12-08:00", None, None, ["not", "an", "object"])
    assert ev.id is not None
    assert ev.call_id is None
    assert store.list_events("c1") == []


# ── Calls ──────────────────────────────────────────────────────────────


def test_upsert_call_replaces_every_field(store):
    store.upsert_call(Call(call_id="c1", summary="first", detected_intent="LEASE", analysis={"intent": "LEASE"}))
    store.upsert_call(Call(call_id="c1", transcript="second"))

    call = store.get_call("c1")
    assert call.transcript == "second"
    assert call.summary is None
    assert call.detected_intent is None
    assert call.analysis is None


def test_get_call_missing(store):
    assert store.get_call("nope") is None


def test_list_calls_orders_by_end_time_and_limits(store):
    store.upsert_call(Call(call_id="old", ended_at="2026-02-01T10:00:00-08:00"))
    store.upsert_call(Call(call_id="open"))
    store.upsert_call(Call(call_id="new", ended_at="2026-02-03T10:00:00-08:00"))

    assert [c.call_id for c in store.list_calls()] == ["new", "old", "open"]
    assert [c.call_id for c in store.list_calls(limit=1)] == ["new"]


# ── Writes ledger ──────────────────────────────────────────────────────


def test_try_insert_write_only_first_caller_wins(store):
    assert store.try_insert_write("c1", WriteKind.CALL_LOG, "Call Logs", "t0") is True
    assert store.try_insert_write("c1", WriteKind.CALL_LOG, "Call Logs", "t1") is False
    assert store.has_write("c1", WriteKind.CALL_LOG)

    # other kinds and other calls are independent
    assert store.try_insert_write("c1", WriteKind.LEASE_LEAD, "Lease Leads", "t0") is True
    assert store.try_insert_write("c2", WriteKind.CALL_LOG, "Call Logs", "t0") is True

    write = store.get_write("c1", WriteKind.CALL_LOG)
    assert write.created_at == "t0"
    assert write.sheet_tab == "Call Logs"
    assert write.committed_at is None


def test_delete_write_restores_eligibility(store):
    store.try_insert_write("c1", WriteKind.CALL_LOG, "Call Logs", "t0")
    store.delete_write("c1", WriteKind.CALL_LOG)

    assert not store.has_write("c1", WriteKind.CALL_LOG)
    assert store.try_insert_write("c1", WriteKind.CALL_LOG, "Call Logs", "t1") is True


def test_mark_write_committed(store):
    assert store.mark_write_committed("c1", WriteKind.CALL_LOG, "t9") is False
    store.try_insert_write("c1", WriteKind.CALL_LOG, "Call Logs", "t0")
    assert store.mark_write_committed("c1", WriteKind.CALL_LOG, "t9") is True
    assert store.get_write("c1", WriteKind.CALL_LOG).committed_at == "t9"


def test_kind_accepts_plain_strings(store):
    assert store.try_insert_write("c1", "LEASE_LEAD", "Lease Leads", "t0") is True
    assert store.has_write("c1", WriteKind.LEASE_LEAD)
    assert [w.kind for w in store.list_writes("c1")] == ["LEASE_LEAD"]


def test_try_insert_write_is_atomic_across_connections(db_url, store):
    """Many threads over separate stores on one file: exactly one acquires."""
    workers = 8
    stores = [EventStore(db_url).open() for _ in range(workers)]
    barrier = Barrier(workers)

    def attempt(s):
        barrier.wait()
        return s.try_insert_write("race", WriteKind.CALL_LOG, "Call Logs", "t0")

    try:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(attempt, stores))
    finally:
        for s in stores:
            s.close()

    assert results.count(True) == 1
    assert results.count(False) == workers - 1
    assert len(store.list_writes("race")) == 1


# ── Tool runs ──────────────────────────────────────────────────────────


def test_tool_runs_listed_in_insert_order(store):
    store.record_tool_run("c1", "RiveLogLeaseLead", "t0", {"body": {"name": "Ada"}}, {"ok": True})
    store.record_tool_run("c1", "RiveLogMaintenanceTicket", "t1", {"body": {}}, {"ok": True})
    store.record_tool_run("c2", "RiveLogLeaseLead", "t2", {}, {"ok": True})

    runs = store.list_tool_runs("c1")
    assert [r.tool_name for r in runs] == ["RiveLogLeaseLead", "RiveLogMaintenanceTicket"]
    assert runs[0].request == {"body": {"name": "Ada"}}
