"""
tests/test_queue.py: EventQueue worker ordering, failure isolation and timeouts.
"""
import asyncio
from types import SimpleNamespace

import pytest

from events.payloads import parse_event
from events.queue import EventQueue, ItemStatus, QueueItem


def _item(call_id="c1", n=0):
    return QueueItem(event=parse_event({"call_id": call_id, "seq": n}), event_id=n)


@pytest.mark.asyncio
async def test_items_processed_in_enqueue_order_despite_latency():
    seen = []
    delays = {0: 0.05, 1: 0.0, 2: 0.02}

    async def handler(item):
        n = item.event.payload["seq"]
        seen.append(("start", n))
        await asyncio.sleep(delays[n])
        seen.append(("end", n))

    queue = EventQueue(handler)
    for n in range(3):
        queue.enqueue(_item(n=n))
    await queue.start()
    await queue.join()
    await queue.stop()

    assert seen == [("start", 0), ("end", 0), ("start", 1), ("end", 1), ("start", 2), ("end", 2)]
    assert queue.processed == 3


@pytest.mark.asyncio
async def test_handler_exception_does_not_stop_worker():
    async def handler(item):
        if item.event_id == 1:
            raise ValueError("bad item")
        return "done"

    results = []
    queue = EventQueue(handler, on_result=results.append)
    await queue.start()
    for n in range(3):
        queue.enqueue(_item(n=n))
    await queue.join()

    assert queue.running
    assert [r.status for r in results] == [ItemStatus.OK, ItemStatus.FAILED, ItemStatus.OK]
    assert results[1].error == "bad item"
    assert results[0].detail == "done"
    await queue.stop()
    assert not queue.running


@pytest.mark.asyncio
async def test_item_timeout_moves_on():
    async def handler(item):
        if item.event_id == 0:
            await asyncio.sleep(5)
        return None

    queue = EventQueue(handler, item_timeout=0.05)
    await queue.start()
    queue.enqueue(_item(n=0))
    queue.enqueue(_item(n=1))
    await asyncio.wait_for(queue.join(), timeout=2)
    await queue.stop()

    statuses = [r.status for r in queue.recent_results()]
    assert statuses == [ItemStatus.TIMED_OUT, ItemStatus.OK]


@pytest.mark.asyncio
async def test_failed_detail_is_reported_as_failure():
    async def handler(item):
        return SimpleNamespace(failed=True, error="sheet down")

    queue = EventQueue(handler)
    await queue.start()
    queue.enqueue(_item())
    await queue.join()
    await queue.stop()

    (result,) = queue.recent_results()
    assert result.status is ItemStatus.FAILED
    assert result.error == "sheet down"


@pytest.mark.asyncio
async def test_result_sink_errors_are_contained():
    def sink(result):
        raise RuntimeError("sink broke")

    async def handler(item):
        return None

    queue = EventQueue(handler, on_result=sink)
    await queue.start()
    queue.enqueue(_item(n=0))
    queue.enqueue(_item(n=1))
    await queue.join()
    await queue.stop()

    assert queue.processed == 2


@pytest.mark.asyncio
async def test_recent_results_are_bounded():
    async def handler(item):
        return None

    queue = EventQueue(handler, history=2)
    await queue.start()
    for n in range(5):
        queue.enqueue(_item(n=n))
    await queue.join()
    await queue.stop()

    assert [r.item.event_id for r in queue.recent_results()] == [3, 4]
    assert queue.recent_results()[0].to_dict()["status"] == "ok"


@pytest.mark.asyncio
async def test_stop_without_start_is_noop():
    async def handler(item):
        return None

    queue = EventQueue(handler)
    queue.enqueue(_item())
    await queue.stop()
    assert queue.pending == 1
