"""
In-process FIFO between the webhook route and the completion pipeline.

`enqueue` never blocks and never raises; a single worker task drains items
strictly in order, one at a time, so events for a call are processed in
arrival order. There is no retry and no dead letter: each item gets one
attempt and its outcome is reported as an ItemResult (logged, kept in a small
recent-results buffer, and handed to `on_result` when given).

The queue lives in memory only. Anything still queued at shutdown (beyond the
stop grace period) is lost; the raw event was already stored at receipt.
"""
import asyncio
import logging
from collections import deque
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, List, Optional

from .payloads import InboundEvent

logger = logging.getLogger(__name__)


class ItemStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class QueueItem:
    event: InboundEvent
    event_id: Optional[int] = None        # events.id of the stored raw event
    request_id: Optional[str] = None
    received_at: Optional[str] = None


@dataclass
class ItemResult:
    item: QueueItem
    status: ItemStatus
    detail: Any = None                    # whatever the handler returned
    error: Optional[str] = None
    elapsed_ms: float = 0.0

    def to_dict(self):
        detail = self.detail.to_dict() if hasattr(self.detail, "to_dict") else self.detail
        return {
            "event_id": self.item.event_id,
            "call_id": self.item.event.call_id,
            "kind": self.item.event.kind.value,
            "request_id": self.item.request_id,
            "status": self.status.value,
            "error": self.error,
            "elapsed_ms": round(self.elapsed_ms, 1),
            "detail": detail,
        }


Handler = Callable[[QueueItem], Awaitable[Any]]
ResultSink = Callable[[ItemResult], None]


class EventQueue:
    def __init__(
        self,
        handler: Handler,
        item_timeout: Optional[float] = None,
        on_result: Optional[ResultSink] = None,
        history: int = 100,
    ):
        self.handler = handler
        self.item_timeout = item_timeout
        self.on_result = on_result
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._recent: Deque[ItemResult] = deque(maxlen=history)
        self.processed = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def recent_results(self) -> List[ItemResult]:
        return list(self._recent)

    def enqueue(self, item: QueueItem):
        self._queue.put_nowait(item)

    async def start(self):
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="event-queue-worker")
        logger.info("event queue worker started")

    async def join(self):
        """Wait until every enqueued item has been processed."""
        await self._queue.join()

    async def stop(self, grace: float = 10.0):
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=grace)
        except asyncio.TimeoutError:
            logger.warning("event queue stopped with %d item(s) unprocessed", self.pending)
        self._worker.cancel()
        with suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        logger.info("event queue worker stopped")

    async def _run(self):
        while True:
            item = await self._queue.get()
            try:
                result = await self._process(item)
                self._report(result)
            finally:
                self._queue.task_done()

    async def _process(self, item: QueueItem) -> ItemResult:
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            if self.item_timeout:
                detail = await asyncio.wait_for(self.handler(item), timeout=self.item_timeout)
            else:
                detail = await self.handler(item)
        except asyncio.TimeoutError:
            return ItemResult(
                item, ItemStatus.TIMED_OUT,
                error=f"timed out after {self.item_timeout}s",
                elapsed_ms=(loop.time() - started) * 1000,
            )
        except Exception as e:
            logger.exception("event %s (call %s) failed", item.event_id, item.event.call_id)
            return ItemResult(
                item, ItemStatus.FAILED,
                error=str(e) or type(e).__name__,
                elapsed_ms=(loop.time() - started) * 1000,
            )

        status = ItemStatus.FAILED if getattr(detail, "failed", False) else ItemStatus.OK
        error = getattr(detail, "error", None)
        return ItemResult(item, status, detail=detail, error=error, elapsed_ms=(loop.time() - started) * 1000)

    def _report(self, result: ItemResult):
        self.processed += 1
        self._recent.append(result)

        if result.status is ItemStatus.OK:
            logger.debug("event %s processed in %.0fms", result.item.event_id, result.elapsed_ms)
        else:
            logger.warning(
                "event %s (call %s) %s: %s",
                result.item.event_id, result.item.event.call_id, result.status.value, result.error,
            )

        if self.on_result is not None:
            try:
                self.on_result(result)
            except Exception:
                logger.exception("queue result sink raised")
