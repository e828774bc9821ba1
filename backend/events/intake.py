import logging
from typing import Any, Dict, Optional

from data.clock import iso_now
from data.models import Event
from data.store import EventStore
from .payloads import parse_event
from .queue import EventQueue, QueueItem

logger = logging.getLogger(__name__)


class EventIntake:
    """
    Entry point for webhook deliveries: store the raw event first, then hand it
    to the queue. Once this returns, the delivery is durable regardless of what
    happens downstream.
    """

    def __init__(self, store: EventStore, queue: EventQueue, timezone: str = "America/Los_Angeles"):
        self.store = store
        self.queue = queue
        self.timezone = timezone

    def record_incoming_event(
        self,
        payload: Any,
        headers: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> Event:
        event = parse_event(payload)
        received_at = iso_now(self.timezone)

        stored = self.store.record_event(
            received_at=received_at,
            call_id=event.call_id,
            category=event.category,
            payload=payload,
            headers=headers,
        )
        logger.info(
            "recorded event %s (call=%s, category=%s, kind=%s)",
            stored.id, event.call_id, event.category, event.kind.value,
        )

        self.queue.enqueue(QueueItem(
            event=event,
            event_id=stored.id,
            request_id=request_id,
            received_at=received_at,
        ))
        return stored
