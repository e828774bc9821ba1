import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from quart import current_app

from bland.analysis import BlandAnalyzer
from bland.client import BlandClient
from config import Settings
from data.store import EventStore
from events.intake import EventIntake
from events.pipeline import CompletionPipeline
from events.queue import EventQueue
from events.tool_writes import ToolWrites
from sheets.writer import SheetsWriter, get_sheets_writer

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the routes need, built once per app and started/stopped with it."""
    settings: Settings
    store: EventStore
    sheets: SheetsWriter
    pipeline: CompletionPipeline
    queue: EventQueue
    intake: EventIntake
    tool_writes: ToolWrites
    bland: Optional[BlandClient] = None
    http: Optional[httpx.AsyncClient] = None

    @classmethod
    def build(
        cls,
        settings: Settings,
        store: Optional[EventStore] = None,
        sheets: Optional[SheetsWriter] = None,
        analyzer=None,
    ) -> "Services":
        """
        Wire the default collaborators from settings. `store`, `sheets` and
        `analyzer` can be passed in to replace them (tests, scripts).
        """
        http = httpx.AsyncClient(timeout=settings.http_timeout, follow_redirects=True)
        store = store or EventStore(settings.db_url)
        sheets = sheets or get_sheets_writer(settings, http=http)

        bland = None
        if analyzer is None and settings.analyzer_enabled:
            bland = BlandClient.from_settings(settings, http=http)
            analyzer = BlandAnalyzer(bland)
        if analyzer is None:
            logger.warning("BLAND_API_KEY not set, post-call analysis is disabled")

        pipeline = CompletionPipeline(store, sheets, analyzer=analyzer, timezone=settings.timezone)
        queue = EventQueue(pipeline.handle, item_timeout=settings.queue_item_timeout)
        return cls(
            settings=settings,
            store=store,
            sheets=sheets,
            pipeline=pipeline,
            queue=queue,
            intake=EventIntake(store, queue, timezone=settings.timezone),
            tool_writes=ToolWrites(store, sheets, timezone=settings.timezone),
            bland=bland,
            http=http,
        )

    async def startup(self):
        self.store.open()
        await self.queue.start()

    async def shutdown(self):
        await self.queue.stop()
        await self.sheets.aclose()
        if self.http is not None:
            await self.http.aclose()
        self.store.close()


def get_services() -> Services:
    return current_app.extensions["services"]
