"""Shared test fixtures."""
from typing import List, Optional, Set, Tuple

import pytest

from app import create_app
from bland.analysis import CallAnalysis
from config import Settings
from data.store import EventStore
from services import Services
from sheets.writer import SheetsWriteError, SheetsWriter


class RecordingSheetsWriter(SheetsWriter):
    """Keeps every appended row in memory; `fail_on` makes a row type raise."""

    def __init__(self, fail_on: Optional[Set[str]] = None):
        self.rows: List[Tuple[str, object]] = []
        self.fail_on = set(fail_on or ())
        self.closed = False

    async def _append(self, row_type: str, row):
        if row_type in self.fail_on:
            raise SheetsWriteError(500, f"{row_type} unavailable")
        self.rows.append((row_type, row))

    async def append_lease_lead(self, row):
        await self._append("lease_lead", row)

    async def append_maintenance_ticket(self, row):
        await self._append("maintenance_ticket", row)

    async def append_call_log(self, row):
        await self._append("call_log", row)

    async def aclose(self):
        self.closed = True

    def of_type(self, row_type: str) -> list:
        return [row for t, row in self.rows if t == row_type]


class FakeAnalyzer:
    def __init__(self, result: Optional[CallAnalysis] = None, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls: List[str] = []

    async def analyze(self, call_id: str) -> CallAnalysis:
        self.calls.append(call_id)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'app.db'}"


@pytest.fixture
def store(db_url):
    """Opened store on a fresh SQLite file per test."""
    s = EventStore(db_url)
    s.open()
    yield s
    s.close()


@pytest.fixture
def sheets():
    return RecordingSheetsWriter()


@pytest.fixture
def settings(db_url):
    return Settings(db_url=db_url, timezone="America/Los_Angeles", queue_item_timeout=5.0)


@pytest.fixture
def analyzer():
    """No analysis by default; tests that need one override this fixture or build their own."""
    return None


@pytest.fixture
def services(settings, sheets, analyzer):
    return Services.build(settings, sheets=sheets, analyzer=analyzer)


@pytest.fixture
async def running_app(settings, services):
    """Running app (before_serving / after_serving hooks fire)."""
    app = create_app(settings, services)
    async with app.test_app() as running:
        yield running


@pytest.fixture
def client(running_app):
    return running_app.test_client()


def completion_payload(call_id: str = "c1", **overrides) -> dict:
    payload = {
        "call_id": call_id,
        "completed": True,
        "from": "+15555550100",
        "to": "+16507497390",
        "answered_by": "human",
        "call_length": 1.5,
        "summary": "Caller asked about a 1BR.",
        "concatenated_transcript": "user: hi\nassistant: hello",
        "recording_url": "https://example.com/rec.mp3",
        "created_at": "2026-02-03T13:40:00-08:00",
        "completed_at": "2026-02-03T13:45:12-08:00",
    }
    payload.update(overrides)
    return payload
