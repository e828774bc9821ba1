"""
Spreadsheet writers.

The production writer posts one row at a time to a Google Apps Script web app
bound to the spreadsheet; the script appends to the tab named by `type`.
When no Apps Script endpoint is configured the no-op writer is used instead.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from config import Settings
from .rows import CallLogRow, LeaseLeadRow, MaintenanceTicketRow

logger = logging.getLogger(__name__)


class SheetsWriteError(RuntimeError):
    def __init__(self, status: int, body: str):
        super().__init__(f"Sheets Apps Script error {status}: {body}")
        self.status = status
        self.body = body


def _truncate(s: str, max_chars: int = 500) -> str:
    return s if len(s) <= max_chars else s[:max_chars] + "…"


class SheetsWriter(ABC):
    @abstractmethod
    async def append_lease_lead(self, row: LeaseLeadRow) -> None:
        ...

    @abstractmethod
    async def append_maintenance_ticket(self, row: MaintenanceTicketRow) -> None:
        ...

    @abstractmethod
    async def append_call_log(self, row: CallLogRow) -> None:
        ...

    async def aclose(self) -> None:
        return None


class NoopSheetsWriter(SheetsWriter):
    """Accepts every row and writes nothing."""

    async def append_lease_lead(self, row: LeaseLeadRow) -> None:
        return None

    async def append_maintenance_ticket(self, row: MaintenanceTicketRow) -> None:
        return None

    async def append_call_log(self, row: CallLogRow) -> None:
        return None


class AppsScriptSheetsWriter(SheetsWriter):
    def __init__(
        self,
        url: str,
        token: str,
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        if not url:
            raise ValueError("Missing SHEETS_APPS_SCRIPT_URL")
        if not token:
            raise ValueError("Missing SHEETS_APPS_SCRIPT_TOKEN")
        self.url = url
        self.token = token
        self._owns_http = http is None
        # Apps Script web apps answer with a 302 to the script's output
        self._http = http or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def append_lease_lead(self, row: LeaseLeadRow) -> None:
        await self._post("lease_lead", row.to_payload())

    async def append_maintenance_ticket(self, row: MaintenanceTicketRow) -> None:
        await self._post("maintenance_ticket", row.to_payload())

    async def append_call_log(self, row: CallLogRow) -> None:
        await self._post("call_log", row.to_payload())

    async def _post(self, row_type: str, payload: Dict[str, Any]) -> None:
        body = {"token": self.token, "type": row_type, "payload": payload}
        resp = await self._http.post(self.url, json=body)
        if not resp.is_success:
            raise SheetsWriteError(resp.status_code, _truncate(resp.text))

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()


def get_sheets_writer(settings: Settings, http: Optional[httpx.AsyncClient] = None) -> SheetsWriter:
    if settings.sheets_enabled:
        return AppsScriptSheetsWriter(
            settings.sheets_apps_script_url,
            settings.sheets_apps_script_token,
            http=http,
            timeout=settings.http_timeout,
        )
    logger.warning("SHEETS_APPS_SCRIPT_URL / SHEETS_APPS_SCRIPT_TOKEN not set, sheet writes are disabled")
    return NoopSheetsWriter()
