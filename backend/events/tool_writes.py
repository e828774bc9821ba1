"""
Write path for the agent's in-call tools (lease lead / maintenance ticket).

Same ledger gate as the post-call pipeline, so a tool call and the fallback
intake can never both land a row for the same call and kind.
"""
import logging
from dataclasses import fields as dataclass_fields
from typing import Any, Dict, Optional

from data.clock import iso_now
from data.models import WriteKind
from data.store import EventStore
from sheets.rows import LeaseLeadRow, MaintenanceTicketRow
from sheets.writer import SheetsWriter
from .ledger import WriteOutcome, WriteResult, perform_write

logger = logging.getLogger(__name__)

TOOL_NAMES = {
    WriteKind.LEASE_LEAD: "RiveLogLeaseLead",
    WriteKind.MAINTENANCE_TICKET: "RiveLogMaintenanceTicket",
}

# Key the agent reads back from the tool response
RESPONSE_ID_KEYS = {
    WriteKind.LEASE_LEAD: "lead_id",
    WriteKind.MAINTENANCE_TICKET: "ticket_id",
}

_ROW_TYPES = {
    WriteKind.LEASE_LEAD: LeaseLeadRow,
    WriteKind.MAINTENANCE_TICKET: MaintenanceTicketRow,
}
_BASE_COLUMNS = {"created_at", "call_id", "caller_phone", "tool_logged"}


class ToolWrites:
    def __init__(self, store: EventStore, sheets: SheetsWriter, timezone: str = "America/Los_Angeles"):
        self.store = store
        self.sheets = sheets
        self.timezone = timezone

    def _now(self) -> str:
        return iso_now(self.timezone)

    def _append(self, kind: WriteKind, row):
        if kind is WriteKind.LEASE_LEAD:
            return self.sheets.append_lease_lead(row)
        return self.sheets.append_maintenance_ticket(row)

    async def log(
        self,
        call_id: str,
        caller_phone: str,
        kind: WriteKind,
        fields: Dict[str, Any],
        request: Optional[Dict[str, Any]] = None,
    ) -> WriteResult:
        row_type = _ROW_TYPES.get(kind)
        if row_type is None:
            raise ValueError(f"no tool writes {kind}")

        now = self._now()
        allowed = {f.name for f in dataclass_fields(row_type)} - _BASE_COLUMNS
        row = row_type(
            created_at=now,
            call_id=call_id,
            caller_phone=caller_phone,
            tool_logged=True,
            **{k: v for k, v in fields.items() if k in allowed},
        )

        result = await perform_write(
            self.store, call_id, kind, lambda: self._append(kind, row), created_at=now, now=self._now
        )
        if result.outcome is WriteOutcome.COMMITTED:
            self.store.record_tool_run(
                call_id=call_id,
                tool_name=TOOL_NAMES[kind],
                created_at=now,
                request=request if request is not None else {"fields": fields},
                response={"ok": True, RESPONSE_ID_KEYS[kind]: call_id},
            )
        return result
