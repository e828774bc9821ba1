from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


class WriteKind(str, Enum):
    LEASE_LEAD = "LEASE_LEAD"
    MAINTENANCE_TICKET = "MAINTENANCE_TICKET"
    CALL_LOG = "CALL_LOG"


# Destination tab in the spreadsheet for each write kind
SHEET_TABS: Dict[WriteKind, str] = {
    WriteKind.LEASE_LEAD: "Lease Leads",
    WriteKind.MAINTENANCE_TICKET: "Maintenance Tickets",
    WriteKind.CALL_LOG: "Call Logs",
}


class Event(SQLModel, table=True):
    __tablename__ = "events"

    id: Optional[int] = Field(default=None, primary_key=True)
    received_at: str                                    # ISO-8601 with offset
    call_id: Optional[str] = Field(default=None, index=True)
    category: Optional[str] = None
    payload: Any = Field(sa_column=Column(JSON, nullable=False))
    headers: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))


class Call(SQLModel, table=True):
    __tablename__ = "calls"

    call_id: str = Field(primary_key=True)
    started_at: Optional[str] = None
    ended_at: Optional[str] = Field(default=None, index=True)
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    answered_by: Optional[str] = None             # human | voicemail | ...
    duration_minutes: Optional[float] = None
    summary: Optional[str] = None
    transcript: Optional[str] = None
    recording_url: Optional[str] = None
    detected_intent: Optional[str] = None         # LEASE | MAINTENANCE | OTHER
    analysis: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))


class Write(SQLModel, table=True):
    """Idempotency ledger row: one per (call_id, kind) for the life of the database."""
    __tablename__ = "writes"
    __table_args__ = (UniqueConstraint("call_id", "kind", name="uq_writes_call_kind"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    call_id: str
    kind: str                                     # WriteKind value
    sheet_tab: Optional[str] = None
    created_at: str
    committed_at: Optional[str] = None            # set once the external append succeeded


class ToolRun(SQLModel, table=True):
    __tablename__ = "tool_runs"

    id: Optional[int] = Field(default=None, primary_key=True)
    call_id: str = Field(index=True)
    tool_name: str
    created_at: str
    request: Any = Field(sa_column=Column(JSON, nullable=False))
    response: Any = Field(sa_column=Column(JSON, nullable=False))
