# backend/transport/tools.py
import hmac
import logging
import re
from typing import Any, Optional, Type

from pydantic import ValidationError, field_validator
from quart import Blueprint, request
from sqlmodel import SQLModel

from data.models import WriteKind
from events.ledger import WriteOutcome
from events.tool_writes import RESPONSE_ID_KEYS
from services import get_services

logger = logging.getLogger(__name__)

tools_bp = Blueprint("tools", __name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class LeaseLeadFields(SQLModel):
    name: Optional[str] = None
    email: Optional[str] = None
    move_in_date: Optional[str] = None
    unit_type: Optional[str] = None
    lease_term: Optional[str] = None
    budget: Optional[str] = None
    pets: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email_shape(cls, v):
        if v is not None and not _EMAIL_RE.match(v):
            raise ValueError("not an email address")
        return v


class MaintenanceTicketFields(SQLModel):
    unit_number: Optional[str] = None
    issue_summary: Optional[str] = None
    urgency: Optional[str] = None        # Emergency | Urgent | Routine | Unknown
    access_ok: Optional[str] = None      # Yes | No | Unknown
    notes: Optional[str] = None


def normalize_empty_strings(value: Any) -> Any:
    """Trim strings and drop empty ones; Bland sends "" for inputs the agent never filled."""
    if isinstance(value, list):
        return [normalize_empty_strings(v) for v in value]
    if not isinstance(value, dict):
        return value
    out = {}
    for k, v in value.items():
        if isinstance(v, str):
            v = v.strip()
            if v:
                out[k] = v
            continue
        out[k] = normalize_empty_strings(v)
    return out


def _authorized(secret: Optional[str]) -> bool:
    if not secret:
        return True   # open until TOOLS_SHARED_SECRET is configured
    given = request.headers.get("authorization") or ""
    return hmac.compare_digest(given.encode("utf-8"), f"Bearer {secret}".encode("utf-8"))


async def _handle_tool(kind: WriteKind, fields_model: Type[SQLModel]):
    services = get_services()
    if not _authorized(services.settings.tools_shared_secret):
        return {"ok": False}, 401

    call_id = (request.args.get("call_id") or "").strip()
    caller = (request.args.get("caller") or "").strip()
    if not call_id:
        return {"ok": False, "error": "invalid query"}, 400

    body = normalize_empty_strings(await request.get_json(silent=True))
    if not isinstance(body, dict):
        return {"ok": False, "error": "invalid body"}, 400
    try:
        fields = fields_model.model_validate(body).model_dump(exclude_none=True)
    except ValidationError:
        return {"ok": False, "error": "invalid body"}, 400

    query = {"call_id": call_id}
    if caller:
        query["caller"] = caller

    result = await services.tool_writes.log(
        call_id, caller, kind, fields, request={"query": query, "body": fields}
    )

    id_key = RESPONSE_ID_KEYS[kind]
    if result.outcome is WriteOutcome.DEDUPED:
        return {"ok": True, id_key: call_id, "deduped": True}
    if result.outcome is WriteOutcome.FAILED:
        logger.error("tool %s for call %s failed: %s", kind.value, call_id, result.error)
        return {"ok": False}, 500
    return {"ok": True, id_key: call_id}


# --- Tool: RiveLogLeaseLead ---
@tools_bp.post("/log-lease-lead")
async def log_lease_lead():
    return await _handle_tool(WriteKind.LEASE_LEAD, LeaseLeadFields)


# --- Tool: RiveLogMaintenanceTicket ---
@tools_bp.post("/log-maintenance-ticket")
async def log_maintenance_ticket():
    return await _handle_tool(WriteKind.MAINTENANCE_TICKET, MaintenanceTicketFields)
