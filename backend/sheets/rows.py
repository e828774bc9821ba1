from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Union

# Google Sheets caps a cell at 50k characters
SUMMARY_MAX_CHARS = 5000
TRANSCRIPT_MAX_CHARS = 45000
ANALYSIS_MAX_CHARS = 45000

FALLBACK_NOTE_PREFIX = "FALLBACK: "
FALLBACK_DEFAULT_NOTE = "FALLBACK: extracted from call eval"


def truncate_for_cell(value: str, max_chars: int) -> str:
    if len(value) <= max_chars:
        return value
    return value[:max_chars] + "…"


def _compact(row) -> Dict[str, Any]:
    return {k: v for k, v in asdict(row).items() if v is not None}


@dataclass
class LeaseLeadRow:
    created_at: str
    call_id: str
    caller_phone: str
    tool_logged: bool
    name: Optional[str] = None
    email: Optional[str] = None
    move_in_date: Optional[str] = None
    unit_type: Optional[str] = None
    lease_term: Optional[str] = None
    budget: Optional[str] = None
    pets: Optional[str] = None
    notes: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return _compact(self)


@dataclass
class MaintenanceTicketRow:
    created_at: str
    call_id: str
    caller_phone: str
    tool_logged: bool
    unit_number: Optional[str] = None
    issue_summary: Optional[str] = None
    urgency: Optional[str] = None
    access_ok: Optional[str] = None
    notes: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return _compact(self)


@dataclass
class CallLogRow:
    created_at: str
    call_id: str
    from_number: str = ""
    to_number: str = ""
    answered_by: str = ""
    duration_minutes: Union[float, str] = ""
    summary: str = ""
    transcript: str = ""
    recording_url: str = ""
    detected_intent: str = ""
    eval_json: str = ""

    def to_payload(self) -> Dict[str, Any]:
        # Column names expected by the Apps Script ("from" / "to")
        payload = asdict(self)
        payload["from"] = payload.pop("from_number")
        payload["to"] = payload.pop("to_number")
        payload["summary"] = truncate_for_cell(payload["summary"], SUMMARY_MAX_CHARS)
        payload["transcript"] = truncate_for_cell(payload["transcript"], TRANSCRIPT_MAX_CHARS)
        payload["eval_json"] = truncate_for_cell(payload["eval_json"], ANALYSIS_MAX_CHARS)
        return payload


def fallback_notes(notes: Optional[str]) -> str:
    return FALLBACK_NOTE_PREFIX + notes if notes else FALLBACK_DEFAULT_NOTE
