"""
Boundary normalization for inbound Bland webhook payloads.

Webhook bodies are loosely shaped JSON; everything downstream works with an
`InboundEvent`, whose `kind` tells the pipeline what it is looking at:

    completion    -> the call is over; `details` carries the typed call fields
    update        -> has a call id but is not a completion (tool / status pings)
    unattributed  -> no call id could be found; recorded, never processed

Each field is checked independently and falls back to
None, so a partially populated payload never raises here.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class EventKind(str, Enum):
    COMPLETION = "completion"
    UPDATE = "update"
    UNATTRIBUTED = "unattributed"


@dataclass(frozen=True)
class CallDetails:
    call_id: str
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    answered_by: Optional[str] = None
    duration_minutes: Optional[float] = None
    summary: Optional[str] = None
    transcript: Optional[str] = None
    recording_url: Optional[str] = None
    started_at: Optional[str] = None
    ended_at: Optional[str] = None


@dataclass(frozen=True)
class InboundEvent:
    kind: EventKind
    payload: Any
    call_id: Optional[str] = None
    category: Optional[str] = None
    details: Optional[CallDetails] = None

    @property
    def is_completion(self) -> bool:
        return self.kind is EventKind.COMPLETION


def _obj(payload: Any) -> Dict[str, Any]:
    return payload if isinstance(payload, dict) else {}


def _str(obj: Dict[str, Any], key: str) -> Optional[str]:
    value = obj.get(key)
    return value if isinstance(value, str) else None


def _nonempty_str(obj: Dict[str, Any], key: str) -> Optional[str]:
    value = _str(obj, key)
    return value or None


def _number(obj: Dict[str, Any], key: str) -> Optional[float]:
    value = obj.get(key)
    # bool is an int subclass; `true` is not a duration
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def extract_call_id(payload: Any) -> Optional[str]:
    obj = _obj(payload)
    call_id = _nonempty_str(obj, "call_id") or _nonempty_str(obj, "c_id")
    if call_id:
        return call_id
    return _nonempty_str(_obj(obj.get("data")), "call_id")


def extract_category(payload: Any) -> Optional[str]:
    obj = _obj(payload)
    return _nonempty_str(obj, "category") or _nonempty_str(obj, "type")


def is_completion_payload(payload: Any) -> bool:
    obj = _obj(payload)

    # Post-call webhooks carry `completed: true`
    if obj.get("completed") is True:
        return True
    status = _str(obj, "status")
    if status is not None and status.lower() == "completed":
        return True

    # Call-details payloads carry a summary / transcript
    if _nonempty_str(obj, "concatenated_transcript"):
        return True
    if _nonempty_str(obj, "summary"):
        return True
    return False


def extract_call_details(call_id: str, payload: Any) -> CallDetails:
    obj = _obj(payload)
    return CallDetails(
        call_id=call_id,
        from_number=_str(obj, "from"),
        to_number=_str(obj, "to"),
        answered_by=_str(obj, "answered_by"),
        duration_minutes=_number(obj, "call_length"),
        summary=_str(obj, "summary"),
        transcript=_str(obj, "concatenated_transcript"),
        recording_url=_str(obj, "recording_url"),
        started_at=_str(obj, "created_at"),
        ended_at=_str(obj, "completed_at"),
    )


def parse_event(payload: Any) -> InboundEvent:
    call_id = extract_call_id(payload)
    category = extract_category(payload)

    if call_id is None:
        return InboundEvent(EventKind.UNATTRIBUTED, payload, category=category)
    if not is_completion_payload(payload):
        return InboundEvent(EventKind.UPDATE, payload, call_id=call_id, category=category)
    return InboundEvent(
        EventKind.COMPLETION,
        payload,
        call_id=call_id,
        category=category,
        details=extract_call_details(call_id, payload),
    )
