"""
Post-call classification through Bland's analyze endpoint.

Bland answers a fixed list of questions about a finished call; answers come
back positionally, so the order of ANALYSIS_QUESTIONS is the contract.
"""
import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from .client import BlandClient

logger = logging.getLogger(__name__)


class Intent(str, Enum):
    LEASE = "LEASE"
    MAINTENANCE = "MAINTENANCE"
    OTHER = "OTHER"


ANALYSIS_GOAL = (
    "Categorize and evaluate a phone call for The Rive inbound line (leasing vs maintenance "
    "vs other), and extract any captured lead/ticket fields without inventing information."
)

# (question, answer type), answer i maps to STRING_FIELDS[i - 2] after intent / routed_correctly
ANALYSIS_QUESTIONS: List[Tuple[str, str]] = [
    ("What is the caller's intent? Answer exactly one of: LEASE, MAINTENANCE, OTHER.", "string"),
    ("Did the agent correctly route the call for the caller's intent? Answer true or false.", "boolean"),

    ("Extract the caller name if provided, otherwise null.", "string"),
    ("Extract the caller email if provided, otherwise null.", "string"),
    ("Extract the desired move-in date/timeframe if provided, otherwise null.", "string"),
    ("Extract the desired unit type (Studio/1BR/2BR/Other) if provided, otherwise null.", "string"),
    ("Extract the desired lease term (6/12/18 months) if provided, otherwise null.", "string"),
    ("Extract the budget if provided, otherwise null.", "string"),
    ("Extract pets info if provided, otherwise null.", "string"),

    ("If maintenance: extract the unit number if provided, otherwise null.", "string"),
    ("If maintenance: extract the issue summary if provided, otherwise null.", "string"),
    ("If maintenance: extract urgency (Emergency/Urgent/Routine/Unknown) if provided, otherwise null.", "string"),
    ("If maintenance: is access OK to enter when not home? Answer Yes/No/Unknown.", "string"),

    ("Any other important notes to store for follow-up? Keep it brief.", "string"),
]

STRING_FIELDS = [
    "name", "email", "move_in_date", "unit_type", "lease_term", "budget", "pets",
    "unit_number", "issue_summary", "urgency", "access_ok",
    "notes",
]

LEASE_FIELDS = ("name", "email", "move_in_date", "unit_type")
MAINTENANCE_FIELDS = ("unit_number", "issue_summary")


@dataclass
class CallAnalysis:
    intent: Intent
    routed_correctly: Optional[bool] = None

    name: Optional[str] = None
    email: Optional[str] = None
    move_in_date: Optional[str] = None
    unit_type: Optional[str] = None
    lease_term: Optional[str] = None
    budget: Optional[str] = None
    pets: Optional[str] = None

    unit_number: Optional[str] = None
    issue_summary: Optional[str] = None
    urgency: Optional[str] = None
    access_ok: Optional[str] = None

    notes: Optional[str] = None

    def has_lease_details(self) -> bool:
        return any(getattr(self, f) for f in LEASE_FIELDS)

    def has_maintenance_details(self) -> bool:
        return any(getattr(self, f) for f in MAINTENANCE_FIELDS)

    def to_dict(self) -> Dict[str, Any]:
        """JSON document stored on the call; unset extracted fields are omitted."""
        data = {k: v for k, v in asdict(self).items() if v is not None or k == "routed_correctly"}
        data["intent"] = self.intent.value
        return data


def normalize_intent(value: Any) -> Intent:
    if not isinstance(value, str):
        return Intent.OTHER
    try:
        return Intent(value.strip().upper())
    except ValueError:
        return Intent.OTHER


def clean_answer(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed or trimmed.lower() == "null":
        return None
    return trimmed


def parse_answers(answers: Any) -> CallAnalysis:
    answers = answers if isinstance(answers, list) else []

    def answer(i):
        return answers[i] if i < len(answers) else None

    routed = answer(1)
    analysis = CallAnalysis(
        intent=normalize_intent(answer(0)),
        routed_correctly=routed if isinstance(routed, bool) else None,
    )
    for offset, name in enumerate(STRING_FIELDS, start=2):
        setattr(analysis, name, clean_answer(answer(offset)))
    return analysis


async def analyze_call(client: BlandClient, call_id: str) -> CallAnalysis:
    res = await client.request(
        "POST",
        f"/v1/calls/{quote(call_id, safe='')}/analyze",
        {"goal": ANALYSIS_GOAL, "questions": [list(q) for q in ANALYSIS_QUESTIONS]},
    )
    answers = res.get("answers") if isinstance(res, dict) else None
    return parse_answers(answers)


class BlandAnalyzer:
    def __init__(self, client: BlandClient):
        self.client = client

    async def analyze(self, call_id: str) -> CallAnalysis:
        analysis = await analyze_call(self.client, call_id)
        logger.info("call %s analyzed: intent=%s", call_id, analysis.intent.value)
        return analysis
