import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from bland.analysis import CallAnalysis, Intent
from data.clock import iso_now
from data.models import Call, WriteKind
from data.store import EventStore
from sheets.rows import CallLogRow, LeaseLeadRow, MaintenanceTicketRow, fallback_notes
from sheets.writer import SheetsWriter
from .ledger import WriteOutcome, WriteResult, perform_write
from .payloads import CallDetails
from .queue import QueueItem

logger = logging.getLogger(__name__)


class PipelineStatus(str, Enum):
    SKIPPED = "skipped"                 # not a completion event
    ALREADY_LOGGED = "already_logged"   # CALL_LOG ledger row already present
    LOGGED = "logged"
    FAILED = "failed"


@dataclass
class PipelineResult:
    call_id: Optional[str]
    status: PipelineStatus
    writes: List[WriteResult] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status is PipelineStatus.FAILED

    def to_dict(self):
        return {
            "call_id": self.call_id,
            "status": self.status.value,
            "writes": [w.to_dict() for w in self.writes],
            "error": self.error,
        }


class CompletionPipeline:
    """
    Turns a completion event into the call projection plus at most one sheet
    row per write kind.

    `analyzer` is optional (no Bland API key -> no analysis, intent stays None).
    Errors from analysis or storage end the run for this event and come back as
    a FAILED result; they never propagate to the queue.
    """

    def __init__(
        self,
        store: EventStore,
        sheets: SheetsWriter,
        analyzer=None,
        timezone: str = "America/Los_Angeles",
    ):
        self.store = store
        self.sheets = sheets
        self.analyzer = analyzer
        self.timezone = timezone

    def _now(self) -> str:
        return iso_now(self.timezone)

    async def handle(self, item: QueueItem) -> PipelineResult:
        event = item.event
        if not event.is_completion or event.details is None:
            return PipelineResult(event.call_id, PipelineStatus.SKIPPED)

        try:
            return await self.process_completion(event.details)
        except Exception as e:
            # The raw event is already stored; a later duplicate delivery can retry.
            logger.exception("processing completion for call %s failed", event.call_id)
            return PipelineResult(event.call_id, PipelineStatus.FAILED, error=str(e) or type(e).__name__)

    async def process_completion(self, call: CallDetails) -> PipelineResult:
        now = self._now()

        analysis: Optional[CallAnalysis] = None
        if self.analyzer is not None:
            analysis = await self.analyzer.analyze(call.call_id)
        detected_intent = analysis.intent.value if analysis else None
        analysis_doc = analysis.to_dict() if analysis else None

        self.store.upsert_call(Call(
            call_id=call.call_id,
            started_at=call.started_at,
            ended_at=call.ended_at or now,
            from_number=call.from_number,
            to_number=call.to_number,
            answered_by=call.answered_by,
            duration_minutes=call.duration_minutes,
            summary=call.summary,
            transcript=call.transcript,
            recording_url=call.recording_url,
            detected_intent=detected_intent,
            analysis=analysis_doc,
        ))

        row = CallLogRow(
            created_at=now,
            call_id=call.call_id,
            from_number=call.from_number or "",
            to_number=call.to_number or "",
            answered_by=call.answered_by or "",
            duration_minutes=call.duration_minutes if call.duration_minutes is not None else "",
            summary=call.summary or "",
            transcript=call.transcript or "",
            recording_url=call.recording_url or "",
            detected_intent=detected_intent or "",
            eval_json=json.dumps(analysis_doc) if analysis_doc else "",
        )
        logged = await perform_write(
            self.store, call.call_id, WriteKind.CALL_LOG,
            lambda: self.sheets.append_call_log(row),
            created_at=now, now=self._now,
        )
        result = PipelineResult(call.call_id, PipelineStatus.LOGGED, writes=[logged])

        if logged.outcome is WriteOutcome.DEDUPED:
            result.status = PipelineStatus.ALREADY_LOGGED
            return result
        if logged.outcome is WriteOutcome.FAILED:
            result.status = PipelineStatus.FAILED
            result.error = logged.error
            return result

        if analysis is not None:
            fallback = await self.try_fallback_intake(call, analysis, now)
            if fallback is not None:
                result.writes.append(fallback)
        return result

    async def try_fallback_intake(
        self, call: CallDetails, analysis: CallAnalysis, now: str
    ) -> Optional[WriteResult]:
        """
        Log a lead / ticket from the post-call analysis when the live tool
        never did. Best effort: failures are logged and reported, never raised.
        """
        caller = call.from_number or ""
        notes = fallback_notes(analysis.notes)

        if analysis.intent is Intent.LEASE:
            if not analysis.has_lease_details():
                return None
            kind = WriteKind.LEASE_LEAD
            lead = LeaseLeadRow(
                created_at=now,
                call_id=call.call_id,
                caller_phone=caller,
                tool_logged=False,
                name=analysis.name,
                email=analysis.email,
                move_in_date=analysis.move_in_date,
                unit_type=analysis.unit_type,
                lease_term=analysis.lease_term,
                budget=analysis.budget,
                pets=analysis.pets,
                notes=notes,
            )

            def append():
                return self.sheets.append_lease_lead(lead)

        elif analysis.intent is Intent.MAINTENANCE:
            if not analysis.has_maintenance_details():
                return None
            kind = WriteKind.MAINTENANCE_TICKET
            ticket = MaintenanceTicketRow(
                created_at=now,
                call_id=call.call_id,
                caller_phone=caller,
                tool_logged=False,
                unit_number=analysis.unit_number,
                issue_summary=analysis.issue_summary,
                urgency=analysis.urgency,
                access_ok=analysis.access_ok,
                notes=notes,
            )

            def append():
                return self.sheets.append_maintenance_ticket(ticket)

        else:
            return None

        try:
            if self.store.has_write(call.call_id, kind):
                logger.info("%s already logged by tool for call %s, no fallback", kind.value, call.call_id)
                return None
            return await perform_write(
                self.store, call.call_id, kind, append, created_at=now, now=self._now
            )
        except Exception as e:
            logger.exception("fallback %s for call %s failed", kind.value, call.call_id)
            return WriteResult(kind, WriteOutcome.FAILED, error=str(e) or type(e).__name__)
