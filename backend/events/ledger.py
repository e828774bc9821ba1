"""
At-most-once side effects, gated by the `writes` ledger.

Each external append for a (call_id, kind) pair moves through

    not_attempted --acquire--> in_flight --commit--> committed
                                   |
                                   +--release--> not_attempted   (compensation)

`acquire` is the store's conditional insert, so only one caller (across
connections and processes) ever holds a given pair in flight.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from data.models import SHEET_TABS, WriteKind
from data.store import EventStore

logger = logging.getLogger(__name__)


class WriteState(str, Enum):
    NOT_ATTEMPTED = "not_attempted"
    IN_FLIGHT = "in_flight"
    COMMITTED = "committed"


class WriteOutcome(str, Enum):
    COMMITTED = "committed"
    DEDUPED = "deduped"
    FAILED = "failed"


class InvalidTransition(RuntimeError):
    pass


class SideEffect:
    def __init__(self, store: EventStore, call_id: str, kind: WriteKind, created_at: str):
        self.store = store
        self.call_id = call_id
        self.kind = kind
        self.created_at = created_at
        self.state = WriteState.NOT_ATTEMPTED

    def _expect(self, state: WriteState, action: str):
        if self.state is not state:
            raise InvalidTransition(
                f"cannot {action} {self.kind.value} for {self.call_id} from state {self.state.value}"
            )

    def acquire(self) -> bool:
        self._expect(WriteState.NOT_ATTEMPTED, "acquire")
        acquired = self.store.try_insert_write(
            self.call_id, self.kind, SHEET_TABS[self.kind], self.created_at
        )
        if acquired:
            self.state = WriteState.IN_FLIGHT
        return acquired

    def commit(self, committed_at: Optional[str] = None):
        self._expect(WriteState.IN_FLIGHT, "commit")
        self.store.mark_write_committed(self.call_id, self.kind, committed_at or self.created_at)
        self.state = WriteState.COMMITTED

    def release(self):
        self._expect(WriteState.IN_FLIGHT, "release")
        self.store.delete_write(self.call_id, self.kind)
        self.state = WriteState.NOT_ATTEMPTED


@dataclass
class WriteResult:
    kind: WriteKind
    outcome: WriteOutcome
    error: Optional[str] = None

    @property
    def deduped(self) -> bool:
        return self.outcome is WriteOutcome.DEDUPED

    def to_dict(self):
        return {"kind": self.kind.value, "outcome": self.outcome.value, "error": self.error}


async def perform_write(
    store: EventStore,
    call_id: str,
    kind: WriteKind,
    append: Callable[[], Awaitable[None]],
    created_at: str,
    now: Optional[Callable[[], str]] = None,
) -> WriteResult:
    """
    Run `append` at most once for (call_id, kind).

    A failed append releases the ledger row so a later delivery can retry.
    Storage errors are not caught here; they propagate to the caller.
    """
    effect = SideEffect(store, call_id, kind, created_at)
    if not effect.acquire():
        logger.info("%s already written for call %s, skipping", kind.value, call_id)
        return WriteResult(kind, WriteOutcome.DEDUPED)

    try:
        await append()
    except Exception as e:
        effect.release()
        logger.error("failed to append %s for call %s: %s", kind.value, call_id, e)
        return WriteResult(kind, WriteOutcome.FAILED, error=str(e) or type(e).__name__)

    effect.commit(now() if now else None)
    logger.info("appended %s for call %s", kind.value, call_id)
    return WriteResult(kind, WriteOutcome.COMMITTED)
