import logging
import os
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, event, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine, make_url
from sqlmodel import Session, SQLModel, col, create_engine, select

from .models import Call, Event, ToolRun, Write, WriteKind

logger = logging.getLogger(__name__)

DEFAULT_DB_URL = "sqlite:///data/app.db"


class StoreNotOpenError(RuntimeError):
    pass


def _kind(kind: WriteKind) -> str:
    return kind.value if isinstance(kind, WriteKind) else WriteKind(kind).value


class EventStore:
    """
    Local SQLite persistence for events, calls, the writes ledger and tool runs.

    Every public operation is a single statement in its own transaction; the
    writes ledger relies on the (call_id, kind) unique constraint so that
    `try_insert_write` stays atomic across connections and processes.
    """

    def __init__(self, db_url: str = DEFAULT_DB_URL, busy_timeout_ms: int = 5000):
        url = make_url(db_url)
        if url.get_backend_name() != "sqlite":
            raise ValueError(f"EventStore requires a sqlite URL, got {db_url!r}")
        self.db_url = db_url
        self.busy_timeout_ms = busy_timeout_ms
        self._engine: Optional[Engine] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> "EventStore":
        if self._engine is not None:
            return self

        database = make_url(self.db_url).database
        if database and database != ":memory:":
            parent = os.path.dirname(os.path.abspath(database))
            os.makedirs(parent, exist_ok=True)

        engine = create_engine(
            self.db_url,
            connect_args={"check_same_thread": False, "timeout": self.busy_timeout_ms / 1000},
        )

        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA journal_mode=WAL")
            cur.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)}")
            cur.close()

        SQLModel.metadata.create_all(engine)
        self._engine = engine
        logger.info("event store opened at %s", self.db_url)
        return self

    def close(self):
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("event store closed")

    def __enter__(self) -> "EventStore":
        return self.open()

    def __exit__(self, *exc):
        self.close()

    def _require_engine(self) -> Engine:
        if self._engine is None:
            raise StoreNotOpenError("EventStore.open() must be called first")
        return self._engine

    def _session(self) -> Session:
        return Session(self._require_engine(), expire_on_commit=False)

    def _execute(self, stmt) -> int:
        """Run one DML statement in its own transaction; returns the affected row count."""
        with self._require_engine().begin() as conn:
            return conn.execute(stmt).rowcount

    # ------------------------------------------------------------------
    # Events / tool runs (append-only)
    # ------------------------------------------------------------------

    def record_event(
        self,
        received_at: str,
        call_id: Optional[str],
        category: Optional[str],
        payload: Any,
        headers: Optional[Dict[str, Any]] = None,
    ) -> Event:
        row = Event(
            received_at=received_at,
            call_id=call_id,
            category=category,
            payload=payload,
            headers=headers or None,
        )
        with self._session() as s:
            s.add(row)
            s.commit()
            s.refresh(row)
            return row

    def record_tool_run(
        self,
        call_id: str,
        tool_name: str,
        created_at: str,
        request: Any,
        response: Any,
    ) -> ToolRun:
        row = ToolRun(
            call_id=call_id,
            tool_name=tool_name,
            created_at=created_at,
            request=request,
            response=response,
        )
        with self._session() as s:
            s.add(row)
            s.commit()
            s.refresh(row)
            return row

    # ------------------------------------------------------------------
    # Calls projection
    # ------------------------------------------------------------------

    def upsert_call(self, call: Call):
        values = call.model_dump()
        stmt = sqlite_insert(Call.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["call_id"],
            set_={name: stmt.excluded[name] for name in values if name != "call_id"},
        )
        self._execute(stmt)

    def get_call(self, call_id: str) -> Optional[Call]:
        with self._session() as s:
            return s.get(Call, call_id)

    def list_calls(self, limit: int = 50) -> List[Call]:
        # Ended calls first (most recent first), calls without ended_at last
        stmt = (
            select(Call)
            .order_by(col(Call.ended_at).is_(None), col(Call.ended_at).desc())
            .limit(limit)
        )
        with self._session() as s:
            return list(s.exec(stmt).all())

    # ------------------------------------------------------------------
    # Writes ledger
    # ------------------------------------------------------------------

    def try_insert_write(
        self,
        call_id: str,
        kind: WriteKind,
        sheet_tab: Optional[str],
        created_at: str,
    ) -> bool:
        """
        Insert the (call_id, kind) ledger row unless it already exists.
        Returns True only for the caller that actually inserted it.
        """
        stmt = (
            sqlite_insert(Write.__table__)
            .values(call_id=call_id, kind=_kind(kind), sheet_tab=sheet_tab, created_at=created_at)
            .on_conflict_do_nothing(index_elements=["call_id", "kind"])
        )
        return self._execute(stmt) > 0

    def has_write(self, call_id: str, kind: WriteKind) -> bool:
        stmt = select(Write.id).where(Write.call_id == call_id, Write.kind == _kind(kind)).limit(1)
        with self._session() as s:
            return s.exec(stmt).first() is not None

    def get_write(self, call_id: str, kind: WriteKind) -> Optional[Write]:
        stmt = select(Write).where(Write.call_id == call_id, Write.kind == _kind(kind))
        with self._session() as s:
            return s.exec(stmt).first()

    def mark_write_committed(self, call_id: str, kind: WriteKind, committed_at: str) -> bool:
        stmt = (
            update(Write)
            .where(col(Write.call_id) == call_id, col(Write.kind) == _kind(kind))
            .values(committed_at=committed_at)
        )
        return self._execute(stmt) > 0

    def delete_write(self, call_id: str, kind: WriteKind):
        stmt = delete(Write).where(col(Write.call_id) == call_id, col(Write.kind) == _kind(kind))
        self._execute(stmt)

    def list_writes(self, call_id: str) -> List[Write]:
        stmt = select(Write).where(Write.call_id == call_id).order_by(col(Write.id))
        with self._session() as s:
            return list(s.exec(stmt).all())

    # ------------------------------------------------------------------
    # Read-only projections for operational tooling
    # ------------------------------------------------------------------

    def list_events(self, call_id: str) -> List[Event]:
        stmt = select(Event).where(Event.call_id == call_id).order_by(col(Event.id))
        with self._session() as s:
            return list(s.exec(stmt).all())

    def list_tool_runs(self, call_id: str) -> List[ToolRun]:
        stmt = select(ToolRun).where(ToolRun.call_id == call_id).order_by(col(ToolRun.id))
        with self._session() as s:
            return list(s.exec(stmt).all())
