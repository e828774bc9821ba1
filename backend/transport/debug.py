# backend/transport/debug.py
from quart import Blueprint, request

from services import get_services

debug_bp = Blueprint("debug", __name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 500


def _limit_arg() -> int:
    try:
        limit = int(request.args.get("limit", DEFAULT_LIMIT))
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    return limit if 1 <= limit <= MAX_LIMIT else DEFAULT_LIMIT


@debug_bp.get("/calls")
async def list_calls():
    store = get_services().store
    calls = store.list_calls(_limit_arg())
    return {"ok": True, "calls": [c.model_dump() for c in calls]}


@debug_bp.get("/calls/<call_id>")
async def get_call(call_id: str):
    store = get_services().store
    call = store.get_call(call_id)
    if call is None:
        return {"ok": False}, 404

    return {
        "ok": True,
        "call": call.model_dump(),
        "events": [e.model_dump() for e in store.list_events(call_id)],
        "toolRuns": [t.model_dump() for t in store.list_tool_runs(call_id)],
        "writes": [w.model_dump() for w in store.list_writes(call_id)],
    }


@debug_bp.get("/queue")
async def queue_status():
    queue = get_services().queue
    return {
        "ok": True,
        "running": queue.running,
        "pending": queue.pending,
        "processed": queue.processed,
        "recent": [r.to_dict() for r in queue.recent_results()],
    }
