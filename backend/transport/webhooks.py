# backend/transport/webhooks.py
import json
import logging

from quart import Blueprint, request

from services import get_services
from transport.signature import InvalidSignature, verify_bland_signature

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__)

# Not kept in the stored header snapshot
_REDACTED_HEADERS = {"authorization", "cookie", "x-webhook-signature"}


# --- Bland webhook: verify, store, enqueue, ack ---
@webhooks_bp.post("/bland")
async def bland_webhook():
    """
    Always answers 200 once the event is stored; processing happens on the
    queue worker and its outcome is never reported back to Bland.
    """
    services = get_services()

    raw_body = await request.get_data()
    if not raw_body:
        return {"ok": False}, 400

    try:
        verify_bland_signature(services.settings.bland_webhook_secret, request.headers, raw_body)
    except InvalidSignature as e:
        logger.warning("rejected webhook: %s", e)
        return {"ok": False}, 401

    try:
        payload = json.loads(raw_body)
    except ValueError:
        return {"ok": False, "error": "invalid json"}, 400

    headers = {
        k.lower(): v for k, v in request.headers.items()
        if k.lower() not in _REDACTED_HEADERS
    }
    services.intake.record_incoming_event(
        payload,
        headers=headers,
        request_id=request.headers.get("x-request-id"),
    )
    return {"ok": True}
