"""
tests/test_webhook_routes.py: POST /webhooks/bland through the running app.
"""
import hashlib
import hmac
import json

import pytest

from bland.analysis import CallAnalysis, Intent
from config import Settings
from conftest import FakeAnalyzer, completion_payload
from data.models import WriteKind


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert await resp.get_json() == {"ok": True}


@pytest.mark.asyncio
async def test_completion_webhook_is_stored_and_processed(client, services, sheets):
    resp = await client.post(
        "/webhooks/bland",
        data=json.dumps(completion_payload("c1")),
        headers={"content-type": "application/json", "x-request-id": "req-9", "cookie": "a=b"},
    )
    assert resp.status_code == 200
    assert await resp.get_json() == {"ok": True}

    await services.queue.join()

    (event,) = services.store.list_events("c1")
    assert event.payload["call_id"] == "c1"
    assert "cookie" not in event.headers
    assert event.headers["x-request-id"] == "req-9"
    assert len(sheets.of_type("call_log")) == 1
    (result,) = services.queue.recent_results()
    assert result.item.request_id == "req-9"


@pytest.mark.asyncio
async def test_duplicate_delivery_logs_once(client, services, sheets):
    body = json.dumps(completion_payload("c1"))
    for _ in range(2):
        resp = await client.post("/webhooks/bland", data=body, headers={"content-type": "application/json"})
        assert resp.status_code == 200
    await services.queue.join()

    assert len(services.store.list_events("c1")) == 2
    assert len(sheets.of_type("call_log")) == 1
    assert len(services.store.list_writes("c1")) == 1


@pytest.mark.asyncio
async def test_ack_even_when_processing_fails(client, services, sheets):
    sheets.fail_on.add("call_log")

    resp = await client.post("/webhooks/bland", data=json.dumps(completion_payload("c1")))
    assert resp.status_code == 200
    await services.queue.join()

    assert len(services.store.list_events("c1")) == 1
    assert not services.store.has_write("c1", WriteKind.CALL_LOG)


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"", b"{not json"])
async def test_bad_bodies_rejected(client, services, body):
    resp = await client.post("/webhooks/bland", data=body)
    assert resp.status_code == 400
    assert services.queue.pending == 0


class TestSignedWebhooks:
    SECRET = "whsec_test"

    @pytest.fixture
    def settings(self, db_url):
        return Settings(db_url=db_url, bland_webhook_secret=self.SECRET)

    def _sig(self, body: bytes) -> str:
        return hmac.new(self.SECRET.encode(), body, hashlib.sha256).hexdigest()

    @pytest.mark.asyncio
    async def test_valid_signature_accepted(self, client):
        body = json.dumps({"call_id": "c2", "category": "tool"}).encode()
        resp = await client.post("/webhooks/bland", data=body, headers={"x-webhook-signature": self._sig(body)})
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_invalid_signature_rejected_and_not_stored(self, client, services):
        body = json.dumps({"call_id": "c2"}).encode()
        resp = await client.post("/webhooks/bland", data=body, headers={"x-webhook-signature": "00" * 32})
        assert resp.status_code == 401
        assert services.store.list_events("c2") == []

    @pytest.mark.asyncio
    async def test_missing_signature_rejected(self, client):
        resp = await client.post("/webhooks/bland", data=b'{"call_id":"c2"}')
        assert resp.status_code == 401


class TestWebhookWithAnalysis:
    @pytest.fixture
    def analyzer(self):
        return FakeAnalyzer(CallAnalysis(intent=Intent.MAINTENANCE, issue_summary="no hot water"))

    @pytest.mark.asyncio
    async def test_fallback_ticket_from_analysis(self, client, services, sheets, analyzer):
        await client.post("/webhooks/bland", data=json.dumps(completion_payload("c3")))
        await services.queue.join()

        assert analyzer.calls == ["c3"]
        (ticket,) = sheets.of_type("maintenance_ticket")
        assert ticket.issue_summary == "no hot water"
        assert services.store.get_call("c3").detected_intent == "MAINTENANCE"
