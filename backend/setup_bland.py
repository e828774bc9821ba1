"""
Create/update the agent's two Bland tools and point the inbound number at this
service (prompt, voice, webhook, tools).

    python setup_bland.py

Needs BLAND_API_KEY, PUBLIC_BASE_URL, BLAND_INBOUND_NUMBER and TOOLS_SHARED_SECRET.
"""
import asyncio
import logging
import sys
from typing import Any, Dict, List
from urllib.parse import quote

from bland.client import BlandClient
from bland.prompt import SYSTEM_PROMPT
from config import ConfigError, Settings
from logging_config import configure_logging

logger = logging.getLogger("setup_bland")

WEBHOOK_EVENTS = ["call", "tool", "webhook"]


def _require(settings: Settings):
    missing = [
        name for name, value in (
            ("BLAND_API_KEY", settings.bland_api_key),
            ("PUBLIC_BASE_URL", settings.public_base_url),
            ("BLAND_INBOUND_NUMBER", settings.bland_inbound_number),
            ("TOOLS_SHARED_SECRET", settings.tools_shared_secret),
        )
        if not value
    ]
    if missing:
        raise ConfigError("Missing " + ", ".join(missing))


def _string_props(descriptions: Dict[str, str]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {k: {"type": "string", "description": d} for k, d in descriptions.items()},
    }


def _tool(
    settings: Settings,
    name: str,
    description: str,
    speech: str,
    path: str,
    inputs: Dict[str, str],
    id_key: str,
) -> Dict[str, Any]:
    return {
        "name": name,
        "description": description,
        "speech": speech,
        "url": f"{settings.public_base_url}{path}",
        "method": "POST",
        "headers": {"authorization": f"Bearer {settings.tools_shared_secret}"},
        "query": {"call_id": "{{call_id}}", "caller": "{{phone_number}}"},
        "body": {k: f"{{{{input.{k}}}}}" for k in inputs},
        "input_schema": _string_props(inputs),
        "response": {"ok": "$.data.ok", id_key: f"$.data.{id_key}"},
    }


def build_lease_tool(settings: Settings) -> Dict[str, Any]:
    return _tool(
        settings,
        name="RiveLogLeaseLead",
        description="Log a leasing lead for The Rive into Google Sheets.",
        speech="Got it, I'll save those details for our leasing team.",
        path="/tools/log-lease-lead",
        inputs={
            "name": "Caller preferred name.",
            "email": "Caller email address (optional).",
            "move_in_date": "Desired move-in date or timeframe.",
            "unit_type": "Studio / 1BR / 2BR / Other.",
            "lease_term": "6 / 12 / 18 months (availability varies).",
            "budget": "Budget if provided.",
            "pets": "Pets info if provided.",
            "notes": "Any extra context.",
        },
        id_key="lead_id",
    )


def build_maintenance_tool(settings: Settings) -> Dict[str, Any]:
    return _tool(
        settings,
        name="RiveLogMaintenanceTicket",
        description="Log a maintenance request for The Rive into Google Sheets.",
        speech="Thanks, I'm logging that maintenance request now.",
        path="/tools/log-maintenance-ticket",
        inputs={
            "unit_number": "Resident unit number.",
            "issue_summary": "Short description of the issue.",
            "urgency": "Emergency / Urgent / Routine / Unknown.",
            "access_ok": "Yes / No / Unknown.",
            "notes": "Any extra context.",
        },
        id_key="ticket_id",
    )


async def upsert_tool(client: BlandClient, existing: List[Dict[str, Any]], tool_def: Dict[str, Any]) -> str:
    """Update the tool with the same name if Bland already has one, else create it."""
    match = next(
        (t for t in existing if (t.get("tool") or {}).get("name") == tool_def["name"]),
        None,
    )
    if match is None:
        created = await client.request("POST", "/v1/tools", tool_def)
        tool_id = created.get("tool_id") if isinstance(created, dict) else None
        if not tool_id:
            raise RuntimeError(f"Failed to create tool {tool_def['name']}")
        logger.info("created tool %s: %s", tool_def["name"], tool_id)
        return tool_id

    tool_id = match["tool_id"]
    await client.request("POST", f"/v1/tools/{quote(tool_id, safe='')}", tool_def)
    logger.info("updated tool %s: %s", tool_def["name"], tool_id)
    return tool_id


async def configure_inbound(client: BlandClient, settings: Settings) -> Dict[str, Any]:
    _require(settings)

    listing = await client.request("GET", "/v1/tools")
    existing = listing.get("tools", []) if isinstance(listing, dict) else []
    lease_id = await upsert_tool(client, existing, build_lease_tool(settings))
    maintenance_id = await upsert_tool(client, existing, build_maintenance_tool(settings))

    config = {
        "prompt": SYSTEM_PROMPT,
        "voice": settings.bland_voice,
        "model": settings.bland_model,
        "timezone": settings.timezone,
        "webhook": f"{settings.public_base_url}/webhooks/bland",
        "webhook_events": WEBHOOK_EVENTS,
        "tools": [lease_id, maintenance_id],
    }
    number = quote(settings.bland_inbound_number, safe="")
    await client.request("POST", f"/v1/inbound/{number}", config)
    return config


async def _main() -> int:
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_format)

    client = BlandClient.from_settings(settings)
    try:
        config = await configure_inbound(client, settings)
    finally:
        await client.aclose()

    print("Updated inbound number config")
    print(f"- Number: {settings.bland_inbound_number}")
    print(f"- Webhook: {config['webhook']}")
    print(f"- Tools: {', '.join(config['tools'])}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(_main()))
