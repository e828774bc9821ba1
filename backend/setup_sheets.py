import asyncio
import sys
import time

from config import Settings
from data.clock import iso_now
from sheets.rows import CallLogRow, LeaseLeadRow, MaintenanceTicketRow
from sheets.writer import AppsScriptSheetsWriter

INSTRUCTIONS = """
The Rive: Google Sheets (Apps Script) setup

1) Create a Google Spreadsheet named: The Rive - Voice Ops
2) Create 3 tabs:
   - "Lease Leads"
   - "Maintenance Tickets"
   - "Call Logs"
3) Extensions -> Apps Script
4) Paste the Apps Script web app code into the editor
5) Project Settings -> Script Properties -> add:
   - SHEETS_WEBHOOK_TOKEN = <random secret>
6) Deploy -> New deployment -> Web app
   - Execute as: Me
   - Who has access: Anyone
7) Copy the Web App URL into your .env:
   - SHEETS_APPS_SCRIPT_URL=...
   - SHEETS_APPS_SCRIPT_TOKEN=... (same as SHEETS_WEBHOOK_TOKEN)
"""

TEST_PHONE = "+15555550100"


async def write_test_rows(writer, timezone: str, call_id: str):
    """One row per tab, all sharing `call_id` so they are easy to find and delete."""
    now = iso_now(timezone)
    await writer.append_lease_lead(LeaseLeadRow(
        created_at=now, call_id=call_id, caller_phone=TEST_PHONE, tool_logged=True,
        name="Test Lead",
    ))
    await writer.append_maintenance_ticket(MaintenanceTicketRow(
        created_at=now, call_id=call_id, caller_phone=TEST_PHONE, tool_logged=True,
        unit_number="101", issue_summary="Test issue", urgency="Routine", access_ok="Unknown",
    ))
    await writer.append_call_log(CallLogRow(
        created_at=now, call_id=call_id,
        from_number=TEST_PHONE, to_number="+16507497390", answered_by="human",
        duration_minutes=0.1, summary="Test call log row", transcript="Hello world",
        detected_intent="LEASE", eval_json="{}",
    ))


async def _main() -> int:
    print(INSTRUCTIONS)

    settings = Settings.from_env()
    if not settings.sheets_enabled:
        print("Set SHEETS_APPS_SCRIPT_URL and SHEETS_APPS_SCRIPT_TOKEN, then re-run to validate writes.")
        return 0

    print("Validating Apps Script endpoint...")
    writer = AppsScriptSheetsWriter(
        settings.sheets_apps_script_url,
        settings.sheets_apps_script_token,
        timeout=settings.http_timeout,
    )
    try:
        await write_test_rows(writer, settings.timezone, f"test_{int(time.time() * 1000)}")
    finally:
        await writer.aclose()

    print("Wrote test rows to Lease Leads, Maintenance Tickets, and Call Logs.")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(_main()))
