from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def iso_in_timezone(moment: datetime, tz_name: str) -> str:
    """ISO-8601 with an explicit offset for `tz_name`, e.g. 2026-02-03T13:45:12-08:00.

    Falls back to UTC when the zone is unknown.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    try:
        zone = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        zone = timezone.utc
    return moment.astimezone(zone).isoformat(timespec="seconds")


def iso_now(tz_name: str, now: Optional[datetime] = None) -> str:
    return iso_in_timezone(now or datetime.now(timezone.utc), tz_name)
