from __future__ import annotations

import datetime as dt
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from habitflow.settings import settings

logger = logging.getLogger("habitflow.clock")


def resolve_zone(name: str | None) -> ZoneInfo:
    for candidate in (name, settings.TZ, "UTC"):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, falling back", candidate)
    return ZoneInfo("UTC")


def is_valid_zone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def now_local_naive(tz_name: str | None, now: dt.datetime | None = None) -> dt.datetime:
    """Wall-clock time in the user's zone, without tzinfo (as stored)."""
    utc_now = now or dt.datetime.now(dt.timezone.utc)
    if utc_now.tzinfo is None:
        utc_now = utc_now.replace(tzinfo=dt.timezone.utc)
    return utc_now.astimezone(resolve_zone(tz_name)).replace(tzinfo=None, microsecond=0)


def local_today(tz_name: str | None, now: dt.datetime | None = None) -> dt.date:
    return now_local_naive(tz_name, now).date()
