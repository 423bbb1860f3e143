"""
daily.py -- Deterministic hexagram of the day.

Every caller in the same timezone gets the same hexagram on the same
calendar day. The cast uses the ordinary coin procedure driven by a
random.Random seeded from the local date.
"""

from __future__ import annotations

import hashlib
import logging
import random
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from iching.caster import cast_hexagram
from iching.errors import InputValidationError
from iching.models import Hexagram

logger = logging.getLogger(__name__)


def local_date(tz: str = "UTC", now: Optional[datetime] = None) -> date:
    """Calendar date in the given IANA timezone."""
    try:
        zone = ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InputValidationError(f"Unknown timezone: {tz}") from exc
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(zone).date()


def _seed_for(day: date) -> int:
    digest = hashlib.sha256(day.isoformat().encode("utf-8")).hexdigest()
    return int(digest[:16], 16)


def daily_hexagram(day: Optional[date] = None, tz: str = "UTC") -> Hexagram:
    """Cast the hexagram for a calendar day (default: today in tz)."""
    target = day or local_date(tz)
    hexagram = cast_hexagram(random.Random(_seed_for(target)))
    logger.info("Daily hexagram for %s: %d (%s)", target.isoformat(), hexagram.number, hexagram.name)
    return hexagram
