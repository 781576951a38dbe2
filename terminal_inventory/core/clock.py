"""Local calendar helpers.

Entry and exit dates are calendar days in the shop's timezone, not UTC
instants, so "today" must be computed with the configured ``TZ``.
"""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from .config import settings

_LOCAL_TZ = ZoneInfo(settings.TZ) if settings.TZ else None


def local_today() -> date:
    """Return today's date in the configured timezone."""

    return datetime.now(_LOCAL_TZ).date()


__all__ = ["local_today"]
