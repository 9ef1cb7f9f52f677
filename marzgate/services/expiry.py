from __future__ import annotations

import calendar
import datetime as dt
import re
from typing import Optional

SECONDS_PER_DAY = 86400
LEADING_INT = re.compile(r"[+-]?\d+")
DEFAULT_RENEWAL_DAYS = 30


def compute_renewal(current_expire: Optional[int], now: int, renewal_days: int) -> int:
    """Return the expiry after renewing for ``renewal_days`` days.

    A zero, missing or already passed expiry restarts the countdown from ``now``;
    a future expiry is extended.
    """
    current = current_expire or 0
    if current == 0 or current < now:
        base = now
    else:
        base = current
    return base + renewal_days * SECONDS_PER_DAY


def parse_days(raw: Optional[str], default: int = DEFAULT_RENEWAL_DAYS) -> int:
    if raw is None:
        return default
    value = str(raw).strip()
    if not value:
        return default
    # Leading integer prefix: "7.5" -> 7, "10abc" -> 10.
    match = LEADING_INT.match(value)
    if not match:
        return default
    return int(match.group())


def add_months(moment: dt.datetime, months: int) -> dt.datetime:
    # Day of month is clamped to the end of the target month (Jan 31 + 1 -> Feb 28/29).
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def format_expire(expire: Optional[int]) -> str:
    if not expire:
        return "unlimited"
    moment = dt.datetime.fromtimestamp(int(expire), tz=dt.timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M UTC")
