"""
Tariff tier selection
=====================

Maps a scheduled pickup moment (local Irish time) to one of the three NTA
rate tiers.  Rules are checked in precedence order, first match wins:

1. **Special**  -- Saturday/Sunday 00:00-04:00, Christmas Eve from 20:00,
   all of Christmas Day, St Stephen's Day before 08:00, New Year's Eve from
   20:00, New Year's Day before 08:00.
2. **Premium**  -- any Sunday, any day 20:00-08:00, public holidays.
3. **Standard** -- everything else (Mon-Sat 08:00-20:00).

Boundary instants (04:00, 08:00, 20:00) always belong to the *later* band.

``select_rate`` is total: missing or unparseable input yields ``Standard``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from functools import lru_cache
from typing import Optional, Union

from .enums import RateTier

logger = logging.getLogger(__name__)

DateLike = Union[date, str, None]
TimeLike = Union[time, str, None]

SATURDAY, SUNDAY = 5, 6
MONDAY, FRIDAY = 0, 4

DAY_START_HOUR = 8
NIGHT_START_HOUR = 20
WEEKEND_LATE_END_HOUR = 4

RATE_NAMES: dict[RateTier, str] = {
    RateTier.STANDARD: "Standard Rate (Mon-Sat 08:00-20:00)",
    RateTier.PREMIUM: "Premium Rate (nights, Sundays & public holidays)",
    RateTier.SPECIAL: "Special Rate (Christmas, New Year & weekend late nights)",
}


# ── Input parsing ─────────────────────────────────────────────────────


def parse_date(value: DateLike) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        return None


def parse_time(value: TimeLike) -> Optional[time]:
    """Accept ``time`` objects or ``H:MM`` / ``HH:MM[:SS]`` strings."""
    if value is None:
        return None
    if isinstance(value, time):
        return value
    try:
        parts = value.strip().split(":")
        hour = int(parts[0])
        minute = int(parts[1]) if len(parts) > 1 else 0
        second = int(parts[2]) if len(parts) > 2 else 0
        return time(hour, minute, second)
    except (AttributeError, ValueError, IndexError):
        return None


# ── Public holiday calendar ───────────────────────────────────────────


def _easter_sunday(year: int) -> date:
    """Anonymous Gregorian algorithm (Meeus/Jones/Butcher)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def _first_monday(year: int, month: int) -> date:
    first = date(year, month, 1)
    return first + timedelta(days=(MONDAY - first.weekday()) % 7)


def _last_monday(year: int, month: int) -> date:
    last = date(year + (month // 12), month % 12 + 1, 1) - timedelta(days=1)
    return last - timedelta(days=(last.weekday() - MONDAY) % 7)


def _st_brigids_day(year: int) -> date:
    # 1 February when it falls on a Friday, otherwise the first Monday
    feb_first = date(year, 2, 1)
    if feb_first.weekday() == FRIDAY:
        return feb_first
    return _first_monday(year, 2)


@lru_cache(maxsize=32)
def public_holidays(year: int) -> frozenset[date]:
    """Irish public holidays for *year*."""
    return frozenset(
        {
            date(year, 1, 1),
            _st_brigids_day(year),
            date(year, 3, 17),
            _easter_sunday(year) + timedelta(days=1),
            _first_monday(year, 5),
            _first_monday(year, 6),
            _first_monday(year, 8),
            _last_monday(year, 10),
            date(year, 12, 25),
            date(year, 12, 26),
        }
    )


def is_public_holiday(day: date) -> bool:
    return day in public_holidays(day.year)


# ── Rules ─────────────────────────────────────────────────────────────


def _is_special(day: date, hour: int) -> bool:
    if day.weekday() in (SATURDAY, SUNDAY) and hour < WEEKEND_LATE_END_HOUR:
        return True
    month_day = (day.month, day.day)
    if month_day == (12, 25):
        return True
    if month_day in ((12, 24), (12, 31)) and hour >= NIGHT_START_HOUR:
        return True
    if month_day in ((12, 26), (1, 1)) and hour < DAY_START_HOUR:
        return True
    return False


def _is_premium(day: date, hour: int) -> bool:
    if day.weekday() == SUNDAY:
        return True
    if hour >= NIGHT_START_HOUR or hour < DAY_START_HOUR:
        return True
    return is_public_holiday(day)


def select_rate(pickup_date: DateLike, pickup_time: TimeLike) -> RateTier:
    """Return the tariff tier in force at the scheduled pickup moment."""
    day = parse_date(pickup_date)
    moment = parse_time(pickup_time)
    if day is None or moment is None:
        logger.debug(
            "Falling back to standard rate (date=%r, time=%r)",
            pickup_date,
            pickup_time,
        )
        return RateTier.STANDARD

    if _is_special(day, moment.hour):
        return RateTier.SPECIAL
    if _is_premium(day, moment.hour):
        return RateTier.PREMIUM
    return RateTier.STANDARD


def rate_name(tier: RateTier) -> str:
    return RATE_NAMES[tier]
