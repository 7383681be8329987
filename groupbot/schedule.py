"""Working out when a date-based timer should next wake."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, tzinfo

from groupbot.timer import Timer

logger = logging.getLogger(__name__)

_MINUTE = timedelta(minutes=1)
_HOUR = timedelta(hours=1)
_DAY = timedelta(days=1)


def _weekday(moment: datetime) -> int:
    """Weekday with Sunday as 0."""
    return (moment.weekday() + 1) % 7


def _normalized(
    year: int,
    month: int,
    day: int,
    hour: int,
    minute: int,
    second: int,
    microsecond: int,
    zone: tzinfo | None,
) -> datetime:
    """Build a datetime, carrying out-of-range fields into larger units."""
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    base = datetime(year, month, 1, tzinfo=zone)
    return base + timedelta(
        days=day - 1, hours=hour, minutes=minute, seconds=second, microseconds=microsecond
    )


def _add_date(moment: datetime, years: int = 0, months: int = 0, days: int = 0) -> datetime:
    return _normalized(
        moment.year + years,
        moment.month + months,
        moment.day + days,
        moment.hour,
        moment.minute,
        moment.second,
        moment.microsecond,
        moment.tzinfo,
    )


def first_weekday(date: datetime, weekday: int) -> datetime:
    """Return the first day of ``date``'s month falling on ``weekday`` (Sunday 0)."""
    if not 0 <= weekday <= 6:
        raise ValueError(f"weekday out of range: {weekday}")
    day = _add_date(date, days=1 - date.day)
    while _weekday(day) != weekday:
        day = _add_date(day, days=1)
    return day


def next_wake_time(timer: Timer, now: datetime) -> datetime:
    """Return the moment after ``now`` at which ``timer`` should be checked."""
    month, day, hour, minute, week = timer.month, timer.day, timer.hour, timer.minute, timer.week

    unit = timedelta(0)
    if minute >= 0:
        if hour < 0:
            unit = _HOUR
        elif day < 0 or week < 0:
            unit = _DAY
        elif day == 0 and week >= 0:
            delta = _DAY * (week - _weekday(now))
            if delta < timedelta(0):
                delta = _DAY * 7
            unit += delta
        elif month < 0:
            unit = -timedelta(microseconds=1)
    else:
        unit = _MINUTE

    stable = 0
    if minute < 0:
        minute = now.minute
    if hour < 0:
        hour = now.hour
    else:
        stable |= 0x8
    if day < 0:
        day = now.day
    elif day > 0:
        stable |= 0x4
    else:
        day = now.day
        if week >= 0:
            stable |= 0x2
    if month < 0:
        month = now.month
    else:
        stable |= 0x1

    if stable == 0b0101:
        if timer.day != now.day or timer.month != now.month:
            hour = 0
    elif stable == 0b1001:
        if timer.month != now.month:
            day = 0
    elif stable == 0b0001:
        if timer.month != now.month:
            day = 0
            hour = 0

    logger.debug("[timer] stable: %d m: %d d: %d h: %d mn: %d w: %d", stable, month, day, hour, minute, week)
    date = _normalized(now.year, month, day, hour, minute, now.second, now.microsecond, now.tzinfo)
    if unit > timedelta(0):
        date += unit

    if date <= now:
        if timer.month < 0:
            if timer.day > 0 or (timer.day == 0 and timer.week >= 0):
                date = _add_date(date, months=1)
            elif timer.day < 0 or timer.week < 0:
                if timer.hour > 0:
                    date = _add_date(date, days=1)
                elif timer.minute > 0:
                    date += _HOUR
        else:
            date = _add_date(date, years=1)

    if stable & 0x8 and date.hour != hour:
        if not stable & 0x4:
            date = _add_date(date, days=1) - _HOUR
        elif not stable & 0x2:
            date = _add_date(date, days=7) - _HOUR
        else:
            date = _add_date(date, years=1) - _HOUR
    if stable & 0x4 and date.day != day:
        date = _add_date(date, years=1, days=-1)
    if stable & 0x2 and _weekday(date) != week:
        date = first_weekday(_add_date(date, years=1), week)

    if date <= now:
        date = now + _MINUTE
    return date


def is_due(timer: Timer, now: datetime) -> bool:
    """Tell whether ``timer``'s date and time fields match ``now``."""
    if timer.month >= 0 and timer.month != now.month:
        return False
    if timer.day < 0 or timer.day == now.day:
        pass
    elif timer.day == 0:
        if timer.week >= 0 and timer.week != _weekday(now):
            return False
    else:
        return False
    if timer.hour >= 0 and timer.hour != now.hour:
        return False
    return timer.minute < 0 or timer.minute == now.minute