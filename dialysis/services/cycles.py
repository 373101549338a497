"""
HD cycle planning.

A patient's cycle is free text entered at registration.  Recognised forms
(case-insensitive): ``MWF``, ``TTS``, ``Daily``/``Everyday``,
``Alternate``/``Every other day``, ``Every N days`` and ``Nx/week`` or
``N per week``.  A bare number is read as a day interval.
"""
from __future__ import annotations

import re
from datetime import date, timedelta

from django.utils import timezone

MWF = (0, 2, 4)
TTS = (1, 3, 5)
MAX_UPCOMING = 100

_NUMBER = re.compile(r'\d+')


def _normalise(cycle) -> str:
    return (cycle or '').strip().lower()


def _first_number(cycle: str) -> int | None:
    m = _NUMBER.search(cycle)
    return int(m.group()) if m else None


def _weekday_pattern(cycle: str):
    if 'mwf' in cycle or cycle == 'monday wednesday friday':
        return MWF
    if 'tts' in cycle or cycle == 'tuesday thursday saturday':
        return TTS
    return None


def _per_week(cycle: str) -> bool:
    return '/week' in cycle or 'per week' in cycle


def days_between_sessions(cycle) -> int | None:
    """Fixed interval in days, or None for weekday patterns and unknown text."""
    cycle = _normalise(cycle)
    if not cycle:
        return None
    if cycle in ('daily', 'everyday'):
        return 1
    if 'alternate' in cycle or 'every other day' in cycle:
        return 2
    if 'every' in cycle and 'day' in cycle:
        return _first_number(cycle)
    if _per_week(cycle):
        n = _first_number(cycle)
        return 7 // n if n else None
    if _weekday_pattern(cycle):
        return None
    return _first_number(cycle)


def next_session_date(cycle, last: date) -> date | None:
    """Date of the next session after ``last``; None when the cycle is not understood."""
    normalised = _normalise(cycle)
    pattern = _weekday_pattern(normalised)
    if pattern:
        day = last + timedelta(days=1)
        while day.weekday() not in pattern:
            day += timedelta(days=1)
        return day
    interval = days_between_sessions(normalised)
    if not interval:
        return None
    return last + timedelta(days=interval)


def is_dialysis_day(cycle, day: date, start: date | None) -> bool:
    normalised = _normalise(cycle)
    if not normalised:
        return False
    pattern = _weekday_pattern(normalised)
    if pattern:
        return day.weekday() in pattern
    interval = days_between_sessions(normalised)
    if not interval:
        return False
    if interval == 1:
        return True
    if start is None:
        return False
    return (day - start).days % interval == 0


def upcoming_session_dates(cycle, last: date, days_ahead: int = 30, today: date | None = None) -> list[date]:
    """Session dates after ``last`` up to ``today + days_ahead``."""
    end = (today or timezone.localdate()) + timedelta(days=days_ahead)
    dates: list[date] = []
    current = last
    while current < end and len(dates) < MAX_UPCOMING:
        nxt = next_session_date(cycle, current)
        if nxt is None or nxt > end:
            break
        dates.append(nxt)
        current = nxt
    return dates
