# salon_booking/availability.py
"""
Turns a stylist's weekly hours and a day's existing commitments into
offerable appointment start times.

Everything here is pure: no store access and no wall clock. Callers fetch
the day's busy intervals and pass "now" in explicitly.
"""

import json
import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, List, Optional

from .core import WEEKDAYS, WEEKDAY_SHORT, localize, overlaps, parse_hhmm, weekday_index
from .errors import ConfigurationError
from .schemas import CandidateSlot, DayWindow

logger = logging.getLogger(__name__)


def _lookup_day(template, index: int):
    if not 0 <= index <= 6:
        raise ConfigurationError(f"weekday index out of range: {index}")
    if template is None:
        return None

    if isinstance(template, str):
        try:
            template = json.loads(template)
        except ValueError as e:
            raise ConfigurationError(f"weekly hours is not valid JSON: {e}") from e

    if isinstance(template, (list, tuple)):
        return template[index] if index < len(template) else None

    if not isinstance(template, dict):
        raise ConfigurationError(f"unsupported weekly hours type: {type(template).__name__}")

    candidates = (WEEKDAYS[index], WEEKDAYS[index].lower(), WEEKDAY_SHORT[index], str(index))
    for key in candidates:
        if template.get(key) is not None:
            return template[key]
    lowered = {str(k).lower(): v for k, v in template.items()}
    for key in candidates:
        if lowered.get(key.lower()) is not None:
            return lowered[key.lower()]
    return None


def _to_window(raw) -> Optional[DayWindow]:
    if isinstance(raw, DayWindow):
        raw = raw.model_dump()
    if not isinstance(raw, dict):
        raise ConfigurationError(f"day entry must be an object, got {type(raw).__name__}")

    # off wins even when start/end are still filled in
    if raw.get("off"):
        return None
    start = parse_hhmm(raw.get("start"))
    end = parse_hhmm(raw.get("end"))
    if start is None or end is None:
        return None
    return DayWindow(start=start.strftime("%H:%M"), end=end.strftime("%H:%M"))


def get_windows_for_weekday(template, weekday: int) -> List[DayWindow]:
    """
    Open working windows for a weekday (0=Sunday .. 6=Saturday).

    Accepts the template keyed by "Monday", "monday", "mon" or "1", a
    7-item list, or a JSON string of either. A day may hold one window or a
    list of them. Anything malformed means no windows for that day.
    """
    try:
        raw = _lookup_day(template, weekday)
        if raw is None:
            return []
        entries = raw if isinstance(raw, list) else [raw]
        windows = [w for w in (_to_window(e) for e in entries) if w is not None]
    except ConfigurationError as e:
        logger.debug(f"Ignoring weekly hours for weekday {weekday}: {e}")
        return []
    return sorted(windows, key=lambda w: w.start)


def iter_slot_starts(
    day: date,
    windows: Iterable[DayWindow],
    step_minutes: int,
    service_duration: int,
    tz=None,
) -> Iterator[datetime]:
    if step_minutes <= 0 or service_duration <= 0:
        return
    step = timedelta(minutes=step_minutes)
    duration = timedelta(minutes=service_duration)

    for window in windows:
        start_t = parse_hhmm(window.start)
        end_t = parse_hhmm(window.end)
        if start_t is None or end_t is None:
            continue
        window_start = datetime.combine(day, start_t)
        window_end = datetime.combine(day, end_t)

        current = window_start
        while current + duration <= window_end:
            yield localize(current, tz)
            current += step


def build_slots_from_windows(
    day: date,
    windows: Iterable[DayWindow],
    step_minutes: int,
    service_duration: int,
    tz=None,
) -> List[CandidateSlot]:
    """
    Candidate starts every step_minutes from each window's start; the last
    one is the latest start whose service still ends by the window's end.
    """
    return [
        CandidateSlot(start=start, duration=service_duration)
        for start in iter_slot_starts(day, windows, step_minutes, service_duration, tz)
    ]


def exclude_past(
    slots: Iterable[CandidateSlot],
    now: datetime,
    min_notice: timedelta = timedelta(0),
) -> List[CandidateSlot]:
    cutoff = now + min_notice
    return [s for s in slots if s.start > now and s.start >= cutoff]


def exclude_booked(slots: Iterable[CandidateSlot], busy: Iterable) -> List[CandidateSlot]:
    """Keep slots whose [start, end) is clear of every busy interval."""
    busy = list(busy)
    return [
        s for s in slots
        if not any(overlaps(s.start, s.end, b.start, b.end) for b in busy)
    ]


def available_slots(
    day: date,
    template,
    service_duration: int,
    busy: Iterable = (),
    now: Optional[datetime] = None,
    step_minutes: int = 15,
    min_notice: timedelta = timedelta(0),
    tz=None,
) -> List[CandidateSlot]:
    windows = get_windows_for_weekday(template, weekday_index(day))
    slots = build_slots_from_windows(day, windows, step_minutes, service_duration, tz)
    if now is not None:
        slots = exclude_past(slots, now, min_notice)
    return exclude_booked(slots, busy)


def within_working_hours(template, start: datetime, end: datetime, tz=None) -> bool:
    """True when [start, end) sits inside one of the day's working windows."""
    local_start = localize(start, tz)
    local_end = localize(end, tz)
    day = local_start.date()
    for window in get_windows_for_weekday(template, weekday_index(day)):
        open_at = localize(datetime.combine(day, parse_hhmm(window.start)), tz)
        close_at = localize(datetime.combine(day, parse_hhmm(window.end)), tz)
        if open_at <= local_start and local_end <= close_at:
            return True
    return False
