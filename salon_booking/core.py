# salon_booking/core.py

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple

# Weekday index convention used everywhere in this package: 0=Sunday .. 6=Saturday
WEEKDAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
WEEKDAY_SHORT = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """Exclusive-boundary overlap: touching intervals do not overlap."""
    return a_start < b_end and b_start < a_end


ranges_overlap = overlaps


def weekday_index(day: date) -> int:
    # date.weekday() is 0=Monday, shift so Sunday is 0
    return (day.weekday() + 1) % 7


def parse_hhmm(value) -> Optional[time]:
    """Parse "HH:MM" (or "H:MM", "HH:MM:SS"); returns None when unusable."""
    if value is None:
        return None
    if isinstance(value, time):
        return value
    text = str(value).strip()
    if not text:
        return None
    parts = text.split(":")
    if len(parts) < 2:
        return None
    try:
        hour = int(parts[0])
        minute = int(parts[1])
    except ValueError:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return time(hour, minute)


def day_bounds(day: date, tz=None) -> Tuple[datetime, datetime]:
    """[start, end) of a calendar day, localized when tz is given."""
    start = datetime.combine(day, time.min)
    end = start + timedelta(days=1)
    if tz is not None:
        return tz.localize(start), tz.localize(end)
    return start, end


def localize(moment: datetime, tz=None) -> datetime:
    if tz is None:
        return moment
    if moment.tzinfo is None:
        return tz.localize(moment)
    return moment.astimezone(tz)


def to_storage(moment: datetime) -> datetime:
    """UTC for the database; naive input is taken to be UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def from_storage(moment: datetime, tz=None) -> datetime:
    # SQLite drops the offset on the way back, the stored value is UTC either way
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz) if tz is not None else moment.astimezone(timezone.utc)
