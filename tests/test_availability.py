import json
from datetime import date, datetime, timedelta

import pytz

from salon_booking.availability import (
    available_slots,
    build_slots_from_windows,
    exclude_booked,
    exclude_past,
    get_windows_for_weekday,
    iter_slot_starts,
    within_working_hours,
)
from salon_booking.core import WEEKDAYS
from salon_booking.schemas import CandidateSlot, DayWindow, Interval

TUESDAY = date(2026, 10, 20)
TUESDAY_INDEX = 2


def at(hhmm: str, day: date = TUESDAY) -> datetime:
    h, m = hhmm.split(":")
    return datetime(day.year, day.month, day.day, int(h), int(m))


def full_week(start="09:00", end="17:00"):
    return {day: {"start": start, "end": end, "off": False} for day in WEEKDAYS}


def test_off_day_has_no_windows_even_with_times():
    template = full_week()
    for day in WEEKDAYS:
        template[day]["off"] = True
    for index in range(7):
        assert get_windows_for_weekday(template, index) == []


def test_off_day_with_cleared_times():
    template = {"Tuesday": {"start": "", "end": "", "off": True}}
    assert get_windows_for_weekday(template, TUESDAY_INDEX) == []


def test_missing_or_bad_times_mean_no_windows():
    assert get_windows_for_weekday({"Tuesday": {"start": "", "end": "17:00", "off": False}}, 2) == []
    assert get_windows_for_weekday({"Tuesday": {"start": "9am", "end": "17:00", "off": False}}, 2) == []
    assert get_windows_for_weekday({"Tuesday": {"off": False}}, 2) == []


def test_all_seven_days_recognised():
    template = full_week()
    for index in range(7):
        assert get_windows_for_weekday(template, index) == [DayWindow(start="09:00", end="17:00")]


def test_key_shapes():
    window = {"start": "10:00", "end": "14:00"}
    expected = [DayWindow(start="10:00", end="14:00")]

    assert get_windows_for_weekday({"Tuesday": window}, 2) == expected
    assert get_windows_for_weekday({"tuesday": window}, 2) == expected
    assert get_windows_for_weekday({"tue": window}, 2) == expected
    assert get_windows_for_weekday({"TUE": window}, 2) == expected
    assert get_windows_for_weekday({"2": window}, 2) == expected
    assert get_windows_for_weekday([None, None, window, None, None, None, None], 2) == expected
    assert get_windows_for_weekday(json.dumps({"Tuesday": window}), 2) == expected


def test_times_are_normalized():
    assert get_windows_for_weekday({"Tuesday": {"start": "9:0", "end": "17:30:00"}}, 2) == [
        DayWindow(start="09:00", end="17:30")
    ]


def test_multiple_shifts_sorted():
    template = {"Tuesday": [{"start": "14:00", "end": "18:00"}, {"start": "09:00", "end": "12:00"}]}
    windows = get_windows_for_weekday(template, 2)
    assert [w.start for w in windows] == ["09:00", "14:00"]


def test_malformed_templates_degrade_to_nothing():
    assert get_windows_for_weekday(None, 2) == []
    assert get_windows_for_weekday("{not json", 2) == []
    assert get_windows_for_weekday(42, 2) == []
    assert get_windows_for_weekday({"Tuesday": "09:00-17:00"}, 2) == []
    assert get_windows_for_weekday(full_week(), 7) == []
    assert get_windows_for_weekday(full_week(), -1) == []


def test_slots_for_morning_window():
    windows = [DayWindow(start="09:00", end="12:00")]
    slots = build_slots_from_windows(TUESDAY, windows, 15, 30)

    starts = [s.start for s in slots]
    expected = []
    t = at("09:00")
    while t <= at("11:30"):
        expected.append(t)
        t += timedelta(minutes=15)
    assert starts == expected
    assert starts[-1] == at("11:30")
    assert at("11:45") not in starts
    assert slots[-1].end == at("12:00")


def test_service_longer_than_window_gives_no_slots():
    windows = [DayWindow(start="09:00", end="09:30")]
    assert build_slots_from_windows(TUESDAY, windows, 15, 60) == []


def test_window_that_does_not_move_forward_gives_no_slots():
    assert build_slots_from_windows(TUESDAY, [DayWindow(start="12:00", end="12:00")], 15, 15) == []
    assert build_slots_from_windows(TUESDAY, [DayWindow(start="13:00", end="12:00")], 15, 15) == []


def test_non_positive_step_or_duration_gives_no_slots():
    windows = [DayWindow(start="09:00", end="12:00")]
    assert build_slots_from_windows(TUESDAY, windows, 0, 30) == []
    assert build_slots_from_windows(TUESDAY, windows, 15, 0) == []


def test_slot_generation_is_restartable():
    windows = [DayWindow(start="09:00", end="10:00")]
    first = list(iter_slot_starts(TUESDAY, windows, 15, 30))
    second = list(iter_slot_starts(TUESDAY, windows, 15, 30))
    assert first == second == [at("09:00"), at("09:15"), at("09:30")]


def test_slots_across_two_shifts():
    windows = [DayWindow(start="09:00", end="10:00"), DayWindow(start="13:00", end="13:30")]
    starts = [s.start for s in build_slots_from_windows(TUESDAY, windows, 30, 30)]
    assert starts == [at("09:00"), at("09:30"), at("13:00")]


def test_slots_localized():
    tz = pytz.timezone("Europe/London")
    slots = build_slots_from_windows(TUESDAY, [DayWindow(start="09:00", end="10:00")], 30, 30, tz=tz)
    assert slots[0].start == tz.localize(at("09:00"))
    assert slots[0].start.utcoffset() == timedelta(hours=1)


def test_existing_booking_filters_overlapping_slot():
    busy = [Interval(start=at("10:00"), end=at("10:30"))]
    slots = [CandidateSlot(start=at("10:15"), duration=30), CandidateSlot(start=at("10:30"), duration=30)]
    kept = exclude_booked(slots, busy)
    assert [s.start for s in kept] == [at("10:30")]


def test_exclude_booked_keeps_order():
    busy = [Interval(start=at("09:30"), end=at("10:00"))]
    slots = build_slots_from_windows(TUESDAY, [DayWindow(start="09:00", end="11:00")], 15, 30)
    kept = [s.start for s in exclude_booked(slots, busy)]
    assert kept == [at("09:00"), at("10:00"), at("10:15"), at("10:30")]


def test_exclude_past_drops_now_and_earlier():
    slots = [CandidateSlot(start=at(t), duration=30) for t in ("09:00", "09:15", "09:30")]
    kept = exclude_past(slots, now=at("09:15"))
    assert [s.start for s in kept] == [at("09:30")]


def test_exclude_past_with_min_notice():
    slots = [CandidateSlot(start=at(t), duration=30) for t in ("11:00", "12:00", "13:00")]
    kept = exclude_past(slots, now=at("10:00"), min_notice=timedelta(hours=2))
    assert [s.start for s in kept] == [at("12:00"), at("13:00")]


def test_available_slots_composes_filters():
    template = {"Tuesday": {"start": "09:00", "end": "11:00"}}
    busy = [Interval(start=at("10:00"), end=at("10:30"))]
    slots = available_slots(TUESDAY, template, 30, busy=busy, now=at("09:10"), step_minutes=15)
    assert [s.start for s in slots] == [at("09:15"), at("09:30"), at("10:30")]


def test_available_slots_on_day_off():
    template = full_week()
    template["Tuesday"]["off"] = True
    assert available_slots(TUESDAY, template, 30) == []


def test_within_working_hours():
    template = {"Tuesday": {"start": "09:00", "end": "17:00"}}
    assert within_working_hours(template, at("09:00"), at("17:00"))
    assert not within_working_hours(template, at("16:45"), at("17:15"))
    assert not within_working_hours(template, at("08:45"), at("09:15"))
    assert not within_working_hours({"Tuesday": {"start": "09:00", "end": "17:00", "off": True}}, at("10:00"), at("11:00"))


def test_within_working_hours_localized():
    tz = pytz.timezone("Europe/London")
    template = {"Tuesday": {"start": "09:00", "end": "17:00"}}
    # 08:30 UTC is 09:30 in London on this date
    start = pytz.utc.localize(datetime(2026, 10, 20, 8, 30))
    assert within_working_hours(template, start, start + timedelta(minutes=30), tz)
