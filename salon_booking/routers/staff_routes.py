# salon_booking/routers/staff_routes.py

from datetime import date, timedelta
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from salon_booking.availability import available_slots
from salon_booking.core import WEEKDAYS, WEEKDAY_SHORT, day_bounds, overlaps, parse_hhmm, to_storage, from_storage
from salon_booking.data import SERVICES, salon_settings
from salon_booking.db import get_session
from salon_booking.deps import get_clock, get_store, get_tz, require_found
from salon_booking.errors import StoreError
from salon_booking.models import ScheduleBlock, Staff
from salon_booking.schemas import (
    AvailabilityResponse,
    BlockCreate,
    BlockPublic,
    BookingSource,
    DayWindow,
    StaffHoursPublic,
    StaffHoursUpdate,
)
from salon_booking.sql_store import SQLBookingStore
from salon_booking.timeline import block_minutes, resolve_services

router = APIRouter(
    prefix="/staff",
    tags=["staff"],
)

_DAY_KEYS = {}
for i, name in enumerate(WEEKDAYS):
    _DAY_KEYS[name.lower()] = name
    _DAY_KEYS[WEEKDAY_SHORT[i]] = name
    _DAY_KEYS[str(i)] = name


def _normalize_hours(weekly_hours: dict) -> dict:
    normalized = {}
    for key, window in weekly_hours.items():
        day = _DAY_KEYS.get(str(key).strip().lower())
        if day is None:
            raise HTTPException(status_code=422, detail=f"Unknown weekday '{key}'")
        if day in normalized:
            raise HTTPException(status_code=422, detail=f"{day} given more than once")

        if not window.off and (window.start or window.end):
            start = parse_hhmm(window.start)
            end = parse_hhmm(window.end)
            if start is None or end is None:
                raise HTTPException(status_code=422, detail=f"{day}: times must be HH:MM")
            if start >= end:
                raise HTTPException(status_code=422, detail=f"{day}: start must be before end")
        normalized[day] = window.model_dump()

    # every weekday is present in the stored template
    for day in WEEKDAYS:
        normalized.setdefault(day, DayWindow(off=True).model_dump())
    return normalized


def _public(staff: Staff) -> dict:
    return {
        "staff_id": staff.id,
        "name": staff.name,
        "weekly_hours": staff.weekly_hours,
        "service_overrides": staff.service_overrides or [],
    }


@router.put("/{staff_id}/hours", response_model=StaffHoursPublic)
def set_weekly_hours(
    staff_id: str,
    payload: StaffHoursUpdate,
    session: Session = Depends(get_session),
):
    weekly_hours = _normalize_hours(payload.weekly_hours)
    for o in payload.service_overrides:
        if o.service_key not in SERVICES:
            raise HTTPException(status_code=422, detail=f"Unknown service: {o.service_key}")
    overrides = [o.model_dump() for o in payload.service_overrides]

    # upsert: one template per stylist
    db_staff = session.get(Staff, staff_id)
    if db_staff is None:
        db_staff = Staff(id=staff_id, name=payload.name, weekly_hours=weekly_hours, service_overrides=overrides)
    else:
        db_staff.weekly_hours = weekly_hours
        db_staff.service_overrides = overrides
        if payload.name is not None:
            db_staff.name = payload.name
    session.add(db_staff)
    session.commit()
    session.refresh(db_staff)

    return _public(db_staff)


@router.get("/{staff_id}/hours", response_model=StaffHoursPublic)
def get_weekly_hours(
    staff_id: str,
    session: Session = Depends(get_session),
):
    db_staff = require_found(session.get(Staff, staff_id), "Stylist")
    return _public(db_staff)


@router.put("/{staff_id}/blocks", response_model=BlockPublic, status_code=201)
def add_block(
    staff_id: str,
    block: BlockCreate,
    session: Session = Depends(get_session),
    tz=Depends(get_tz),
):
    require_found(session.get(Staff, staff_id), "Stylist")
    if block.end <= block.start:
        raise HTTPException(status_code=422, detail="Block must end after it starts")

    block_start = to_storage(tz.localize(block.start) if block.start.tzinfo is None else block.start)
    block_end = to_storage(tz.localize(block.end) if block.end.tzinfo is None else block.end)

    existing_blocks = session.exec(
        select(ScheduleBlock)
        .where(ScheduleBlock.staff_id == staff_id)
        .where(ScheduleBlock.is_active == True)  # noqa: E712
    ).all()
    for existing_block in existing_blocks:
        if overlaps(block_start, block_end, from_storage(existing_block.start), from_storage(existing_block.end)):
            raise HTTPException(status_code=409, detail="Block overlaps existing block")

    db_block = ScheduleBlock(staff_id=staff_id, start=block_start, end=block_end, reason=block.reason)
    session.add(db_block)
    session.commit()
    session.refresh(db_block)

    return {
        "id": db_block.id,
        "staff_id": db_block.staff_id,
        "start": from_storage(db_block.start, tz),
        "end": from_storage(db_block.end, tz),
        "reason": db_block.reason,
    }


@router.get("/{staff_id}/availability", response_model=AvailabilityResponse)
async def staff_availability(
    staff_id: str,
    date: date,
    services: List[str] = Query(...),
    source: BookingSource = BookingSource.public,
    store: SQLBookingStore = Depends(get_store),
    clock=Depends(get_clock),
    tz=Depends(get_tz),
):
    try:
        template = require_found(await store.get_weekly_hours(staff_id), "Stylist")
        overrides = await store.get_service_overrides(staff_id)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    try:
        items = resolve_services(services, SERVICES, overrides)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    duration = block_minutes(items, salon_settings["chemical_gap_minutes"])

    # busy spans for the whole day
    day_start, day_end = day_bounds(date, tz)
    try:
        busy = await store.query_bookings_in_range(staff_id, day_start, day_end)
        busy += await store.query_blocks_in_range(staff_id, day_start, day_end)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    notice_hours = salon_settings["min_notice_hours"] if source == BookingSource.public else 0
    slots = available_slots(
        date,
        template,
        duration,
        busy=busy,
        now=clock(),
        step_minutes=salon_settings["slot_minutes"],
        min_notice=timedelta(hours=notice_hours),
        tz=tz,
    )

    return {
        "staff_id": staff_id,
        "date": date,
        "duration": duration,
        "available_starts": [s.start for s in slots],
    }
