# salon_booking/routers/bookings_routes.py

from datetime import date, timedelta
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from salon_booking.availability import within_working_hours
from salon_booking.core import day_bounds, localize
from salon_booking.data import SERVICES, salon_settings
from salon_booking.deps import get_clock, get_guard, get_store, get_tz, require_found
from salon_booking.errors import StoreError
from salon_booking.guard import AttemptState, CommitResult, OverlapGuard
from salon_booking.schemas import BookingRow, BookingSource, CheckoutCreate, RescheduleRequest
from salon_booking.sql_store import SQLBookingStore
from salon_booking.timeline import build_timeline, resolve_services, span

router = APIRouter(
    tags=["bookings"],
)


def _committed_or_raise(result: CommitResult) -> List[BookingRow]:
    if result.state == AttemptState.rejected:
        raise HTTPException(status_code=409, detail=str(result.error))
    if result.state == AttemptState.failed:
        raise HTTPException(status_code=503, detail="Booking could not be saved, please try again")
    return result.bookings


@router.post("/staff/{staff_id}/bookings", response_model=List[BookingRow], status_code=201)
async def create_booking(
    staff_id: str,
    checkout: CheckoutCreate,
    store: SQLBookingStore = Depends(get_store),
    guard: OverlapGuard = Depends(get_guard),
    clock=Depends(get_clock),
    tz=Depends(get_tz),
):
    # 1) Stylist and their hours
    try:
        template = require_found(await store.get_weekly_hours(staff_id), "Stylist")
        overrides = await store.get_service_overrides(staff_id)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    # 2) Validate services
    try:
        services = resolve_services(checkout.services, SERVICES, overrides)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    # 3) Validate slot alignment
    start = localize(checkout.start, tz)
    slot_minutes = salon_settings["slot_minutes"]
    if start.minute % slot_minutes != 0 or start.second or start.microsecond:
        raise HTTPException(status_code=422, detail=f"Start time must be in {slot_minutes}-minute increments")

    # 4) Prevent booking in the past / inside the notice period
    now = clock()
    if start <= now:
        raise HTTPException(status_code=422, detail="Cannot book an appointment in the past")
    if checkout.source == BookingSource.public:
        notice_hours = salon_settings["min_notice_hours"]
        if start < now + timedelta(hours=notice_hours):
            raise HTTPException(
                status_code=422,
                detail=f"Bookings must be made at least {notice_hours} hours in advance",
            )

    # 5) Chain the services and check working hours
    drafts = build_timeline(
        services,
        start,
        client_id=checkout.client_id,
        source=checkout.source,
        chemical_gap_minutes=salon_settings["chemical_gap_minutes"],
    )
    interval = span(drafts)
    if not within_working_hours(template, interval.start, interval.end, tz):
        raise HTTPException(status_code=422, detail="Appointment must be within working hours")

    # 6) Re-check and insert
    result = await guard.commit(staff_id, interval, drafts)
    return _committed_or_raise(result)


@router.get("/staff/{staff_id}/bookings", response_model=List[BookingRow])
async def list_staff_bookings(
    staff_id: str,
    on_date: date,
    store: SQLBookingStore = Depends(get_store),
    tz=Depends(get_tz),
):
    day_start, day_end = day_bounds(on_date, tz)
    try:
        return await store.query_bookings_in_range(staff_id, day_start, day_end)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.patch("/bookings/{group_id}/reschedule", response_model=List[BookingRow])
async def reschedule_booking(
    group_id: str,
    move: RescheduleRequest,
    store: SQLBookingStore = Depends(get_store),
    guard: OverlapGuard = Depends(get_guard),
    tz=Depends(get_tz),
):
    try:
        if move.staff_id is not None:
            require_found(await store.get_weekly_hours(move.staff_id), "Stylist")
        result = await guard.reschedule(group_id, localize(move.start, tz), move.staff_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Booking not found")
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _committed_or_raise(result)


@router.delete("/bookings/{group_id}")
async def cancel_booking(
    group_id: str,
    guard: OverlapGuard = Depends(get_guard),
):
    try:
        deleted = await guard.cancel(group_id)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if deleted == 0:
        raise HTTPException(status_code=404, detail="Booking not found")
    return {"booking_group_id": group_id, "deleted": deleted}
