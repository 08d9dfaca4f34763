# salon_booking/deps.py

import pytz
from fastapi import Depends, HTTPException

from .data import salon_settings
from .db import engine
from .guard import OverlapGuard
from .ports import new_id, system_clock
from .sql_store import SQLBookingStore


def require_found(obj, what: str):
    if obj is None:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return obj


def get_tz():
    return pytz.timezone(salon_settings["timezone"])


def get_store(tz=Depends(get_tz)) -> SQLBookingStore:
    return SQLBookingStore(engine, tz=tz)


def get_clock():
    return system_clock


def get_id_generator():
    return new_id


def get_guard(
    store: SQLBookingStore = Depends(get_store),
    clock=Depends(get_clock),
    id_generator=Depends(get_id_generator),
) -> OverlapGuard:
    return OverlapGuard(store, clock=clock, id_generator=id_generator)
