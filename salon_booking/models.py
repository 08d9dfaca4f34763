# salon_booking/models.py

from typing import Optional
from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field, Column

# Datetimes are written in UTC. SQLite returns them without tzinfo, so reads
# go through core.from_storage.


class Booking(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("resource_id", "start", name="uq_resource_start"),
    )

    id: str = Field(primary_key=True)
    booking_group_id: str = Field(index=True)
    resource_id: str = Field(index=True)
    client_id: Optional[str] = None

    title: str
    category: Optional[str] = None
    service_id: Optional[str] = None
    start: datetime = Field(index=True)
    end: datetime
    duration: int
    price: Optional[float] = None
    source: str = "staff"
    created_at: datetime


class Staff(SQLModel, table=True):
    id: str = Field(primary_key=True)
    name: Optional[str] = None
    weekly_hours: dict = Field(default_factory=dict, sa_column=Column(JSON))
    service_overrides: list = Field(default_factory=list, sa_column=Column(JSON))
    # bumped inside every booking write to serialize writers per stylist
    lock_version: int = 0


class ScheduleBlock(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    staff_id: Optional[str] = Field(default=None, index=True)  # None = whole salon
    start: datetime
    end: datetime
    reason: Optional[str] = None
    is_active: bool = True
