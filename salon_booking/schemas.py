# salon_booking/schemas.py

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class DayWindow(BaseModel):
    start: str = ""     # "HH:MM" or ""
    end: str = ""
    off: bool = False


class Interval(BaseModel):
    start: datetime
    end: datetime

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


class CandidateSlot(BaseModel):
    start: datetime
    duration: int

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration)


class ServiceItem(BaseModel):
    key: str
    name: str
    category: Optional[str] = None
    duration: int = Field(gt=0)
    price: Optional[float] = None
    is_chemical: bool = False


class ServiceOverride(BaseModel):
    service_key: str
    duration: Optional[int] = None
    price: Optional[float] = None


class BookingSource(str, Enum):
    public = "public"
    staff = "staff"


class BookingDraft(BaseModel):
    title: str
    category: Optional[str] = None
    service_id: Optional[str] = None
    client_id: Optional[str] = None
    start: datetime
    end: datetime
    duration: int
    price: Optional[float] = None
    source: BookingSource = BookingSource.staff


class BookingRow(BookingDraft):
    id: str
    booking_group_id: str
    resource_id: str
    created_at: datetime


class StaffHoursUpdate(BaseModel):
    name: Optional[str] = None
    weekly_hours: Dict[str, DayWindow]
    service_overrides: List[ServiceOverride] = []


class StaffHoursPublic(BaseModel):
    staff_id: str
    name: Optional[str] = None
    weekly_hours: Dict[str, DayWindow]
    service_overrides: List[ServiceOverride] = []


class BlockCreate(BaseModel):
    start: datetime
    end: datetime
    reason: Optional[str] = None


class BlockPublic(BaseModel):
    id: int
    staff_id: Optional[str]
    start: datetime
    end: datetime
    reason: Optional[str] = None


class AvailabilityResponse(BaseModel):
    staff_id: str
    date: date
    duration: int
    available_starts: List[datetime]


class CheckoutCreate(BaseModel):
    start: datetime
    services: List[str] = Field(min_length=1)
    client_id: Optional[str] = None
    source: BookingSource = BookingSource.public


class RescheduleRequest(BaseModel):
    start: datetime
    staff_id: Optional[str] = None
