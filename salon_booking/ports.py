# salon_booking/ports.py

import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Protocol

from .schemas import BookingRow, Interval

Clock = Callable[[], datetime]
IdGenerator = Callable[[], str]


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class BookingStore(Protocol):
    async def query_bookings_in_range(
        self,
        resource_id: str,
        range_start: datetime,
        range_end: datetime,
        exclude_ids: Iterable[str] = (),
    ) -> List[BookingRow]:
        """Rows with stored.start < range_end and stored.end > range_start."""
        ...

    async def query_blocks_in_range(
        self, resource_id: str, range_start: datetime, range_end: datetime
    ) -> List[Interval]:
        """Active blocks for the stylist plus salon-wide blocks."""
        ...

    async def insert_bookings(self, rows: List[BookingRow]) -> List[BookingRow]:
        ...

    async def get_group(self, group_id: str) -> List[BookingRow]:
        ...

    async def update_bookings(self, rows: List[BookingRow]) -> List[BookingRow]:
        ...

    async def delete_group(self, group_id: str) -> int:
        ...


class StaffHoursSource(Protocol):
    async def get_weekly_hours(self, staff_id: str) -> Optional[dict]:
        ...
