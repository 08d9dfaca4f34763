# salon_booking/memory_store.py

import asyncio
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from .core import overlaps
from .errors import OverlapError
from .schemas import BookingRow, Interval


class InMemoryBookingStore:
    """
    Booking store kept in process memory.

    Every call yields to the event loop once, the way a network round trip
    would, so concurrent commits interleave between the re-check and the
    insert. With enforce_no_overlap the insert itself re-checks under a lock
    and refuses overlapping rows; without it the store accepts whatever it
    is given.
    """

    def __init__(self, enforce_no_overlap: bool = False):
        self.enforce_no_overlap = enforce_no_overlap
        self.bookings: Dict[str, BookingRow] = {}
        self.blocks: List[Tuple[Optional[str], Interval]] = []
        self.weekly_hours: Dict[str, dict] = {}
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop = None

    def add_block(self, start: datetime, end: datetime, staff_id: Optional[str] = None) -> Interval:
        block = Interval(start=start, end=end)
        self.blocks.append((staff_id, block))
        return block

    def set_weekly_hours(self, staff_id: str, template: dict) -> None:
        self.weekly_hours[staff_id] = template

    async def get_weekly_hours(self, staff_id: str) -> Optional[dict]:
        await asyncio.sleep(0)
        return self.weekly_hours.get(staff_id)

    def _in_range(self, resource_id, range_start, range_end, exclude_ids=()) -> List[BookingRow]:
        excluded = set(exclude_ids)
        rows = [
            r for r in self.bookings.values()
            if r.resource_id == resource_id
            and r.id not in excluded
            and r.start < range_end and r.end > range_start
        ]
        return sorted(rows, key=lambda r: r.start)

    async def query_bookings_in_range(
        self,
        resource_id: str,
        range_start: datetime,
        range_end: datetime,
        exclude_ids: Iterable[str] = (),
    ) -> List[BookingRow]:
        await asyncio.sleep(0)
        return self._in_range(resource_id, range_start, range_end, exclude_ids)

    async def query_blocks_in_range(
        self, resource_id: str, range_start: datetime, range_end: datetime
    ) -> List[Interval]:
        await asyncio.sleep(0)
        return [
            b for staff_id, b in self.blocks
            if staff_id in (None, resource_id) and b.start < range_end and b.end > range_start
        ]

    def _reject_overlaps(self, rows: List[BookingRow], exclude_ids: Iterable[str] = ()) -> None:
        for i, row in enumerate(rows):
            clash = self._in_range(row.resource_id, row.start, row.end, exclude_ids)
            clash += [
                other for other in rows[:i]
                if other.resource_id == row.resource_id
                and overlaps(row.start, row.end, other.start, other.end)
            ]
            if clash:
                raise OverlapError(conflicts=clash)

    def _get_lock(self) -> asyncio.Lock:
        # an asyncio.Lock binds to the loop it is first contended in
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def _save(self, rows: List[BookingRow], exclude_ids: Iterable[str] = ()) -> List[BookingRow]:
        if not self.enforce_no_overlap:
            await asyncio.sleep(0)
            for r in rows:
                self.bookings[r.id] = r
            return list(rows)

        async with self._get_lock():
            await asyncio.sleep(0)
            self._reject_overlaps(rows, exclude_ids)
            for r in rows:
                self.bookings[r.id] = r
            return list(rows)

    async def insert_bookings(self, rows: List[BookingRow]) -> List[BookingRow]:
        return await self._save(rows)

    async def update_bookings(self, rows: List[BookingRow]) -> List[BookingRow]:
        return await self._save(rows, exclude_ids=[r.id for r in rows])

    async def get_group(self, group_id: str) -> List[BookingRow]:
        await asyncio.sleep(0)
        return sorted(
            (r for r in self.bookings.values() if r.booking_group_id == group_id),
            key=lambda r: r.start,
        )

    async def delete_group(self, group_id: str) -> int:
        await asyncio.sleep(0)
        ids = [r.id for r in self.bookings.values() if r.booking_group_id == group_id]
        for booking_id in ids:
            del self.bookings[booking_id]
        return len(ids)
