# salon_booking/sql_store.py
"""
Booking store on top of SQLModel.

Writes are hardened: inside one transaction the stylist's Staff row is
updated first, which makes concurrent writers for that stylist wait for each
other; the overlap re-check and the insert then run while that lock is held.
The (resource_id, start) unique constraint backs this up and is reported as
an overlap too.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from .core import from_storage, to_storage
from .errors import OverlapError, StoreError
from .models import Booking, ScheduleBlock, Staff
from .schemas import BookingRow, Interval, ServiceOverride

logger = logging.getLogger(__name__)


class SQLBookingStore:
    def __init__(self, engine, tz=None):
        self.engine = engine
        self.tz = tz

    # --- conversions ---

    def _row(self, b: Booking) -> BookingRow:
        return BookingRow(
            id=b.id,
            booking_group_id=b.booking_group_id,
            resource_id=b.resource_id,
            client_id=b.client_id,
            title=b.title,
            category=b.category,
            service_id=b.service_id,
            start=from_storage(b.start, self.tz),
            end=from_storage(b.end, self.tz),
            duration=b.duration,
            price=b.price,
            source=b.source,
            created_at=from_storage(b.created_at, self.tz),
        )

    @staticmethod
    def _apply(target: Booking, row: BookingRow) -> Booking:
        target.booking_group_id = row.booking_group_id
        target.resource_id = row.resource_id
        target.client_id = row.client_id
        target.title = row.title
        target.category = row.category
        target.service_id = row.service_id
        target.start = to_storage(row.start)
        target.end = to_storage(row.end)
        target.duration = row.duration
        target.price = row.price
        target.source = row.source.value
        target.created_at = to_storage(row.created_at)
        return target

    # --- sync helpers (run in the threadpool) ---

    def _overlapping(self, session: Session, resource_id, range_start, range_end, exclude_ids=()):
        stmt = (
            select(Booking)
            .where(Booking.resource_id == resource_id)
            .where(Booking.start < to_storage(range_end))
            .where(Booking.end > to_storage(range_start))
        )
        excluded = list(exclude_ids)
        if excluded:
            stmt = stmt.where(col(Booking.id).not_in(excluded))
        return session.exec(stmt.order_by(Booking.start)).all()

    def _lock_staff(self, session: Session, resource_id: str) -> None:
        staff = session.get(Staff, resource_id)
        if staff is None:
            raise StoreError(f"Unknown stylist {resource_id}")
        staff.lock_version += 1
        session.add(staff)
        session.flush()

    def _query_bookings(self, resource_id, range_start, range_end, exclude_ids):
        with Session(self.engine) as session:
            rows = self._overlapping(session, resource_id, range_start, range_end, exclude_ids)
            return [self._row(b) for b in rows]

    def _query_blocks(self, resource_id, range_start, range_end):
        with Session(self.engine) as session:
            blocks = session.exec(
                select(ScheduleBlock)
                .where(or_(ScheduleBlock.staff_id == resource_id, col(ScheduleBlock.staff_id).is_(None)))
                .where(ScheduleBlock.is_active == True)  # noqa: E712
                .where(ScheduleBlock.start < to_storage(range_end))
                .where(ScheduleBlock.end > to_storage(range_start))
            ).all()
            return [
                Interval(start=from_storage(b.start, self.tz), end=from_storage(b.end, self.tz))
                for b in blocks
            ]

    def _write(self, rows: List[BookingRow], updating: bool) -> List[BookingRow]:
        own_ids = [r.id for r in rows] if updating else []
        with Session(self.engine) as session:
            try:
                for resource_id in sorted({r.resource_id for r in rows}):
                    self._lock_staff(session, resource_id)

                for r in rows:
                    clash = self._overlapping(session, r.resource_id, r.start, r.end, own_ids)
                    if clash:
                        session.rollback()
                        raise OverlapError(conflicts=[self._row(b) for b in clash])

                if updating:
                    # move rows in an order that never lands one on a sibling's old start
                    moving_later = rows and from_storage(session.get(Booking, rows[0].id).start) < rows[0].start
                    for r in sorted(rows, key=lambda r: r.start, reverse=bool(moving_later)):
                        existing = session.get(Booking, r.id)
                        if existing is None:
                            raise StoreError(f"Booking {r.id} disappeared during update")
                        session.add(self._apply(existing, r))
                        session.flush()
                else:
                    for r in rows:
                        session.add(self._apply(Booking(id=r.id), r))

                session.commit()
            except IntegrityError as e:
                session.rollback()
                logger.info(f"Unique constraint refused booking rows: {e.orig}")
                raise OverlapError() from e
            except StoreError:
                session.rollback()
                raise
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Booking write failed: {e}")
                raise StoreError("Booking store unavailable", cause=e) from e
        return list(rows)

    def _get_group(self, group_id):
        with Session(self.engine) as session:
            rows = session.exec(
                select(Booking)
                .where(Booking.booking_group_id == group_id)
                .order_by(Booking.start)
            ).all()
            return [self._row(b) for b in rows]

    def _delete_group(self, group_id):
        with Session(self.engine) as session:
            rows = session.exec(select(Booking).where(Booking.booking_group_id == group_id)).all()
            for b in rows:
                session.delete(b)
            session.commit()
            return len(rows)

    def _staff(self, staff_id) -> Optional[Staff]:
        with Session(self.engine) as session:
            return session.get(Staff, staff_id)

    async def _run(self, fn, *args):
        try:
            return await run_in_threadpool(fn, *args)
        except (OverlapError, StoreError):
            raise
        except SQLAlchemyError as e:
            logger.error(f"Booking store query failed: {e}")
            raise StoreError("Booking store unavailable", cause=e) from e

    # --- BookingStore ---

    async def query_bookings_in_range(
        self,
        resource_id: str,
        range_start: datetime,
        range_end: datetime,
        exclude_ids: Iterable[str] = (),
    ) -> List[BookingRow]:
        return await self._run(self._query_bookings, resource_id, range_start, range_end, list(exclude_ids))

    async def query_blocks_in_range(self, resource_id: str, range_start: datetime, range_end: datetime) -> List[Interval]:
        return await self._run(self._query_blocks, resource_id, range_start, range_end)

    async def insert_bookings(self, rows: List[BookingRow]) -> List[BookingRow]:
        return await self._run(self._write, rows, False)

    async def update_bookings(self, rows: List[BookingRow]) -> List[BookingRow]:
        return await self._run(self._write, rows, True)

    async def get_group(self, group_id: str) -> List[BookingRow]:
        return await self._run(self._get_group, group_id)

    async def delete_group(self, group_id: str) -> int:
        return await self._run(self._delete_group, group_id)

    # --- StaffHoursSource ---

    async def get_weekly_hours(self, staff_id: str) -> Optional[dict]:
        staff = await self._run(self._staff, staff_id)
        return None if staff is None else staff.weekly_hours

    async def get_service_overrides(self, staff_id: str) -> List[ServiceOverride]:
        staff = await self._run(self._staff, staff_id)
        if staff is None:
            return []
        return [ServiceOverride(**o) for o in (staff.service_overrides or [])]
