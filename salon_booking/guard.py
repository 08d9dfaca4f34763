# salon_booking/guard.py
"""
Commit-time overlap protection.

Availability is computed from a snapshot that can go stale between showing
a slot and the client confirming it, so every write re-reads the stylist's
bookings for the proposed interval immediately before inserting.

A single attempt moves Proposed -> Checked -> Committed | Rejected | Failed.
Nothing is retried: a Rejected attempt is a conflict for the user to resolve
and a Failed one is left for the caller to resubmit.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional

from .core import overlaps
from .errors import OverlapError, SchedulingError, StoreError
from .ports import BookingStore, Clock, IdGenerator, new_id, system_clock
from .schemas import BookingDraft, BookingRow, Interval
from .timeline import span

logger = logging.getLogger(__name__)


class AttemptState(str, Enum):
    proposed = "proposed"
    checked = "checked"
    committed = "committed"
    rejected = "rejected"
    failed = "failed"


@dataclass
class CommitResult:
    state: AttemptState
    bookings: List[BookingRow] = field(default_factory=list)
    error: Optional[SchedulingError] = None

    @property
    def ok(self) -> bool:
        return self.state == AttemptState.committed

    def raise_for_error(self) -> List[BookingRow]:
        if self.error is not None:
            raise self.error
        return self.bookings


def _check_chain(rows: List, interval: Interval) -> None:
    if not rows:
        raise ValueError("A booking needs at least one service row")
    previous_end = None
    for r in rows:
        if r.end <= r.start:
            raise ValueError(f"Row {r.title!r} ends before it starts")
        if r.start < interval.start or r.end > interval.end:
            raise ValueError(f"Row {r.title!r} falls outside the booked interval")
        if previous_end is not None and r.start < previous_end:
            raise ValueError("Service rows must be chained in time order")
        previous_end = r.end


class OverlapGuard:
    def __init__(
        self,
        store: BookingStore,
        clock: Clock = system_clock,
        id_generator: IdGenerator = new_id,
    ):
        self.store = store
        self.clock = clock
        self.id_generator = id_generator

    async def _conflicts(
        self,
        stylist_id: str,
        interval: Interval,
        rows: List,
        exclude_ids: Iterable[str] = (),
    ) -> List:
        bookings = await self.store.query_bookings_in_range(
            stylist_id, interval.start, interval.end, exclude_ids
        )
        blocks = await self.store.query_blocks_in_range(stylist_id, interval.start, interval.end)
        return [
            busy for busy in list(bookings) + list(blocks)
            if any(overlaps(r.start, r.end, busy.start, busy.end) for r in rows)
        ]

    async def _write(self, rows: List[BookingRow], write, label: str) -> CommitResult:
        group_id = rows[0].booking_group_id
        try:
            saved = await write(rows)
        except OverlapError as e:
            logger.info(f"{label} rejected by store for group {group_id}: {e}")
            return CommitResult(AttemptState.rejected, error=e)
        except StoreError as e:
            # no compensating transaction: some rows of the batch may have landed
            logger.error(
                f"{label} failed for group {group_id}; rows may be partially written "
                f"and need manual cleanup: {e}"
            )
            return CommitResult(AttemptState.failed, error=e)

        logger.info(f"{label} committed group {group_id} ({len(saved)} row(s))")
        return CommitResult(AttemptState.committed, bookings=list(saved))

    async def commit(
        self,
        stylist_id: str,
        interval: Interval,
        drafts: List[BookingDraft],
    ) -> CommitResult:
        """
        Re-check and insert one checkout's rows for a stylist.

        Args:
            stylist_id: resource the rows are booked against
            interval: span covering every row
            drafts: one per service, in time order

        Returns:
            CommitResult with the inserted rows, or the OverlapError /
            StoreError that stopped the attempt.
        """
        _check_chain(drafts, interval)

        group_id = self.id_generator()
        created_at = self.clock()
        rows = [
            BookingRow(
                **d.model_dump(),
                id=self.id_generator(),
                booking_group_id=group_id,
                resource_id=stylist_id,
                created_at=created_at,
            )
            for d in drafts
        ]
        logger.info(
            f"Booking {group_id} proposed for {stylist_id} "
            f"{interval.start.isoformat()}-{interval.end.isoformat()}"
        )

        try:
            conflicts = await self._conflicts(stylist_id, interval, rows)
        except StoreError as e:
            logger.error(f"Overlap re-check failed for group {group_id}: {e}")
            return CommitResult(AttemptState.failed, error=e)

        if conflicts:
            logger.info(f"Booking {group_id} rejected: {len(conflicts)} conflicting interval(s)")
            return CommitResult(AttemptState.rejected, error=OverlapError(conflicts=conflicts))

        logger.debug(f"Booking {group_id} checked, inserting {len(rows)} row(s)")
        return await self._write(rows, self.store.insert_bookings, "Booking")

    async def reschedule(
        self,
        group_id: str,
        new_start: datetime,
        new_stylist_id: Optional[str] = None,
    ) -> CommitResult:
        """
        Move a booking group so its first row starts at new_start.

        Durations and gaps between rows are kept. The group's own rows are
        ignored by the overlap re-check.

        Raises:
            LookupError: when the group does not exist.
        """
        try:
            current = sorted(await self.store.get_group(group_id), key=lambda r: r.start)
        except StoreError as e:
            return CommitResult(AttemptState.failed, error=e)
        if not current:
            raise LookupError(f"Booking group {group_id} not found")

        target = new_stylist_id or current[0].resource_id
        # every row carries new_start's UTC offset
        first = current[0].start
        moved = [
            r.model_copy(update={
                "start": new_start + (r.start - first),
                "end": new_start + (r.end - first),
                "resource_id": target,
            })
            for r in current
        ]
        interval = span(moved)

        try:
            conflicts = await self._conflicts(target, interval, moved, exclude_ids=[r.id for r in current])
        except StoreError as e:
            return CommitResult(AttemptState.failed, error=e)
        if conflicts:
            logger.info(f"Reschedule of {group_id} rejected: {len(conflicts)} conflicting interval(s)")
            return CommitResult(AttemptState.rejected, error=OverlapError(conflicts=conflicts))

        return await self._write(moved, self.store.update_bookings, "Reschedule")

    async def cancel(self, group_id: str) -> int:
        deleted = await self.store.delete_group(group_id)
        logger.info(f"Cancelled group {group_id} ({deleted} row(s))")
        return deleted
