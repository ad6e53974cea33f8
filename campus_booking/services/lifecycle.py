# campus_booking/services/lifecycle.py
import logging
from datetime import datetime
from typing import Callable, Dict, List, Sequence, Set, Tuple, TypeVar

from campus_booking import catalog
from campus_booking.schemas.booking import Booking, BookingStatus
from campus_booking.schemas.borrowing import BorrowingRequest, BorrowStatus

logger = logging.getLogger(__name__)

R = TypeVar("R")

# A sweep takes the mirror and "now" and returns (new collection, number of flipped records)
SweepFn = Callable[[Sequence[R], datetime], Tuple[List[R], int]]


class InvalidTransition(Exception):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change status from '{current.value}' to '{target.value}'")


# Manual (staff/user) transitions. Sweep-only transitions are listed separately.
BOOKING_TRANSITIONS: Dict[BookingStatus, Set[BookingStatus]] = {
    BookingStatus.BOOKED: {BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.EXPIRED: set(),
}
BOOKING_SWEEP_TRANSITIONS = {BookingStatus.BOOKED: BookingStatus.EXPIRED}

BORROW_TRANSITIONS: Dict[BorrowStatus, Set[BorrowStatus]] = {
    BorrowStatus.PENDING: {BorrowStatus.BORROWING, BorrowStatus.CANCELLED},
    BorrowStatus.BORROWING: {BorrowStatus.RETURNED, BorrowStatus.CANCELLED},
    BorrowStatus.OVERDUE: {BorrowStatus.RETURNED},
    BorrowStatus.RETURNED: set(),
    BorrowStatus.CANCELLED: set(),
}
BORROW_SWEEP_TRANSITIONS = {BorrowStatus.BORROWING: BorrowStatus.OVERDUE}


def can_transition(current, target, table) -> bool:
    return current == target or target in table.get(current, set())


def transition_booking(booking: Booking, target: BookingStatus) -> Booking:
    """Manual status change. Returns a new record; same-status is a no-op."""
    if not can_transition(booking.status, target, BOOKING_TRANSITIONS):
        raise InvalidTransition(booking.status, target)
    if booking.status == target:
        return booking
    return booking.model_copy(update={"status": target})


def transition_borrowing(request: BorrowingRequest, target: BorrowStatus) -> BorrowingRequest:
    if not can_transition(request.status, target, BORROW_TRANSITIONS):
        raise InvalidTransition(request.status, target)
    if request.status == target:
        return request
    return request.model_copy(update={"status": target})


def cancel_bookings(
    collection: Sequence[Booking], predicate: Callable[[Booking], bool]
) -> Tuple[List[Booking], int]:
    """
    Cancel every `booked` record matching `predicate`. Matching records that
    already left `booked` keep their status.
    """
    result = []
    changed = 0
    for booking in collection:
        if predicate(booking) and booking.status == BookingStatus.BOOKED:
            result.append(transition_booking(booking, BookingStatus.CANCELLED))
            changed += 1
        else:
            result.append(booking)
    return result, changed


# =========================================================================
# SWEEPS
# =========================================================================

def is_booking_expired(booking: Booking, now: datetime) -> bool:
    if booking.status != BookingStatus.BOOKED:
        return False
    ends_at = datetime.combine(booking.date, catalog.parse_slot_time(booking.end_time), tzinfo=now.tzinfo)
    return now > ends_at


def is_borrowing_overdue(request: BorrowingRequest, now: datetime) -> bool:
    # the whole due date is still on time
    return request.status == BorrowStatus.BORROWING and now.date() > request.return_date


def sweep_bookings(collection: Sequence[Booking], now: datetime) -> Tuple[List[Booking], int]:
    result = []
    changed = 0
    for booking in collection:
        if is_booking_expired(booking, now):
            result.append(booking.model_copy(update={"status": BOOKING_SWEEP_TRANSITIONS[booking.status]}))
            changed += 1
        else:
            result.append(booking)
    if changed:
        logger.info("Expiry sweep flipped %d booking(s) to expired", changed)
    return result, changed


def sweep_borrowings(
    collection: Sequence[BorrowingRequest], now: datetime
) -> Tuple[List[BorrowingRequest], int]:
    result = []
    changed = 0
    for request in collection:
        if is_borrowing_overdue(request, now):
            result.append(request.model_copy(update={"status": BORROW_SWEEP_TRANSITIONS[request.status]}))
            changed += 1
        else:
            result.append(request)
    if changed:
        logger.info("Overdue sweep flipped %d borrowing(s) to overdue", changed)
    return result, changed
