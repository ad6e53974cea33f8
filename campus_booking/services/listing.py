from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from campus_booking import catalog
from campus_booking.schemas.booking import Booking, BookingStatus
from campus_booking.schemas.borrowing import BorrowingRequest, BorrowStatus

CURRENT_BORROW_STATUSES = {BorrowStatus.PENDING, BorrowStatus.BORROWING, BorrowStatus.OVERDUE}
HISTORY_BORROW_STATUSES = {BorrowStatus.RETURNED, BorrowStatus.CANCELLED}

# lower sorts first
BORROW_STATUS_PRIORITY: Dict[BorrowStatus, int] = {
    BorrowStatus.OVERDUE: 0,
    BorrowStatus.BORROWING: 1,
    BorrowStatus.PENDING: 2,
    BorrowStatus.RETURNED: 3,
    BorrowStatus.CANCELLED: 4,
}


@dataclass
class GroupSummary:
    group_id: str
    room_names: List[str]
    booking_count: int

    @property
    def room_count(self) -> int:
        return len(self.room_names)


# =========================================================================
# ROOM BOOKINGS
# =========================================================================

def room_day_view(bookings: Iterable[Booking], room_name: str, day: date) -> List[Booking]:
    """Booked slots of one room on one day, earliest first."""
    selected = [
        b for b in bookings
        if b.room_name == room_name and b.date == day and b.status == BookingStatus.BOOKED
    ]
    return sorted(selected, key=lambda b: catalog.time_to_minutes(b.start_time))


def list_bookings(
    bookings: Iterable[Booking],
    status: Optional[BookingStatus] = None,
    room_name: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Booking]:
    result = list(bookings)
    if status:
        result = [b for b in result if b.status == status]
    if room_name:
        result = [b for b in result if b.room_name == room_name]
    if search:
        needle = search.strip().lower()
        result = [
            b for b in result
            if needle in b.booker_name.lower() or needle in b.purpose.lower() or needle in b.room_name.lower()
        ]
    # newest date first, then by start time within a day
    result.sort(key=lambda b: catalog.time_to_minutes(b.start_time))
    result.sort(key=lambda b: b.date, reverse=True)
    return result


def group_summary(bookings: Sequence[Booking], group_id: str) -> Optional[GroupSummary]:
    members = [b for b in bookings if b.group_id == group_id]
    if not group_id or not members:
        return None
    return GroupSummary(
        group_id=group_id,
        room_names=list(dict.fromkeys(b.room_name for b in members)),
        booking_count=len(members),
    )


# =========================================================================
# EQUIPMENT BORROWINGS
# =========================================================================

def list_borrowings(
    requests: Iterable[BorrowingRequest],
    history: bool = False,
    name: Optional[str] = None,
    status: Optional[BorrowStatus] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> List[BorrowingRequest]:
    """
    One tab of the borrowing list. "current" holds open requests, "history"
    holds returned and cancelled ones; month and year filter on the borrow date.
    """
    tab = HISTORY_BORROW_STATUSES if history else CURRENT_BORROW_STATUSES
    result = [r for r in requests if r.status in tab]

    if name:
        needle = name.strip().lower()
        result = [r for r in result if needle in r.borrower_name.lower()]
    if status:
        result = [r for r in result if r.status == status]
    if month:
        result = [r for r in result if r.borrow_date.month == month]
    if year:
        result = [r for r in result if r.borrow_date.year == year]

    if history:
        result.sort(key=lambda r: r.created_at, reverse=True)
    else:
        result.sort(key=lambda r: r.borrow_date)
    # stable: keeps the secondary order inside each status
    result.sort(key=lambda r: BORROW_STATUS_PRIORITY[r.status])
    return result
