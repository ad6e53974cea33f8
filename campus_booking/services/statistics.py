from collections import Counter
from typing import Iterable, Optional

from campus_booking import catalog
from campus_booking.schemas.booking import Booking, BookingStatus
from campus_booking.schemas.borrowing import BorrowingRequest, BorrowStatus
from campus_booking.schemas.statistics import (
    BookingStatistics,
    BorrowingStatistics,
    DepartmentUsage,
    RoomUsage,
)

UNKNOWN_DEPARTMENT = "ไม่ระบุหน่วยงาน"
USED_BOOKING_STATUSES = {BookingStatus.BOOKED, BookingStatus.EXPIRED}


def booking_statistics(bookings: Iterable[Booking]) -> BookingStatistics:
    """Bookings per catalog room, cancelled ones excluded, busiest room first."""
    counts = Counter(b.room_name for b in bookings if b.status in USED_BOOKING_STATUSES)
    usage = [RoomUsage(name=room.name, count=counts.get(room.name, 0)) for room in catalog.ROOMS]
    usage.sort(key=lambda u: u.count, reverse=True)
    return BookingStatistics(
        total_bookings=sum(u.count for u in usage),
        bookings_by_room=usage,
    )


def borrowing_statistics(
    requests: Iterable[BorrowingRequest],
    year: int,
    month: Optional[int] = None,
    top: int = 5,
) -> BorrowingStatistics:
    selected = [
        r for r in requests
        if r.borrow_date.year == year and (month is None or r.borrow_date.month == month)
    ]
    departments = Counter((r.department or "").strip() or UNKNOWN_DEPARTMENT for r in selected)

    return BorrowingStatistics(
        year=year,
        month=month,
        total=len(selected),
        returned=sum(1 for r in selected if r.status == BorrowStatus.RETURNED),
        active=sum(1 for r in selected if r.status in (BorrowStatus.BORROWING, BorrowStatus.OVERDUE)),
        cancelled=sum(1 for r in selected if r.status == BorrowStatus.CANCELLED),
        top_departments=[
            DepartmentUsage(department=name, count=count)
            for name, count in departments.most_common(top)
        ],
    )
