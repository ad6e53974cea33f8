from datetime import date, datetime

import pytest

from campus_booking.core.clock import local_tz
from campus_booking.schemas.booking import BookingStatus
from campus_booking.schemas.borrowing import BorrowStatus
from campus_booking.services.lifecycle import (
    InvalidTransition,
    cancel_bookings,
    sweep_bookings,
    sweep_borrowings,
    transition_borrowing,
    transition_booking,
)

TZ = local_tz()


def test_group_cancel_flips_only_group_members(make_booking):
    members = [make_booking(group_id="g1"), make_booking(group_id="g1", room_name="x")]
    outsider = make_booking(group_id="g2")
    single = make_booking()

    result, changed = cancel_bookings(members + [outsider, single], lambda b: b.group_id == "g1")

    assert changed == 2
    assert [b.status for b in result] == [
        BookingStatus.CANCELLED, BookingStatus.CANCELLED, BookingStatus.BOOKED, BookingStatus.BOOKED,
    ]


def test_group_cancel_leaves_expired_members_expired(make_booking):
    collection = [make_booking(group_id="g1"), make_booking(group_id="g1", status=BookingStatus.EXPIRED)]

    result, changed = cancel_bookings(collection, lambda b: b.group_id == "g1")

    assert changed == 1
    assert result[1].status == BookingStatus.EXPIRED


def test_booking_cannot_leave_cancelled(make_booking):
    with pytest.raises(InvalidTransition):
        transition_booking(make_booking(status=BookingStatus.CANCELLED), BookingStatus.BOOKED)


def test_booking_expiry_is_sweep_only(make_booking):
    with pytest.raises(InvalidTransition):
        transition_booking(make_booking(), BookingStatus.EXPIRED)


@pytest.mark.parametrize("current, target", [
    (BorrowStatus.PENDING, BorrowStatus.BORROWING),
    (BorrowStatus.PENDING, BorrowStatus.CANCELLED),
    (BorrowStatus.BORROWING, BorrowStatus.RETURNED),
    (BorrowStatus.BORROWING, BorrowStatus.CANCELLED),
    (BorrowStatus.OVERDUE, BorrowStatus.RETURNED),
])
def test_allowed_borrow_transitions(make_borrowing, current, target):
    request = make_borrowing(status=current)

    updated = transition_borrowing(request, target)

    assert updated.status == target
    assert request.status == current


@pytest.mark.parametrize("current, target", [
    (BorrowStatus.PENDING, BorrowStatus.RETURNED),
    (BorrowStatus.PENDING, BorrowStatus.OVERDUE),
    (BorrowStatus.RETURNED, BorrowStatus.BORROWING),
    (BorrowStatus.CANCELLED, BorrowStatus.PENDING),
])
def test_forbidden_borrow_transitions(make_borrowing, current, target):
    with pytest.raises(InvalidTransition):
        transition_borrowing(make_borrowing(status=current), target)


# ==============================================================================
# SWEEPS
# ==============================================================================

def test_booking_sweep_expires_only_finished_booked_records(make_booking):
    now = datetime(2024, 6, 1, 10, 30, tzinfo=TZ)
    collection = [
        make_booking(start_time="08:00", end_time="10:00"),
        make_booking(start_time="10:00", end_time="11:00"),
        make_booking(date=date(2024, 5, 31), status=BookingStatus.CANCELLED),
        make_booking(date=date(2024, 5, 31)),
    ]

    result, changed = sweep_bookings(collection, now)

    assert changed == 2
    assert [b.status for b in result] == [
        BookingStatus.EXPIRED, BookingStatus.BOOKED, BookingStatus.CANCELLED, BookingStatus.EXPIRED,
    ]


def test_booking_sweep_is_idempotent(make_booking):
    now = datetime(2024, 6, 2, 8, 0, tzinfo=TZ)
    first, changed_first = sweep_bookings([make_booking(), make_booking()], now)

    second, changed_second = sweep_bookings(first, now)

    assert changed_first == 2
    assert changed_second == 0
    assert second == first


def test_borrowing_sweep_waits_until_the_day_after_return(make_borrowing):
    request = make_borrowing(status=BorrowStatus.BORROWING, return_date=date(2024, 6, 3))

    _, on_due_day = sweep_borrowings([request], datetime(2024, 6, 3, 23, 59, tzinfo=TZ))
    result, after_due_day = sweep_borrowings([request], datetime(2024, 6, 4, 0, 1, tzinfo=TZ))

    assert on_due_day == 0
    assert after_due_day == 1
    assert result[0].status == BorrowStatus.OVERDUE


def test_borrowing_sweep_ignores_pending_requests(make_borrowing):
    request = make_borrowing(status=BorrowStatus.PENDING, return_date=date(2024, 1, 1))

    _, changed = sweep_borrowings([request], datetime(2024, 6, 4, tzinfo=TZ))

    assert changed == 0
