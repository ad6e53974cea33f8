from datetime import date, datetime

import pytest

from campus_booking import catalog
from campus_booking.client.equipment import EquipmentSystem, borrowing_mirror
from campus_booking.client.notifier import Notifier
from campus_booking.client.room_booking import RoomBookingSystem, booking_mirror
from campus_booking.schemas.booking import BookingStatus
from campus_booking.schemas.borrowing import BorrowingForm, BorrowStatus

ROOM_A = catalog.get_room(1).name
STAFF_PASSWORD = "staff-pass"


@pytest.fixture
def notifier(store_client):
    return Notifier(store_client, max_attempts=1, backoff_seconds=0)


@pytest.fixture
def rooms(store_client, clock, notifier):
    return RoomBookingSystem(store_client, mirror=booking_mirror(store_client, clock=clock), notifier=notifier)


@pytest.fixture
def equipment(store_client, clock, notifier):
    return EquipmentSystem(store_client, mirror=borrowing_mirror(store_client, clock=clock), notifier=notifier)


def borrowing_form(**overrides) -> BorrowingForm:
    fields = dict(
        borrower_name="สมหญิง",
        phone="",
        department="งานทะเบียน",
        purpose="ถ่ายภาพ",
        borrow_date=date(2024, 6, 1),
        return_date=date(2024, 6, 2),
        equipment_list="กล้อง 1 ตัว",
    )
    fields.update(overrides)
    return BorrowingForm(**fields)


# ==============================================================================
# ROOM BOOKING
# ==============================================================================

@pytest.mark.asyncio
async def test_submit_commits_and_notifies(rooms, fake_store, booking_form):
    result = await rooms.submit(booking_form(date=date(2024, 6, 2)))
    await rooms.notifier.drain()
    await rooms.mirror.drain()

    assert result.success
    assert "notified" in result.message
    assert len(fake_store.blobs["rooms"]) == 1
    assert fake_store.notifications[0].startswith(ROOM_A)
    assert "2 มิ.ย. 2567" in fake_store.notifications[0]


@pytest.mark.asyncio
async def test_multi_submission_sends_one_multi_message(rooms, fake_store, booking_form):
    form = booking_form(
        room_ids=[1, 2], date=date(2024, 6, 2), end_date=date(2024, 6, 4), is_multi_day=True,
    )

    await rooms.submit(form)
    await rooms.notifier.drain()
    await rooms.mirror.drain()

    assert len(fake_store.blobs["rooms"]) == 6
    assert len(fake_store.notifications) == 1
    assert fake_store.notifications[0].startswith("จองหลายรายการ:")
    assert "2 มิ.ย. - 4 มิ.ย. 2567" in fake_store.notifications[0]


@pytest.mark.asyncio
async def test_rejected_submission_writes_nothing(rooms, fake_store, make_booking, booking_form):
    fake_store.blobs["rooms"] = [make_booking(date=date(2024, 6, 2)).to_wire()]
    await rooms.mirror.load()

    result = await rooms.submit(booking_form(date=date(2024, 6, 2), start_time="09:00", end_time="11:00"))

    assert not result.success
    assert fake_store.writes == []
    assert fake_store.notifications == []


@pytest.mark.asyncio
async def test_failed_save_reports_store_message(rooms, fake_store, booking_form):
    fake_store.fail_writes = True

    result = await rooms.submit(booking_form(date=date(2024, 6, 2)))
    await rooms.mirror.drain()

    assert not result.success
    assert result.message == "Failed to save rooms data: KV write failed"
    assert fake_store.notifications == []


@pytest.mark.asyncio
async def test_cancel_group(rooms, fake_store, make_booking):
    fake_store.blobs["rooms"] = [
        make_booking(group_id="g1", date=date(2024, 6, 2)).to_wire(),
        make_booking(group_id="g1", date=date(2024, 6, 3)).to_wire(),
        make_booking(date=date(2024, 6, 4)).to_wire(),
    ]
    await rooms.mirror.load()

    result = await rooms.cancel_group("g1")
    await rooms.mirror.drain()

    assert result.success
    assert [b.status for b in rooms.records] == [
        BookingStatus.CANCELLED, BookingStatus.CANCELLED, BookingStatus.BOOKED,
    ]


@pytest.mark.asyncio
async def test_cancel_twice_is_refused(rooms, fake_store, make_booking):
    booking = make_booking(date=date(2024, 6, 2))
    fake_store.blobs["rooms"] = [booking.to_wire()]
    await rooms.mirror.load()

    assert (await rooms.cancel(booking.id)).success
    await rooms.mirror.drain()
    second = await rooms.cancel(booking.id)

    assert not second.success


@pytest.mark.asyncio
async def test_delete_requires_staff_login(rooms, fake_store, make_booking):
    booking = make_booking(date=date(2024, 6, 2))
    fake_store.blobs["rooms"] = [booking.to_wire()]
    await rooms.mirror.load()

    refused = await rooms.delete(booking.id)
    wrong = await rooms.login("nope")
    login = await rooms.login(STAFF_PASSWORD)
    deleted = await rooms.delete(booking.id)
    await rooms.mirror.drain()

    assert not refused.success
    assert not wrong.success
    assert login.success
    assert deleted.success
    assert fake_store.blobs["rooms"] == []


@pytest.mark.asyncio
async def test_update_moves_booking(rooms, fake_store, make_booking, booking_form):
    booking = make_booking(date=date(2024, 6, 2))
    fake_store.blobs["rooms"] = [booking.to_wire()]
    await rooms.mirror.load()

    form = rooms.edit_form(booking)
    form.start_time, form.end_time = "14:00", "16:00"
    result = await rooms.update(booking, form)
    await rooms.mirror.drain()

    assert result.success
    stored = fake_store.blobs["rooms"]
    assert len(stored) == 1
    assert stored[0]["startTime"] == "14:00"
    assert stored[0]["createdAt"] == "2024-05-20T08:00:00"


# ==============================================================================
# EQUIPMENT
# ==============================================================================

@pytest.mark.asyncio
async def test_borrowing_submit_prepends_pending_request(equipment, fake_store, make_borrowing):
    fake_store.blobs["equipment"] = [make_borrowing().to_wire()]
    await equipment.mirror.load()

    result = await equipment.submit(borrowing_form())
    await equipment.notifier.drain()
    await equipment.mirror.drain()

    assert result.success
    assert equipment.records[0].borrower_name == "สมหญิง"
    assert equipment.records[0].status == BorrowStatus.PENDING
    assert len(equipment.records) == 2
    message = fake_store.notifications[0]
    assert "📞 เบอร์โทร: -" in message
    assert "1/6/2567 ถึง 2/6/2567" in message


@pytest.mark.parametrize("overrides, expected", [
    ({"purpose": ""}, "Please fill in all required fields."),
    ({"return_date": None}, "Please fill in all required fields."),
    ({"borrow_date": date(2024, 5, 31)}, "Borrow date cannot be in the past."),
    ({"return_date": date(2024, 5, 31)}, "Return date must not be before the borrow date."),
])
@pytest.mark.asyncio
async def test_borrowing_validation(equipment, fake_store, overrides, expected):
    result = await equipment.submit(borrowing_form(**overrides))

    assert not result.success
    assert result.message == expected
    assert fake_store.writes == []


@pytest.mark.asyncio
async def test_change_status_follows_state_machine(equipment, fake_store, make_borrowing):
    request = make_borrowing(status=BorrowStatus.PENDING)
    fake_store.blobs["equipment"] = [request.to_wire()]
    await equipment.mirror.load()

    refused = await equipment.change_status(request.id, BorrowStatus.RETURNED)
    accepted = await equipment.change_status(request.id, BorrowStatus.BORROWING)
    await equipment.mirror.drain()

    assert not refused.success
    assert accepted.success
    assert fake_store.blobs["equipment"][0]["status"] == "borrowing"


@pytest.mark.asyncio
async def test_change_to_same_status_writes_nothing(equipment, fake_store, make_borrowing):
    request = make_borrowing(status=BorrowStatus.BORROWING)
    fake_store.blobs["equipment"] = [request.to_wire()]
    await equipment.mirror.load(background=True)

    result = await equipment.change_status(request.id, BorrowStatus.BORROWING)

    assert result.success
    assert result.records == [request]
    assert fake_store.writes_of("equipment") == []


def test_equipment_categories_come_from_catalog(equipment):
    categories = equipment.categories

    assert [c.title for c in categories] == ["กล้องและวิดีโอ", "ระบบเสียง", "อุปกรณ์เสริม", "คอมพิวเตอร์"]
    assert all(c.items for c in categories)
    categories.clear()
    assert len(catalog.EQUIPMENT_CATEGORIES) == 4


@pytest.mark.asyncio
async def test_notify_overdue(equipment, fake_store, make_borrowing):
    request = make_borrowing(status=BorrowStatus.OVERDUE)
    fake_store.blobs["equipment"] = [request.to_wire()]
    await equipment.mirror.load()

    result = await equipment.notify_overdue(request.id)

    assert result.success
    assert fake_store.notifications[0].startswith("⚠️ แจ้งเตือน: เลยกำหนดคืนอุปกรณ์")
    assert "3/6/2567" in fake_store.notifications[0]


@pytest.mark.asyncio
async def test_equipment_load_flags_overdue(equipment, fake_store, make_borrowing, clock):
    clock.now = datetime(2024, 6, 10, 9, 0, tzinfo=clock.now.tzinfo)
    fake_store.blobs["equipment"] = [make_borrowing(status=BorrowStatus.BORROWING).to_wire()]

    await equipment.mirror.load()
    await equipment.mirror.drain()

    assert equipment.records[0].status == BorrowStatus.OVERDUE
