# campus_booking/services/booking_engine.py
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from campus_booking import catalog
from campus_booking.core.clock import format_date_label, format_date_range_label, iter_days
from campus_booking.schemas.booking import Booking, BookingForm, BookingStatus, Room, RoomStatus


@dataclass
class BookingPlan:
    """Outcome of one form submission: records to add, ids to drop, or an error."""
    bookings: List[Booking] = field(default_factory=list)
    removed_ids: Set[str] = field(default_factory=set)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, message: str) -> "BookingPlan":
        return cls(error=message)

    def apply(self, collection: Sequence[Booking]) -> List[Booking]:
        """New full collection: survivors in their order, then the new records."""
        kept = [b for b in collection if b.id not in self.removed_ids]
        return kept + list(self.bookings)


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open [start, end) test, touching endpoints do not overlap."""
    return max(start_a, start_b) < min(end_a, end_b)


def find_conflict(
    collection: Iterable[Booking],
    room_name: str,
    day: date,
    start_time: str,
    end_time: str,
    exclude_ids: Set[str] = frozenset(),
) -> Optional[Booking]:
    """First `booked` record of `room_name` on `day` overlapping [start_time, end_time)."""
    new_start = catalog.time_to_minutes(start_time)
    new_end = catalog.time_to_minutes(end_time)

    for existing in collection:
        if existing.id in exclude_ids:
            continue
        if existing.status != BookingStatus.BOOKED:
            continue
        if existing.room_name != room_name or existing.date != day:
            continue
        if intervals_overlap(
            new_start, new_end,
            catalog.time_to_minutes(existing.start_time),
            catalog.time_to_minutes(existing.end_time),
        ):
            return existing
    return None


def find_overlaps(collection: Iterable[Booking]) -> Optional[Tuple[Booking, Booking]]:
    """First pair of `booked` records sharing a room and a date whose intervals overlap."""
    by_slot: Dict[Tuple[str, date], List[Booking]] = defaultdict(list)
    for booking in collection:
        if booking.status == BookingStatus.BOOKED:
            by_slot[(booking.room_name, booking.date)].append(booking)

    for bookings in by_slot.values():
        ordered = sorted(bookings, key=lambda b: catalog.time_to_minutes(b.start_time))
        for previous, current in zip(ordered, ordered[1:]):
            if intervals_overlap(
                catalog.time_to_minutes(previous.start_time), catalog.time_to_minutes(previous.end_time),
                catalog.time_to_minutes(current.start_time), catalog.time_to_minutes(current.end_time),
            ):
                return previous, current
    return None


class BookingEngine:
    """
    Conflict check and expansion of room-booking submissions.

    Works purely on the collection it is given: it never touches the network
    and never raises for bad input. Every rejection comes back as a
    `BookingPlan` carrying a message for the person filling the form.
    """

    def __init__(
        self,
        rooms: Optional[List[Room]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.rooms = rooms if rooms is not None else catalog.ROOMS
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    def plan_create(self, form: BookingForm, collection: Sequence[Booking]) -> BookingPlan:
        rooms, error = self._validate(form, collection, exclude_ids=set())
        if error:
            return BookingPlan.failure(error)

        bookings = self._expand(form, rooms, group_id=None, created_at=self.clock())
        return BookingPlan(bookings=bookings)

    def plan_update(
        self, original: Booking, form: BookingForm, collection: Sequence[Booking]
    ) -> BookingPlan:
        """
        Re-validate an edited booking. A group member drags its whole group
        along: the old group is dropped and re-expanded from the new room
        selection and date range, keeping the original creation time.
        """
        replaced = self._group_members(original, collection)
        replaced_ids = {b.id for b in replaced}
        # rooms the group already holds stay selectable even when closed
        held_rooms = {b.room_name for b in replaced}

        rooms, error = self._validate(form, collection, exclude_ids=replaced_ids, held_rooms=held_rooms)
        if error:
            return BookingPlan.failure(error)

        bookings = self._expand(form, rooms, group_id=original.group_id, created_at=original.created_at)
        return BookingPlan(bookings=bookings, removed_ids=replaced_ids)

    def edit_form(self, booking: Booking, collection: Sequence[Booking]) -> BookingForm:
        """Pre-fill the form used to edit `booking` (and its group, if any)."""
        members = self._group_members(booking, collection)
        room_names = {b.room_name for b in members}
        room_ids = [r.id for r in self.rooms if r.name in room_names]

        first_date = booking.date
        last_date = booking.date
        if booking.group_id and booking.is_multi_day:
            first_date = min(b.date for b in members)
            last_date = max(b.date for b in members)

        return BookingForm(
            room_ids=room_ids,
            date=first_date,
            end_date=last_date,
            is_multi_day=booking.is_multi_day,
            start_time=booking.start_time,
            end_time=booking.end_time,
            booker_name=booking.booker_name,
            phone=booking.phone,
            participants=booking.participants,
            meeting_type=booking.meeting_type,
            purpose=booking.purpose,
            equipment=booking.equipment or "",
            attachment_url=booking.attachment_url,
        )

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def _validate(
        self,
        form: BookingForm,
        collection: Sequence[Booking],
        exclude_ids: Set[str],
        held_rooms: Set[str] = frozenset(),
    ) -> Tuple[List[Room], Optional[str]]:
        """Checks run in a fixed order; the first failure wins."""

        # 1. Room selection
        if not form.room_ids:
            return [], "Please select at least one room."

        rooms: List[Room] = []
        for room_id in dict.fromkeys(form.room_ids):
            room = next((r for r in self.rooms if r.id == room_id), None)
            if room is None:
                return [], f"Unknown room id: {room_id}."
            if room.status == RoomStatus.CLOSED and room.name not in held_rooms:
                return [], f'Room "{room.name}" is closed for booking.'
            rooms.append(room)

        # 2. Required fields
        required = (form.booker_name, form.start_time, form.end_time, form.purpose)
        if any(not (value or "").strip() for value in required):
            return [], "Please fill in all required fields."
        if form.participants is None or form.participants <= 0:
            return [], "Number of participants must be greater than zero."

        # 3. Time slots
        start_index = catalog.slot_index(form.start_time)
        end_index = catalog.slot_index(form.end_time)
        if start_index is None or end_index is None:
            return [], (
                f"Times must be on the hour between {catalog.TIME_SLOTS[0]} "
                f"and {catalog.TIME_SLOTS[-1]}."
            )
        if start_index >= end_index:
            return [], "End time must be after start time."

        # 4. Date range
        last_date = form.last_date
        if last_date < form.date:
            return [], "End date must not be before the start date."

        # 5. Conflicts over rooms x days; one hit rejects the whole submission
        for room in rooms:
            for day in iter_days(form.date, last_date):
                if find_conflict(collection, room.name, day, form.start_time, form.end_time, exclude_ids):
                    return [], (
                        f'Room "{room.name}" is already booked on {format_date_label(day)} '
                        f"between {form.start_time}-{form.end_time}. Please choose another time."
                    )

        return rooms, None

    # =========================================================================
    # EXPANSION
    # =========================================================================

    def _expand(
        self,
        form: BookingForm,
        rooms: List[Room],
        group_id: Optional[str],
        created_at: datetime,
    ) -> List[Booking]:
        days = list(iter_days(form.date, form.last_date))

        if len(rooms) * len(days) > 1:
            group_id = group_id or self.id_factory()
        else:
            group_id = None

        date_range = format_date_range_label(days[0], days[-1]) if form.is_multi_day else None

        bookings = []
        for room in rooms:
            for day in days:
                bookings.append(Booking(
                    id=self.id_factory(),
                    group_id=group_id,
                    room_name=room.name,
                    date=day,
                    start_time=form.start_time,
                    end_time=form.end_time,
                    booker_name=form.booker_name.strip(),
                    phone=form.phone.strip(),
                    participants=form.participants,
                    meeting_type=form.meeting_type,
                    purpose=form.purpose.strip(),
                    equipment=form.equipment,
                    status=BookingStatus.BOOKED,
                    created_at=created_at,
                    attachment_url=form.attachment_url or None,
                    is_multi_day=form.is_multi_day,
                    date_range=date_range,
                ))
        return bookings

    # =========================================================================
    # HELPER
    # =========================================================================

    def _group_members(self, booking: Booking, collection: Sequence[Booking]) -> List[Booking]:
        if not booking.group_id:
            return [booking]
        members = [b for b in collection if b.group_id == booking.group_id]
        return members or [booking]


booking_engine = BookingEngine()
# END OF campus_booking/services/booking_engine.py
