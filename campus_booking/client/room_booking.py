import logging
from typing import Optional

from campus_booking.client.api import RecordStoreClient
from campus_booking.client.base import ActionResult, BaseSystem
from campus_booking.client.mirror import CollectionMirror
from campus_booking.client.notifier import Notifier
from campus_booking.core.config import settings
from campus_booking.schemas.booking import Booking, BookingForm
from campus_booking.schemas.store import DataType
from campus_booking.services.booking_engine import BookingEngine, booking_engine
from campus_booking.services.lifecycle import cancel_bookings, sweep_bookings
from campus_booking.services.messages import MessageService, message_service

logger = logging.getLogger(__name__)


def booking_mirror(client: RecordStoreClient, **kwargs) -> CollectionMirror[Booking]:
    return CollectionMirror(
        client,
        DataType.ROOMS,
        Booking.model_validate,
        sweep_fn=sweep_bookings,
        sweep_interval=settings.BOOKING_SWEEP_INTERVAL_SECONDS,
        **kwargs,
    )


class RoomBookingSystem(BaseSystem[Booking]):
    """
    Room booking flows. Every mutation reads the current mirror, computes
    the next full collection and commits it whole.
    """

    def __init__(
        self,
        client: RecordStoreClient,
        mirror: Optional[CollectionMirror[Booking]] = None,
        notifier: Optional[Notifier] = None,
        engine: Optional[BookingEngine] = None,
        messages: Optional[MessageService] = None,
    ):
        super().__init__(client, mirror or booking_mirror(client), notifier)
        self.engine = engine or booking_engine
        self.messages = messages or message_service

    async def submit(self, form: BookingForm) -> ActionResult:
        plan = self.engine.plan_create(form, self.mirror.items)
        if not plan.ok:
            return ActionResult.fail(plan.error)

        result = await self._commit(plan.apply(self.mirror.items), "", plan.bookings)
        if not result.success:
            return result

        if self.notifier.dispatch(self.messages.booking_created(plan.bookings)):
            result.message = "Booking saved. Staff have been notified."
        else:
            result.message = "Booking saved, but no notification was sent. Please inform staff directly."
        return result

    async def update(self, original: Booking, form: BookingForm) -> ActionResult:
        plan = self.engine.plan_update(original, form, self.mirror.items)
        if not plan.ok:
            return ActionResult.fail(plan.error)
        return await self._commit(plan.apply(self.mirror.items), "Booking updated.", plan.bookings)

    def edit_form(self, booking: Booking) -> BookingForm:
        return self.engine.edit_form(booking, self.mirror.items)

    # =====================================================
    # CANCEL / DELETE
    # =====================================================

    async def cancel(self, booking_id: str) -> ActionResult:
        if self.get(booking_id) is None:
            return ActionResult.fail("Record not found.")
        updated, changed = cancel_bookings(self.mirror.items, lambda b: b.id == booking_id)
        if not changed:
            return ActionResult.fail("Only active bookings can be cancelled.")
        return await self._commit(updated, "Booking cancelled.")

    async def cancel_group(self, group_id: str) -> ActionResult:
        if not group_id:
            return ActionResult.fail("Record not found.")
        updated, changed = cancel_bookings(self.mirror.items, lambda b: b.group_id == group_id)
        if not changed:
            return ActionResult.fail("No active bookings in this group.")
        return await self._commit(updated, f"Cancelled {changed} booking(s).")

    async def delete(self, booking_id: str) -> ActionResult:
        return await self._remove(lambda b: b.id == booking_id, "Booking deleted.")

    async def delete_group(self, group_id: str) -> ActionResult:
        if not group_id:
            return ActionResult.fail("Record not found.")
        return await self._remove(lambda b: b.group_id == group_id, "Booking group deleted.")
