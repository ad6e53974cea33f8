import logging
import uuid
from typing import List, Optional

from campus_booking import catalog
from campus_booking.client.api import RecordStoreClient
from campus_booking.client.base import ActionResult, BaseSystem
from campus_booking.client.mirror import CollectionMirror
from campus_booking.client.notifier import Notifier
from campus_booking.core.config import settings
from campus_booking.schemas.borrowing import BorrowingForm, BorrowingRequest, BorrowStatus, EquipmentCategory
from campus_booking.schemas.store import DataType
from campus_booking.services.lifecycle import InvalidTransition, sweep_borrowings, transition_borrowing
from campus_booking.services.messages import MessageService, message_service

logger = logging.getLogger(__name__)


def borrowing_mirror(client: RecordStoreClient, **kwargs) -> CollectionMirror[BorrowingRequest]:
    return CollectionMirror(
        client,
        DataType.EQUIPMENT,
        BorrowingRequest.model_validate,
        sweep_fn=sweep_borrowings,
        sweep_interval=settings.BORROWING_SWEEP_INTERVAL_SECONDS,
        **kwargs,
    )


class EquipmentSystem(BaseSystem[BorrowingRequest]):
    def __init__(
        self,
        client: RecordStoreClient,
        mirror: Optional[CollectionMirror[BorrowingRequest]] = None,
        notifier: Optional[Notifier] = None,
        messages: Optional[MessageService] = None,
    ):
        super().__init__(client, mirror or borrowing_mirror(client), notifier)
        self.messages = messages or message_service

    @property
    def categories(self) -> List[EquipmentCategory]:
        return list(catalog.EQUIPMENT_CATEGORIES)

    def _validate(self, form: BorrowingForm) -> Optional[str]:
        required = (form.borrower_name, form.purpose, form.equipment_list)
        if any(not (value or "").strip() for value in required) or not form.borrow_date or not form.return_date:
            return "Please fill in all required fields."
        if form.borrow_date < self.mirror.clock().date():
            return "Borrow date cannot be in the past."
        if form.return_date < form.borrow_date:
            return "Return date must not be before the borrow date."
        return None

    async def submit(self, form: BorrowingForm) -> ActionResult:
        error = self._validate(form)
        if error:
            return ActionResult.fail(error)

        request = BorrowingRequest(
            id=str(uuid.uuid4()),
            borrower_name=form.borrower_name.strip(),
            phone=form.phone.strip(),
            department=form.department.strip(),
            purpose=form.purpose.strip(),
            borrow_date=form.borrow_date,
            return_date=form.return_date,
            equipment_list=form.equipment_list.strip(),
            status=BorrowStatus.PENDING,
            created_at=self.mirror.clock(),
            notes=form.notes.strip(),
        )
        # newest request first
        result = await self._commit([request] + self.mirror.items, "Borrowing request submitted.", [request])
        if result.success:
            self.notifier.dispatch(self.messages.borrowing_created(request))
        return result

    async def change_status(self, request_id: str, status: BorrowStatus) -> ActionResult:
        current = self.get(request_id)
        if current is None:
            return ActionResult.fail("Record not found.")
        try:
            updated = transition_borrowing(current, BorrowStatus(status))
        except InvalidTransition as e:
            return ActionResult.fail(str(e))
        if updated is current:
            return ActionResult(success=True, message="Status unchanged.", records=[current])

        new_records = [updated if r.id == request_id else r for r in self.mirror.items]
        return await self._commit(new_records, "Status updated.", [updated])

    async def delete(self, request_id: str) -> ActionResult:
        return await self._remove(lambda r: r.id == request_id, "Borrowing request deleted.")

    async def notify_overdue(self, request_id: str) -> ActionResult:
        request = self.get(request_id)
        if request is None:
            return ActionResult.fail("Record not found.")
        if await self.notifier.send_now(self.messages.borrowing_overdue(request)):
            return ActionResult(success=True, message="Overdue reminder sent.", records=[request])
        return ActionResult.fail("Overdue reminder could not be sent.")
