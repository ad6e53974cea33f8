import logging
from dataclasses import dataclass, field
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from campus_booking.client.api import RecordStoreClient, StoreError
from campus_booking.client.mirror import CollectionMirror
from campus_booking.client.notifier import Notifier
from campus_booking.schemas.booking import Record

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)

STAFF_ONLY_MESSAGE = "Staff login required."


@dataclass
class ActionResult:
    """What the presentation layer shows after a user action."""
    success: bool
    message: str
    records: List[Record] = field(default_factory=list)

    @classmethod
    def fail(cls, message: str) -> "ActionResult":
        return cls(success=False, message=message)


class BaseSystem(Generic[R]):
    def __init__(self, client: RecordStoreClient, mirror: CollectionMirror[R], notifier: Optional[Notifier] = None):
        self.client = client
        self.mirror = mirror
        self.notifier = notifier or Notifier(client)
        self.is_admin = False

    @property
    def records(self) -> List[R]:
        return self.mirror.items

    def get(self, record_id: str) -> Optional[R]:
        return next((r for r in self.mirror.items if r.id == record_id), None)

    async def start(self) -> bool:
        """Foreground load, then the poll and sweep timers."""
        loaded = await self.mirror.load()
        self.mirror.start()
        return loaded

    async def stop(self):
        await self.mirror.stop()
        await self.notifier.drain()

    # =====================================================
    # STAFF GATE
    # =====================================================

    async def login(self, password: str) -> ActionResult:
        try:
            self.is_admin = await self.client.login(password)
        except StoreError as e:
            return ActionResult.fail(e.message)
        if not self.is_admin:
            return ActionResult.fail("Incorrect password.")
        return ActionResult(success=True, message="Logged in as staff.")

    def logout(self):
        self.is_admin = False

    # =====================================================
    # HELPER
    # =====================================================

    async def _commit(self, new_records: Sequence[R], message: str, changed: Sequence[R] = ()) -> ActionResult:
        try:
            await self.mirror.commit(new_records)
        except StoreError as e:
            return ActionResult.fail(e.message)
        return ActionResult(success=True, message=message, records=list(changed))

    async def _remove(self, predicate: Callable[[R], bool], message: str) -> ActionResult:
        if not self.is_admin:
            return ActionResult.fail(STAFF_ONLY_MESSAGE)
        removed = [r for r in self.mirror.items if predicate(r)]
        if not removed:
            return ActionResult.fail("Record not found.")
        kept = [r for r in self.mirror.items if not predicate(r)]
        return await self._commit(kept, message, removed)
