import asyncio
import enum
import logging
from datetime import datetime, timedelta
from typing import Callable, Generic, List, Optional, Sequence, Set, TypeVar

from pydantic import ValidationError

from campus_booking.client.api import RecordStoreClient, StoreError
from campus_booking.core.clock import now_local
from campus_booking.core.config import settings
from campus_booking.schemas.booking import Record
from campus_booking.schemas.store import DataType
from campus_booking.services.lifecycle import SweepFn

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)


class SyncState(str, enum.Enum):
    FRESH = "fresh"
    STALE = "stale"
    RECONCILING = "reconciling"


class ConnectionStatus(str, enum.Enum):
    CONNECTED = "connected"
    SYNCING = "syncing"
    ERROR = "error"


class CollectionMirror(Generic[R]):
    """
    In-process copy of one remote collection.

    The mirror is only replaced by a successful load or a successful commit.
    A failed commit leaves it as it was and schedules a background load so
    the view falls back to whatever the store really holds.
    """

    def __init__(
        self,
        client: RecordStoreClient,
        data_type: DataType,
        parse: Callable[[dict], R],
        sweep_fn: Optional[SweepFn] = None,
        sweep_interval: Optional[float] = None,
        poll_interval: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.client = client
        self.data_type = DataType(data_type)
        self.parse = parse
        self.sweep_fn = sweep_fn
        self.sweep_interval = sweep_interval
        self.poll_interval = poll_interval or settings.POLL_INTERVAL_SECONDS
        self.clock = clock or now_local

        self.items: List[R] = []
        self.last_updated: Optional[datetime] = None
        self.error: Optional[str] = None
        self.connection = ConnectionStatus.SYNCING
        self.visible = True

        self._reconciling = False
        self._load_failed = False
        self._background: Set[asyncio.Task] = set()
        self._poll_task: Optional[asyncio.Task] = None
        self._sweep_task: Optional[asyncio.Task] = None

    # =====================================================
    # STATE
    # =====================================================

    @property
    def state(self) -> SyncState:
        if self._reconciling:
            return SyncState.RECONCILING
        if self.last_updated is None or self._load_failed:
            return SyncState.STALE
        if self.clock() - self.last_updated > timedelta(seconds=self.poll_interval):
            return SyncState.STALE
        return SyncState.FRESH

    @property
    def needs_retry_screen(self) -> bool:
        """Nothing to show and the last foreground attempt failed."""
        return self.error is not None and not self.items

    def _replace(self, items: Sequence[R]):
        self.items = list(items)
        self.last_updated = self.clock()
        self.error = None
        self._load_failed = False
        self.connection = ConnectionStatus.CONNECTED

    # =====================================================
    # LOAD / COMMIT
    # =====================================================

    async def load(self, background: bool = False) -> bool:
        self.connection = ConnectionStatus.SYNCING
        try:
            raw = await self.client.fetch_data(self.data_type)
            items = [self.parse(entry) for entry in raw]
        except (StoreError, ValidationError) as e:
            message = e.message if isinstance(e, StoreError) else (
                f"Failed to fetch {self.data_type.value} data: malformed record"
            )
            self.connection = ConnectionStatus.ERROR
            self._load_failed = True
            self._reconciling = False
            if background:
                logger.warning(f"Background load of {self.data_type.value} failed: {message}")
            else:
                logger.error(f"Load of {self.data_type.value} failed: {message}")
                self.error = message
            return False

        self._replace(items)
        self._reconciling = False

        if not background:
            await self.sweep()
        return True

    async def commit(self, new_items: Sequence[R]) -> None:
        """Write the whole collection; raises StoreError after scheduling a reconcile."""
        self.connection = ConnectionStatus.SYNCING
        try:
            await self.client.save_data(self.data_type, new_items)
        except StoreError as e:
            logger.error(f"Commit of {self.data_type.value} failed: {e.message}")
            self.error = e.message
            self.connection = ConnectionStatus.ERROR
            self._reconciling = True
            self.schedule_load()
            raise

        self._replace(new_items)
        logger.info(f"Committed {len(self.items)} {self.data_type.value} record(s)")
        # pick up whatever a concurrent writer may have stored meanwhile
        self.schedule_load()

    def schedule_load(self) -> asyncio.Task:
        task = asyncio.create_task(self.load(background=True))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    # =====================================================
    # SWEEP
    # =====================================================

    async def sweep(self) -> int:
        """
        Apply time-based transitions to the mirror and commit only when
        something flipped. Commit failures are logged; the next tick retries.
        """
        if self.sweep_fn is None or not self.items:
            return 0

        new_items, changed = self.sweep_fn(self.items, self.clock())
        if not changed:
            return 0

        try:
            await self.commit(new_items)
        except StoreError as e:
            logger.error(f"Sweep of {self.data_type.value} could not be saved: {e.message}")
            return 0
        return changed

    # =====================================================
    # TIMERS
    # =====================================================

    def start(self):
        if not self._poll_task or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll_loop())
        if self.sweep_fn and self.sweep_interval and (not self._sweep_task or self._sweep_task.done()):
            self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Sync loop for {self.data_type.value} started")

    async def stop(self):
        for task in (self._poll_task, self._sweep_task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._poll_task = None
        self._sweep_task = None
        await self.drain()

    def set_visible(self, visible: bool):
        """Polling pauses while hidden; becoming visible again reloads at once."""
        was_hidden = not self.visible
        self.visible = visible
        if visible and was_hidden:
            self.schedule_load()

    async def _poll_loop(self):
        while True:
            try:
                await asyncio.sleep(self.poll_interval)
                if self.visible:
                    await self.load(background=True)
            except Exception:
                logger.exception("Poll loop error")

    async def _sweep_loop(self):
        while True:
            try:
                await asyncio.sleep(self.sweep_interval)
                await self.sweep()
            except Exception:
                logger.exception("Sweep loop error")

    async def drain(self):
        """Wait for scheduled background loads, including ones they schedule."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
