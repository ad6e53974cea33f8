import asyncio
import logging
from typing import Optional, Set

from campus_booking.client.api import RecordStoreClient, StoreError
from campus_booking.core.config import settings

logger = logging.getLogger(__name__)


class Notifier:
    """
    Best-effort push of a text message through the relay.

    `dispatch` schedules delivery as its own task and returns at once, so a
    slow or broken relay never holds up the booking that triggered it.
    Failures are retried with exponential backoff and then only logged.
    """

    def __init__(
        self,
        client: RecordStoreClient,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ):
        self.client = client
        self.max_attempts = max_attempts or settings.NOTIFY_MAX_ATTEMPTS
        self.backoff_seconds = settings.NOTIFY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, message: str) -> bool:
        if not message or not message.strip():
            return False
        task = asyncio.create_task(self._deliver(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def send_now(self, message: str) -> bool:
        """Deliver and wait; used where the caller reports the outcome to staff."""
        if not message or not message.strip():
            return False
        return await self._deliver(message)

    async def _deliver(self, message: str) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self.client.notify(message)
                return True
            except StoreError as e:
                if attempt == self.max_attempts:
                    logger.error(f"Notification dropped after {attempt} attempt(s): {e.message}")
                    return False
                delay = self.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(f"Notification attempt {attempt} failed ({e.message}), retrying in {delay}s")
                await asyncio.sleep(delay)
        return False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self):
        """Wait for every dispatched notification to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
