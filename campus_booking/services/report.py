# campus_booking/services/report.py
import asyncio
import logging
import re
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from campus_booking import catalog
from campus_booking.core.clock import BUDDHIST_ERA_OFFSET, now_local, today_local
from campus_booking.core.config import settings
from campus_booking.schemas.booking import Booking, BookingStatus
from campus_booking.schemas.store import DataType, WebhookEvent, WebhookPayload
from campus_booking.services.line import LineMessagingService, line_service
from campus_booking.services.messages import MessageService, message_service
from campus_booking.services.store import DataStoreService, data_store_service

logger = logging.getLogger(__name__)

REPORT_KEYWORDS = ["รายงาน", "สรุป", "เช็คห้อง", "ดูการจอง", "list", "ว่างไหม", "วันนี้"]
TOMORROW_KEYWORD = "พรุ่งนี้"

# LINE mentions look like "@Bot Name"; only ASCII names are stripped so Thai text survives
MENTION_PATTERN = re.compile(r"@[\w\s.-]+", re.ASCII)
DATE_PATTERN = re.compile(r"(\d{1,2})[/-](\d{1,2})[/-](\d{4})")


def parse_target_date(raw_text: str, today: date) -> Optional[date]:
    """
    Which day a chat message asks about, or None when it asks nothing.

    Explicit dates win over keywords. Buddhist-era years are converted.
    """
    text = MENTION_PATTERN.sub("", raw_text or "", count=1).strip().lower()

    match = DATE_PATTERN.search(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        if year > 2500:
            year -= BUDDHIST_ERA_OFFSET
        try:
            return date(year, month, day)
        except ValueError:
            logger.info(f"Ignoring impossible date in chat message: {match.group(0)}")

    if TOMORROW_KEYWORD in text:
        return today + timedelta(days=1)
    if any(keyword in text for keyword in REPORT_KEYWORDS):
        return today
    return None


def bookings_on(records: List[dict], target: date) -> List[Booking]:
    """Active bookings of one day, ordered by start time."""
    bookings = []
    for record in records:
        try:
            booking = Booking.model_validate(record)
        except ValidationError:
            logger.warning(f"Skipping malformed booking record {record.get('id') if isinstance(record, dict) else record!r}")
            continue
        if booking.date == target and booking.status == BookingStatus.BOOKED:
            bookings.append(booking)
    return sorted(bookings, key=lambda b: catalog.time_to_minutes(b.start_time))


class ReportBotService:
    def __init__(
        self,
        store: DataStoreService,
        line: LineMessagingService,
        messages: MessageService,
        today: Callable[[], date] = today_local,
    ):
        self.store = store
        self.line = line
        self.messages = messages
        self.today = today

    def build_usage_report(self, db: Session, target: date) -> str:
        records = self.store.read_collection(db, DataType.ROOMS)
        return self.messages.usage_report(bookings_on(records, target), target, self.today())

    async def handle_webhook(self, db: Session, payload: WebhookPayload) -> int:
        """Answer every text event that is addressed to the bot. Returns the number of replies."""
        replies = 0
        for event in payload.events:
            text = self._answer(db, event)
            if text and await self.line.reply(event.reply_token, text):
                replies += 1
        return replies

    def _answer(self, db: Session, event: WebhookEvent) -> Optional[str]:
        if event.type != "message" or not event.message or event.message.type != "text":
            return None

        mentioned = bool(event.message.mention) and any(
            m.is_self for m in event.message.mention.mentionees
        )
        direct = event.source is not None and event.source.type == "user"
        # in groups the bot stays quiet unless tagged
        if not mentioned and not direct:
            return None

        target = parse_target_date(event.message.text or "", self.today())
        if target:
            return self.build_usage_report(db, target)
        if mentioned:
            return self.messages.help_text()
        return None


# =========================================================================
# DAILY SUMMARY
# =========================================================================

def seconds_until(report_time: str, now: datetime) -> float:
    """Seconds from `now` to the next occurrence of HH:MM on the same wall clock."""
    at = catalog.parse_slot_time(report_time)
    target = now.replace(hour=at.hour, minute=at.minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class DailyReportScheduler:
    def __init__(self, bot: ReportBotService, session_factory: Callable[[], Session]):
        self.bot = bot
        self.session_factory = session_factory
        self._task: Optional[asyncio.Task] = None

    def start(self):
        if not self._task or self._task.done():
            self._task = asyncio.create_task(self._loop())
            logger.info(f"Daily report scheduled at {settings.DAILY_REPORT_TIME} ({settings.TIMEZONE})")

    def stop(self):
        if self._task:
            self._task.cancel()

    async def _loop(self):
        while True:
            try:
                await asyncio.sleep(seconds_until(settings.DAILY_REPORT_TIME, now_local()))
                await self.send_report()
            except Exception:
                logger.exception("Daily report loop error")
                # back off one minute after a failure
                await asyncio.sleep(60)

    async def send_report(self) -> int:
        db = self.session_factory()
        try:
            text = self.bot.build_usage_report(db, self.bot.today())
        finally:
            db.close()
        return await self.bot.line.push(text)


report_bot_service = ReportBotService(data_store_service, line_service, message_service)
# END OF campus_booking/services/report.py
