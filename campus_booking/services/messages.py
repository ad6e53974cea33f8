import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Sequence

from jinja2 import Environment, FileSystemLoader

from campus_booking.core.clock import (
    format_thai_date,
    format_thai_numeric_date,
    format_thai_short_date,
    format_thai_short_range,
)
from campus_booking.core.config import settings
from campus_booking.schemas.booking import Booking
from campus_booking.schemas.borrowing import BorrowingRequest

logger = logging.getLogger(__name__)


class MessageService:
    """Renders the LINE text messages from the templates in templates/line."""

    def __init__(self):
        template_dir = Path(__file__).parent.parent / "templates/line"
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def _render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        try:
            template = self.env.get_template(template_name)
            return template.render(**context).strip()
        except Exception as e:
            logger.error(f"Error rendering template {template_name}: {e}")
            raise e

    # =====================================================
    # ROOM BOOKINGS
    # =====================================================

    def booking_created(self, bookings: Sequence[Booking]) -> str:
        """Announcement for one submission; several records read as one multi booking."""
        if not bookings:
            return ""

        first = bookings[0]
        if len(bookings) == 1 and not first.is_multi_day:
            return self._render_template("booking_single.j2", {
                "booking": first,
                "date_label": format_thai_short_date(first.date),
            })

        room_names: List[str] = list(dict.fromkeys(b.room_name for b in bookings))
        dates = [b.date for b in bookings]
        return self._render_template("booking_multi.j2", {
            "first": first,
            "room_names": room_names,
            "date_label": format_thai_short_range(min(dates), max(dates)),
        })

    def usage_report(self, bookings: Sequence[Booking], target: date, today: date) -> str:
        return self._render_template("daily_report.j2", {
            "bookings": list(bookings),
            "is_today": target == today,
            "date_label": format_thai_date(target),
        })

    def help_text(self) -> str:
        return self._render_template("help.j2", {})

    # =====================================================
    # EQUIPMENT BORROWINGS
    # =====================================================

    def borrowing_created(self, request: BorrowingRequest) -> str:
        return self._render_template("borrowing_created.j2", {
            "request": request,
            "borrow_date": format_thai_numeric_date(request.borrow_date),
            "return_date": format_thai_numeric_date(request.return_date),
            "app_url": settings.APP_URL,
        })

    def borrowing_overdue(self, request: BorrowingRequest) -> str:
        return self._render_template("borrowing_overdue.j2", {
            "request": request,
            "return_date": format_thai_numeric_date(request.return_date),
        })


message_service = MessageService()
