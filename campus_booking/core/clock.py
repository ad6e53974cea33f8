from datetime import date, datetime, timedelta
from typing import Iterator
from zoneinfo import ZoneInfo

from campus_booking.core.config import settings

THAI_MONTHS = [
    "มกราคม", "กุมภาพันธ์", "มีนาคม", "เมษายน", "พฤษภาคม", "มิถุนายน",
    "กรกฎาคม", "สิงหาคม", "กันยายน", "ตุลาคม", "พฤศจิกายน", "ธันวาคม",
]
THAI_MONTHS_SHORT = [
    "ม.ค.", "ก.พ.", "มี.ค.", "เม.ย.", "พ.ค.", "มิ.ย.",
    "ก.ค.", "ส.ค.", "ก.ย.", "ต.ค.", "พ.ย.", "ธ.ค.",
]
BUDDHIST_ERA_OFFSET = 543


def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def now_local() -> datetime:
    """Current wall-clock time of the college."""
    return datetime.now(local_tz())


def today_local() -> date:
    return now_local().date()


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day in [start, end]; empty when end < start."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def format_date_label(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def format_date_range_label(start: date, end: date) -> str:
    return f"{format_date_label(start)} - {format_date_label(end)}"


def format_thai_date(value: date) -> str:
    """2025-01-21 -> '21 มกราคม 2568'"""
    return f"{value.day} {THAI_MONTHS[value.month - 1]} {value.year + BUDDHIST_ERA_OFFSET}"


def format_thai_short_date(value: date, with_year: bool = True) -> str:
    """2024-06-01 -> '1 มิ.ย. 2567'"""
    text = f"{value.day} {THAI_MONTHS_SHORT[value.month - 1]}"
    if with_year:
        text += f" {value.year + BUDDHIST_ERA_OFFSET}"
    return text


def format_thai_short_range(start: date, end: date) -> str:
    if start == end:
        return format_thai_short_date(start)
    # the year is printed once when both ends fall in the same year
    head = format_thai_short_date(start, with_year=start.year != end.year)
    return f"{head} - {format_thai_short_date(end)}"


def format_thai_numeric_date(value: date) -> str:
    """2024-06-01 -> '1/6/2567'"""
    return f"{value.day}/{value.month}/{value.year + BUDDHIST_ERA_OFFSET}"
