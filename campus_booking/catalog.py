# campus_booking/catalog.py
from datetime import time
from typing import List, Optional

from campus_booking.schemas.booking import Room, RoomStatus
from campus_booking.schemas.borrowing import EquipmentCategory

# Bookable rooms. Closed rooms stay listed so existing records keep a name to resolve.
ROOMS: List[Room] = [
    Room(id=1, name="ห้องประชุมธีรธรรมานันท์", status=RoomStatus.AVAILABLE),
    Room(id=2, name="ห้องประชุมเฉลิมพระเกียรติ", status=RoomStatus.AVAILABLE),
    Room(id=3, name="ห้องประชุมมูลนิธิสมเด็จพระธีรญาณมุนี", status=RoomStatus.AVAILABLE),
    Room(id=4, name="ห้องประชุมสำเภาทอง", status=RoomStatus.AVAILABLE),
    Room(id=7, name="ห้องงานสื่อการเรียนการสอน 421", status=RoomStatus.AVAILABLE),
    Room(id=8, name="ห้อง CVM (ศูนย์บริหารเครือข่าย)", status=RoomStatus.AVAILABLE),
    Room(id=9, name="ลานโดมอเนกประสงค์", status=RoomStatus.AVAILABLE),
    Room(id=5, name="ห้องประชุมไพโรจน์ปวะบุตร", status=RoomStatus.CLOSED),
    Room(id=6, name="หอประชุมประทีป ปฐมกสิกุล", status=RoomStatus.CLOSED),
]

# Shown beside the borrowing form; requests still name equipment as free text.
EQUIPMENT_CATEGORIES: List[EquipmentCategory] = [
    EquipmentCategory(title="กล้องและวิดีโอ", items="DSLR, Mirrorless, วิดีโอ"),
    EquipmentCategory(title="ระบบเสียง", items="ไมค์ลอย, ลำโพงพกพา"),
    EquipmentCategory(title="อุปกรณ์เสริม", items="ขาตั้งกล้อง, Gimbal"),
    EquipmentCategory(title="คอมพิวเตอร์", items="โน๊ตบุ๊คตัดต่อ, โปรเจคเตอร์"),
]

# Hourly slot boundaries 07:00 .. 18:00
TIME_SLOTS: List[str] = [f"{hour:02d}:00" for hour in range(7, 19)]


def slot_index(value: str) -> Optional[int]:
    """Position of `value` in TIME_SLOTS, None when it is not a slot boundary."""
    try:
        return TIME_SLOTS.index(value)
    except ValueError:
        return None


def time_to_minutes(value: str) -> int:
    """'HH:MM' -> minutes since midnight; malformed values count as 0."""
    if not value or ":" not in value:
        return 0
    hours, _, minutes = value.partition(":")
    try:
        return int(hours) * 60 + int(minutes or 0)
    except ValueError:
        return 0


def parse_slot_time(value: str) -> time:
    minutes = time_to_minutes(value)
    return time(minutes // 60 % 24, minutes % 60)


def get_room(room_id: int) -> Optional[Room]:
    return next((r for r in ROOMS if r.id == room_id), None)

