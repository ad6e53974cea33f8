from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import date, datetime
import enum


class RoomStatus(str, enum.Enum):
    AVAILABLE = "available"
    CLOSED = "closed"


class MeetingType(str, enum.Enum):
    ONLINE = "Online"
    ONSITE = "Onsite"


class BookingStatus(str, enum.Enum):
    BOOKED = "booked"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class Room(BaseModel):
    id: int
    name: str
    status: RoomStatus = RoomStatus.AVAILABLE


class Record(BaseModel):
    """Base for records stored in a whole-blob collection (camelCase on the wire)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Booking(Record):
    id: str
    group_id: Optional[str] = None
    room_name: str
    date: date
    start_time: str
    end_time: str
    booker_name: str
    phone: str = ""
    participants: int = 1
    meeting_type: MeetingType = MeetingType.ONSITE
    purpose: str
    equipment: str = ""
    status: BookingStatus = BookingStatus.BOOKED
    created_at: datetime
    attachment_url: Optional[str] = None
    is_multi_day: bool = False
    date_range: Optional[str] = Field(None, description="Pre-formatted 'dd/mm/yyyy - dd/mm/yyyy' label")


class BookingForm(BaseModel):
    """
    One booking-form submission. Loosely typed: the engine reports bad
    values as user-facing messages instead of raising validation errors.
    """
    room_ids: List[int] = Field(default_factory=list)
    date: date
    end_date: Optional[date] = None
    is_multi_day: bool = False
    start_time: str = ""
    end_time: str = ""
    booker_name: str = ""
    phone: str = ""
    participants: int = 1
    meeting_type: MeetingType = MeetingType.ONSITE
    purpose: str = ""
    equipment: str = ""
    attachment_url: Optional[str] = None

    @property
    def last_date(self) -> date:
        if self.is_multi_day and self.end_date is not None:
            return self.end_date
        return self.date
