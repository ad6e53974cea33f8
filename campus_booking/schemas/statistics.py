from pydantic import BaseModel, Field
from typing import List, Optional


class RoomUsage(BaseModel):
    name: str
    count: int


class BookingStatistics(BaseModel):
    total_bookings: int
    bookings_by_room: List[RoomUsage]


class DepartmentUsage(BaseModel):
    department: str
    count: int


class BorrowingStatistics(BaseModel):
    year: int
    month: Optional[int] = Field(None, ge=1, le=12)
    total: int
    returned: int
    active: int
    cancelled: int
    top_departments: List[DepartmentUsage]
