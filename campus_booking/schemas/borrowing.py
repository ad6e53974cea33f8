from pydantic import BaseModel
from typing import Optional
from datetime import date, datetime
import enum

from campus_booking.schemas.booking import Record


class BorrowStatus(str, enum.Enum):
    PENDING = "pending"
    BORROWING = "borrowing"
    RETURNED = "returned"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class BorrowingRequest(Record):
    id: str
    borrower_name: str
    phone: str = ""
    department: str = ""
    purpose: str
    borrow_date: date
    return_date: date
    equipment_list: str
    status: BorrowStatus = BorrowStatus.PENDING
    created_at: datetime
    notes: str = ""


class BorrowingForm(BaseModel):
    """Equipment request as typed by the borrower; dates may be missing."""
    borrower_name: str = ""
    phone: str = ""
    department: str = ""
    purpose: str = ""
    borrow_date: Optional[date] = None
    return_date: Optional[date] = None
    equipment_list: str = ""
    notes: str = ""


class EquipmentCategory(BaseModel):
    """A kind of equipment offered for loan; `items` is a display hint, not a stock list."""
    title: str
    items: str
