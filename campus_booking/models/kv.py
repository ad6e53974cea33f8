# campus_booking/models/kv.py
from sqlalchemy import Column, String, Text
from campus_booking.models.base import Base, TimestampMixin


class KVEntry(Base, TimestampMixin):
    """One opaque key holding a whole JSON document (a domain collection)."""
    __tablename__ = "kv_entries"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)

    def __repr__(self):
        return f"<KVEntry {self.key} ({len(self.value or '')} bytes)>"
