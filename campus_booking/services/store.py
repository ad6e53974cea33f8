import logging
from typing import Any, List

from fastapi import HTTPException, status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campus_booking.core.config import settings
from campus_booking.core.clock import format_date_label
from campus_booking.repositories.kv import KVRepository, kv_repository
from campus_booking.schemas.booking import Booking
from campus_booking.schemas.store import DataType, ServiceStatus
from campus_booking.services.booking_engine import find_overlaps

logger = logging.getLogger(__name__)


class DataStoreService:
    """One JSON array per domain, read and replaced as a whole."""

    def __init__(self, repository: KVRepository):
        self.repository = repository

    def read_collection(self, db: Session, data_type: DataType) -> List[Any]:
        data = self.repository.get_json(db, data_type.storage_key, default=[])
        return data if data is not None else []

    def replace_collection(self, db: Session, data_type: DataType, items: Any) -> None:
        if not isinstance(items, list):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Request body must be a JSON array",
            )

        if data_type == DataType.ROOMS and settings.ENFORCE_NO_OVERLAP_ON_WRITE:
            self._check_no_overlap(items)

        self.repository.put_json(db, data_type.storage_key, items)
        logger.info(f"Stored {len(items)} record(s) under {data_type.storage_key}")

    def _check_no_overlap(self, items: List[Any]) -> None:
        try:
            bookings = [Booking.model_validate(item) for item in items]
        except ValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid booking record: {e.errors()[0].get('msg')}",
            )

        overlap = find_overlaps(bookings)
        if overlap:
            first, second = overlap
            logger.warning(f"Rejected rooms write: {first.id} overlaps {second.id}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=(
                    f'Room "{first.room_name}" is double-booked on {format_date_label(first.date)}: '
                    f"{first.start_time}-{first.end_time} overlaps {second.start_time}-{second.end_time}"
                ),
            )

    def get_status(self, db: Session) -> ServiceStatus:
        return ServiceStatus(
            line_api_token=bool(settings.LINE_CHANNEL_ACCESS_TOKEN),
            room_kv_binding=self._binding_ok(db, DataType.ROOMS),
            equipment_kv_binding=self._binding_ok(db, DataType.EQUIPMENT),
            recipient_id_set=any(g.strip() for g in settings.LINE_GROUP_IDS),
        )

    def _binding_ok(self, db: Session, data_type: DataType) -> bool:
        # the table answering a lookup is what "bound" means here
        try:
            self.repository.exists(db, data_type.storage_key)
        except SQLAlchemyError:
            logger.exception("Key-value store is not reachable")
            return False
        return True


data_store_service = DataStoreService(kv_repository)
