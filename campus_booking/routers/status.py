from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_booking.core.database import get_db
from campus_booking.schemas.store import ServiceStatus
from campus_booking.services.store import data_store_service

router = APIRouter(tags=["Status"])


@router.get("/status", response_model=ServiceStatus, response_model_by_alias=True)
async def service_status(db: Session = Depends(get_db)):
    return data_store_service.get_status(db)
