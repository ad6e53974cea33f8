from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from campus_booking.core.database import get_db
from campus_booking.core.security import require_api_key
from campus_booking.schemas.store import DataType, WriteResult
from campus_booking.services.store import data_store_service

router = APIRouter(prefix="/data", tags=["Data"], dependencies=[Depends(require_api_key)])


def get_data_type(type: str = Query(..., description="rooms | equipment")) -> DataType:
    try:
        return DataType(type)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid data type: {type}",
        )


@router.get("", response_model=List[Any])
async def read_data(
    data_type: DataType = Depends(get_data_type),
    db: Session = Depends(get_db),
):
    """Whole collection for one domain; an empty array when nothing is stored."""
    return data_store_service.read_collection(db, data_type)


@router.post("", response_model=WriteResult)
async def write_data(
    request: Request,
    data_type: DataType = Depends(get_data_type),
    db: Session = Depends(get_db),
):
    """Replace the whole collection with the posted JSON array."""
    try:
        items = await request.json()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body is not valid JSON",
        )
    data_store_service.replace_collection(db, data_type, items)
    return WriteResult(success=True)
