from fastapi import APIRouter, BackgroundTasks, HTTPException, status

from campus_booking.schemas.store import NotifyRequest, WriteResult
from campus_booking.services.line import line_service

router = APIRouter(tags=["Notifications"])


@router.post("/notify", response_model=WriteResult)
async def notify(payload: NotifyRequest, background_tasks: BackgroundTasks):
    """Queue a push to every configured recipient and answer at once."""
    if not payload.message.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message is required",
        )
    background_tasks.add_task(line_service.push, payload.message)
    return WriteResult(success=True)
