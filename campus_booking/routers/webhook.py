from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from campus_booking.core.database import get_db
from campus_booking.schemas.store import WebhookPayload
from campus_booking.services.report import report_bot_service

router = APIRouter(tags=["Chat bot"])


@router.post("/webhook", response_class=PlainTextResponse)
async def line_webhook(payload: WebhookPayload, db: Session = Depends(get_db)):
    await report_bot_service.handle_webhook(db, payload)
    return "OK"
