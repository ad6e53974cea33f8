from fastapi import APIRouter

from campus_booking.core.security import verify_staff_password
from campus_booking.schemas.store import LoginRequest, LoginResponse

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest):
    """Staff gate for admin-only actions; no session or token is issued."""
    return LoginResponse(success=verify_staff_password(payload.password))
