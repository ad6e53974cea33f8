import secrets
from typing import Optional
from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader
from campus_booking.core.config import settings

API_KEY_HEADER = "X-API-Key"

api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def require_api_key(api_key: Optional[str] = Security(api_key_header)) -> str:
    """Shared-secret check for the /data endpoints."""
    if not api_key or not secrets.compare_digest(api_key.encode(), settings.API_KEY.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return api_key


def verify_staff_password(password: str) -> bool:
    """
    Convenience gate for staff-only actions in the client.
    Not a security boundary: no session or token is issued.
    """
    if not password:
        return False
    matched = False
    for candidate in settings.STAFF_PASSWORDS:
        # compare against every entry so timing does not reveal the position
        if secrets.compare_digest(password.encode(), candidate.encode()):
            matched = True
    return matched
