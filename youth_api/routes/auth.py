from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..logging_conf import get_logger
from ..models import AuthSession

router = APIRouter()
logger = get_logger("api.auth")

_bearer = HTTPBearer(auto_error=False)


def require_bearer(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> str:
    """Return the presented bearer token or answer 401."""
    if credentials is None or not credentials.credentials:
        logger.info("auth.missing_token", extra={"event": "auth_missing_token"})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, no token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


@router.get("/me", response_model=AuthSession, summary="Report whether a bearer token was sent")
async def me(token: str = Depends(require_bearer)) -> AuthSession:
    return AuthSession(authenticated=True)
