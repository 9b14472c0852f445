from typing import Annotated, Optional
import hmac
import logging

from fastapi import Depends, HTTPException, status, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.core.security import verify_access_token


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> str:
    """
    Dependency to get the ID of the authenticated landlord.
    Validates the JWT access token and returns its subject.
    """
    user_id = verify_access_token(credentials.credentials)

    if not user_id:
        logger.warning("Token verification failed - invalid or expired token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user_id


async def verify_cron_secret(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(optional_security)],
    secret: Optional[str] = Query(None, description="Cron secret (alternative to Bearer header)"),
) -> None:
    """
    Guard for cron-triggered endpoints.

    When CRON_SECRET is configured the caller must present it either as the
    ``secret`` query parameter or as a Bearer token. Without CRON_SECRET the
    endpoint is open.
    """
    expected = settings.CRON_SECRET
    if not expected:
        return

    provided = secret or (credentials.credentials if credentials else None)
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning("Rejected cron request with missing or invalid secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


# Type aliases for dependency injection
CurrentUserId = Annotated[str, Depends(get_current_user_id)]
DB = Annotated[AsyncSession, Depends(get_db)]
