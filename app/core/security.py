"""
JWT access tokens for the landlord dashboard.

Tokens are HS256-signed by python-jose; ``sub`` carries the landlord's
user ID and ``type`` must be ``access``.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Any
import uuid

from jose import JWTError, jwt

from app.config import settings

ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    user_id: str,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[dict[str, Any]] = None
) -> str:
    """Issue an access token for ``user_id``."""
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = dict(additional_claims or {})
    claims.update(
        sub=str(user_id),
        iat=issued_at,
        exp=issued_at + lifetime,
        jti=uuid.uuid4().hex,
        type=ACCESS_TOKEN_TYPE,
    )
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[dict[str, Any]]:
    """Signature- and expiry-checked claims, or None."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def verify_access_token(token: str) -> Optional[str]:
    """User ID from a valid access token, or None."""
    claims = decode_token(token)
    if not claims or claims.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return claims.get("sub")
