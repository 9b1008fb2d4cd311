"""
Bearer token verification.

Access tokens are minted by the identity service and signed with the shared
``SECRET_KEY``. This API only checks the signature and expiry and reads the
user id from the ``sub`` claim.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
import jwt
from jwt import PyJWTError

from .core.config import secret_or_plain, settings

logger = logging.getLogger(__name__)

bearer_token = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    claims: Dict[str, Any] = jwt.decode(
        token,
        secret_or_plain(settings.secret_key),
        algorithms=[settings.algorithm],
        options={"verify_aud": False},
    )
    return claims


def create_access_token(claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign ``claims`` with the shared secret and an ``exp`` claim.

    The identity service issues real user tokens; this exists for tests and
    operational scripts that need a token with the same shape.
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {**claims, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(payload, secret_or_plain(settings.secret_key), algorithm=settings.algorithm)


async def get_current_user(token: Optional[str] = Depends(bearer_token)) -> str:
    """Resolve the caller's user id, or raise 401."""
    if not token:
        raise _unauthorized("Not authenticated")

    try:
        claims = decode_access_token(token)
    except PyJWTError as exc:
        logger.warning("Rejected bearer token: %s", exc)
        raise _unauthorized("Could not validate credentials") from exc

    user_id = claims.get("sub")
    if not isinstance(user_id, str) or not user_id:
        logger.warning("Bearer token has no subject")
        raise _unauthorized("Could not validate credentials")
    return user_id
