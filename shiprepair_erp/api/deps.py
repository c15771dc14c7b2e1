"""
FastAPI Dependencies

Provides dependency injection for database sessions and the caller principal.

The service does not authenticate users: tokens are issued by the external
token service and only verified here. A verified token yields a Principal
{user_id, role}; authorization happens in shiprepair_erp.security.rbac.

SECURITY NOTES:
- JWT payloads are never logged
- Bearer token is the primary auth method, the "token" cookie is a fallback
"""

from typing import Annotated
from fastapi import Depends, Cookie
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
import logging

from shiprepair_erp.database import get_db
from shiprepair_erp.config import settings
from shiprepair_erp.exceptions import UnauthorizedError
from shiprepair_erp.security.rbac import Principal, Role
from shiprepair_erp.services.blob_storage import LocalBlobStorage, get_blob_storage

logger = logging.getLogger(__name__)


security = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token in the token service's format ({sub, role, exp})."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_principal(token: str) -> Principal:
    """Verify a token and extract the principal. Raises UnauthorizedError."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        # SECURITY: Don't log token decode errors with details
        logger.warning("JWT validation failed")
        raise UnauthorizedError("Could not validate credentials")

    sub = payload.get("sub")
    raw_role = payload.get("role")
    if not sub or not raw_role:
        raise UnauthorizedError("Could not validate credentials")
    try:
        role = Role(str(raw_role).upper())
    except ValueError:
        logger.warning("Token carries unknown role")
        raise UnauthorizedError("Could not validate credentials")

    return Principal(user_id=str(sub), role=role)


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
    token_cookie: Annotated[str | None, Cookie(alias="token")] = None,
) -> Principal:
    """Get the caller principal from the Bearer token or the token cookie."""
    token = None
    auth_method = None

    if credentials:
        token = credentials.credentials
        auth_method = "bearer"
    elif token_cookie:
        token = token_cookie
        auth_method = "cookie"

    if not token:
        raise UnauthorizedError()

    principal = decode_principal(token)
    logger.debug(
        "Principal verified",
        extra={"user_id": principal.user_id, "role": principal.role.value, "auth_method": auth_method},
    )
    return principal


# Type aliases for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
BlobStore = Annotated[LocalBlobStorage, Depends(get_blob_storage)]
