"""
Bearer token verification.

Tokens are issued by the external identity provider and signed with the
shared SECRET_KEY. This service only verifies them and reads two claims:
`sub` (the user id) and `role` (customer, partner or admin).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from cowork_booking.core.config import get_settings

ROLE_CUSTOMER = "customer"
ROLE_PARTNER = "partner"
ROLE_ADMIN = "admin"
ROLES = (ROLE_CUSTOMER, ROLE_PARTNER, ROLE_ADMIN)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a token. Used by tests and the load-test harness."""
    settings = get_settings()
    claims = dict(data)
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims["exp"] = expire
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    if credentials is None:
        raise _unauthorized("Authentication required.")

    settings = get_settings()
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
        )
    except JWTError:
        raise _unauthorized("Invalid or expired token.")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Token is missing a subject.")

    role = payload.get("role", ROLE_CUSTOMER)
    if role not in ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions.",
        )
    return Principal(user_id=str(user_id), role=role)


async def require_customer(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != ROLE_CUSTOMER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only customers can perform this action.",
        )
    return principal


async def require_partner_or_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    if principal.role not in (ROLE_PARTNER, ROLE_ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions.",
        )
    return principal
