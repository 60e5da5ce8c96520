from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from calbook.core.db import get_session
from calbook.core.security import decode_access_token
from calbook.models.owner import Owner
from calbook.services.appointment_store import SqlAppointmentStore
from calbook.services.auth_service import get_owner

bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Anonymous:
    """No (valid) credentials on the request."""


@dataclass(frozen=True)
class Authenticated:
    owner: Owner


AuthState = Anonymous | Authenticated


def refresh_header(x_refresh_token: str | None = Header(default=None, alias="X-Refresh-Token")) -> str | None:
    """Extract X-Refresh-Token header for logout/refresh endpoints."""
    return x_refresh_token


async def get_auth_state(
    session: AsyncSession = Depends(get_session),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> AuthState:
    """Resolve the request's credentials once, at the boundary."""
    if not credentials or credentials.scheme.lower() != "bearer":
        return Anonymous()
    owner_id = decode_access_token(credentials.credentials)
    if owner_id is None:
        return Anonymous()
    owner = await get_owner(session, owner_id)
    if owner is None:
        return Anonymous()
    return Authenticated(owner=owner)


async def get_current_owner(auth: AuthState = Depends(get_auth_state)) -> Owner:
    if isinstance(auth, Authenticated):
        return auth.owner
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_appointment_store(session: AsyncSession = Depends(get_session)) -> SqlAppointmentStore:
    return SqlAppointmentStore(session)
