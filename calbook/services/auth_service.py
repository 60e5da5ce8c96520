from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calbook.core.config import settings
from calbook.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    verify_password,
)
from calbook.models.appointment import utc_naive_now
from calbook.models.owner import Owner, OwnerCreate, OwnerPublic
from calbook.models.refresh_token import RefreshToken

TokenPairResult = tuple[Owner, str, str, int]


async def get_owner(session: AsyncSession, owner_id: int) -> Owner | None:
    result = await session.execute(select(Owner).where(Owner.id == owner_id))
    return result.scalar_one_or_none()


async def get_owner_by_email(session: AsyncSession, email: str) -> Owner | None:
    result = await session.execute(select(Owner).where(Owner.email == email.lower()))
    return result.scalar_one_or_none()


async def create_owner(session: AsyncSession, data: OwnerCreate) -> Owner:
    owner = Owner(
        email=data.email.lower(),
        full_name=data.full_name,
        hashed_password=hash_password(data.password),
    )
    session.add(owner)
    await session.flush()
    await session.refresh(owner)
    return owner


def owner_to_public(owner: Owner) -> OwnerPublic:
    return OwnerPublic(id=owner.id, email=owner.email, full_name=owner.full_name)


def make_token_pair(owner_id: int) -> tuple[str, str, int]:
    access = create_access_token(owner_id)
    refresh = create_refresh_token(owner_id)
    expires_in = settings.access_token_expire_minutes * 60
    return access, refresh, expires_in


async def store_refresh_token(session: AsyncSession, owner_id: int, refresh_token: str) -> None:
    owner_id_str, jti = decode_refresh_token(refresh_token)
    if not owner_id_str or not jti:
        return
    expires_at = utc_naive_now() + timedelta(days=settings.refresh_token_expire_days)
    session.add(RefreshToken(owner_id=owner_id, jti=jti, expires_at=expires_at))
    await session.flush()


async def _issue_tokens(session: AsyncSession, owner: Owner) -> TokenPairResult:
    access, refresh, expires_in = make_token_pair(owner.id)
    await store_refresh_token(session, owner_id=owner.id, refresh_token=refresh)
    return owner, access, refresh, expires_in


async def login_owner(session: AsyncSession, email: str, password: str) -> TokenPairResult | None:
    owner = await get_owner_by_email(session, email)
    if not owner or not verify_password(password, owner.hashed_password):
        return None
    return await _issue_tokens(session, owner)


async def signup_owner(
    session: AsyncSession, email: str, password: str, full_name: str | None = None
) -> TokenPairResult | None:
    if await get_owner_by_email(session, email):
        return None
    owner = await create_owner(
        session, OwnerCreate(email=email, password=password, full_name=full_name)
    )
    return await _issue_tokens(session, owner)


async def revoke_refresh_token(session: AsyncSession, jti: str) -> None:
    result = await session.execute(select(RefreshToken).where(RefreshToken.jti == jti))
    row = result.scalar_one_or_none()
    if row:
        row.revoked = True
        session.add(row)


async def refresh_tokens(session: AsyncSession, refresh_token: str) -> TokenPairResult | None:
    """Rotate a refresh token: the presented one is revoked, a new pair is issued."""
    owner_id_str, jti = decode_refresh_token(refresh_token)
    if not owner_id_str or not jti:
        return None
    result = await session.execute(
        select(RefreshToken).where(
            RefreshToken.jti == jti,
            RefreshToken.revoked == False,  # noqa: E712
            RefreshToken.expires_at > utc_naive_now(),
        )
    )
    token_row = result.scalar_one_or_none()
    if not token_row:
        return None
    owner = await get_owner(session, int(owner_id_str))
    if not owner:
        return None
    token_row.revoked = True
    session.add(token_row)
    return await _issue_tokens(session, owner)
