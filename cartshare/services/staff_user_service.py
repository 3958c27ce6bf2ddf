from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cartshare.core.security import get_password_hash, verify_password
from cartshare.db.operations import flush_async, refresh_async
from cartshare.models.user import StaffUser
from cartshare.schemas.auth import StaffUserCreate
from cartshare.services.exceptions import ConflictError


async def get_by_email(db: AsyncSession, email: str) -> StaffUser | None:
    stmt = select(StaffUser).where(StaffUser.email == email.lower()).limit(1)
    result = await db.execute(stmt)
    return result.scalars().first()


async def create_staff_user(db: AsyncSession, data: StaffUserCreate) -> StaffUser:
    if await get_by_email(db, data.email):
        raise ConflictError("Email already registered")
    user = StaffUser(
        email=data.email.lower(),
        full_name=data.full_name,
        hashed_password=get_password_hash(data.password),
        is_active=True,
        is_superuser=data.is_superuser,
    )
    db.add(user)
    await flush_async(db, user)
    await refresh_async(db, user)
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> StaffUser | None:
    user = await get_by_email(db, email)
    if not user or not user.hashed_password:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
