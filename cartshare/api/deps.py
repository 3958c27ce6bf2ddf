import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from cartshare.core.config import settings
from cartshare.core.security import decode_access_token
from cartshare.db.session_async import get_async_db
from cartshare.models.user import StaffUser
from cartshare.schemas.auth import TokenPayload


oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")


def _decode_token(token: str) -> TokenPayload:
    return TokenPayload(**decode_access_token(token))


async def _get_staff_by_id(db: AsyncSession, user_id: str | None) -> StaffUser | None:
    if not user_id:
        return None
    try:
        user_uuid = uuid.UUID(str(user_id))
    except ValueError:
        return None
    return await db.get(StaffUser, user_uuid)


async def get_current_staff(
    db: AsyncSession = Depends(get_async_db),
    token: str = Depends(oauth2_scheme),
) -> StaffUser:
    cred_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        token_data = _decode_token(token)
    except JWTError:
        raise cred_exc

    user = await _get_staff_by_id(db, token_data.sub)
    if user is None:
        raise cred_exc
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive staff user")
    return user
