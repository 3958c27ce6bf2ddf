from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from cartshare.api.deps import get_current_staff
from cartshare.core.config import settings
from cartshare.core.logging import get_logger, security_alert
from cartshare.core.metrics import record_login_attempt
from cartshare.core.rate_limiter import client_ip
from cartshare.core.security import create_access_token
from cartshare.db.operations import commit_async
from cartshare.db.session_async import get_async_db
from cartshare.domain.expiry import utcnow
from cartshare.models.user import StaffUser
from cartshare.schemas.auth import StaffUserRead, Token
from cartshare.services.staff_user_service import authenticate

router = APIRouter(prefix="/auth", tags=["auth"])

auth_logger = get_logger("cartshare.auth")


@router.post("/login", response_model=Token)
async def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_async_db),
):
    user = await authenticate(db, form_data.username, form_data.password)
    if not user:
        record_login_attempt("failure")
        security_alert(
            "Failed staff login attempt",
            email=form_data.username,
            client_ip=client_ip(request),
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Incorrect email or password",
        )
    if not user.is_active:
        record_login_attempt("inactive")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive staff user")

    record_login_attempt("success")
    access = create_access_token(subject=user.id)

    user.last_login_at = utcnow()
    db.add(user)
    await commit_async(db)

    auth_logger.info(
        "Staff user authenticated",
        extra={"user_id": str(user.id), "email": user.email, "client_ip": client_ip(request)},
    )

    return {
        "access_token": access,
        "token_type": "bearer",
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        "user": StaffUserRead.model_validate(user),
    }


@router.get("/me", response_model=StaffUserRead)
async def read_me(current_staff: StaffUser = Depends(get_current_staff)):
    return current_staff
