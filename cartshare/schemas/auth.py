# cartshare/schemas/auth.py
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class StaffUserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str | None = None
    is_superuser: bool = False


class StaffUserRead(BaseModel):
    id: UUID
    email: EmailStr
    full_name: str | None = None
    is_active: bool
    is_superuser: bool
    last_login_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    access_token: str
    token_type: str = Field(default="bearer")
    expires_in: int
    user: StaffUserRead


class TokenPayload(BaseModel):
    sub: str | None = None
    type: str | None = None
    scopes: list[str] = Field(default_factory=list)
