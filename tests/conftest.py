# tests/conftest.py
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import os
import uuid
from typing import Generator

import pytest
import pytest_asyncio
import httpx
from sqlalchemy.orm import Session
from sqlalchemy.ext.asyncio import AsyncSession

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-cartshare")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")

from cartshare.main import app
from cartshare.db.session import Base, SessionLocal, engine as sync_engine
from cartshare.db.session_async import AsyncSessionLocal
from cartshare.core.rate_limiter import get_rate_limiter
from cartshare.core.security import get_password_hash
from cartshare.models.user import StaffUser
from cartshare.schemas.shared_cart import SharedCartItemIn
from cartshare.services import share_service

LOGIN_URL = "/api/v1/auth/login"
STAFF_PASSWORD = "Staff1234"


# ---------- Fixtures ----------
@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create the tables once per test session."""
    Base.metadata.create_all(bind=sync_engine)
    yield
    Base.metadata.drop_all(bind=sync_engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with sync_engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    get_rate_limiter().reset()
    yield
    get_rate_limiter().reset()


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest_asyncio.fixture(scope="function")
async def client():
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def async_db_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()


# --- Sample carts ---

@pytest.fixture
def cookie_box_items() -> list[dict]:
    return [{"id": "cookie-box", "name": "Cookie Box", "price": 35.0, "quantity": 2}]


@pytest.fixture
def share_payload(cookie_box_items) -> dict:
    return {
        "items": cookie_box_items,
        "customerInfo": {"name": "Ana Souza", "phone": "47991234567"},
        "subtotal": 70.0,
    }


@pytest.fixture
def make_shared_cart():
    """Persist a shared cart through the service and return the committed record."""

    async def _make(items=None, customer_info=None, subtotal=None, now=None, code_factory=None):
        items = items or [{"id": "cookie-box", "name": "Cookie Box", "price": 35.0, "quantity": 2}]
        kwargs = {"code_factory": code_factory} if code_factory else {}
        async with AsyncSessionLocal() as session:
            record = await share_service.create_shared_cart(
                session,
                items=[SharedCartItemIn.model_validate(item) for item in items],
                customer_info=customer_info,
                subtotal=subtotal,
                now=now,
                **kwargs,
            )
            await session.commit()
            return record

    return _make


# --- Staff users and tokens ---

@pytest.fixture(scope="function")
def staff_user(db_session: Session) -> StaffUser:
    user = StaffUser(
        email=f"staff-{uuid.uuid4()}@example.com",
        full_name="Test Staff",
        hashed_password=get_password_hash(STAFF_PASSWORD),
        is_superuser=False,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
def inactive_staff_user(db_session: Session) -> StaffUser:
    user = StaffUser(
        email=f"former-{uuid.uuid4()}@example.com",
        full_name="Former Staff",
        hashed_password=get_password_hash(STAFF_PASSWORD),
        is_superuser=False,
        is_active=False,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def staff_token(client: httpx.AsyncClient, staff_user: StaffUser) -> str:
    resp = await client.post(
        LOGIN_URL,
        data={"username": staff_user.email, "password": STAFF_PASSWORD},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


@pytest.fixture
def staff_headers(staff_token: str) -> dict:
    return {"Authorization": f"Bearer {staff_token}"}
