from contextlib import asynccontextmanager

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from cartshare.core.config import settings
from cartshare.core.logging import get_logger
from cartshare.db.session_async import AsyncSessionLocal
from cartshare.models.user import StaffUser
from cartshare.schemas.auth import StaffUserCreate
from cartshare.services import staff_user_service

logger = get_logger("cartshare.initial_data")

_ADMIN_INIT_LOCK_KEY = 482913077


@asynccontextmanager
async def _advisory_lock(session: AsyncSession):
    """Serialize admin bootstrap across workers on PostgreSQL; no-op elsewhere."""
    dialect = session.bind.dialect.name if session.bind else "unknown"
    got_lock = False
    try:
        if dialect == "postgresql":
            res = await session.execute(text("SELECT pg_try_advisory_lock(:k)"), {"k": _ADMIN_INIT_LOCK_KEY})
            got_lock = bool(res.scalar())
            if not got_lock:
                logger.info("Another worker is bootstrapping the staff admin; skipping.")
                yield False
                return
        yield True
    finally:
        if got_lock:
            await session.execute(text("SELECT pg_advisory_unlock(:k)"), {"k": _ADMIN_INIT_LOCK_KEY})


async def create_initial_admin() -> StaffUser | None:
    """Create the first staff admin from settings when no superuser exists yet.

    Idempotent: an existing account with the configured email is promoted
    instead of duplicated. Returns the created or promoted user.
    """
    if not settings.INITIAL_ADMIN_EMAIL or not settings.INITIAL_ADMIN_PASSWORD:
        logger.info("Skipping staff admin bootstrap: INITIAL_ADMIN_EMAIL/PASSWORD not set.")
        return None

    email = str(settings.INITIAL_ADMIN_EMAIL)
    async with AsyncSessionLocal() as session:
        async with _advisory_lock(session) as proceed:
            if proceed is False:
                return None

            stmt = select(func.count()).select_from(StaffUser).where(StaffUser.is_superuser.is_(True))
            if ((await session.execute(stmt)).scalar() or 0) > 0:
                logger.info("A staff superuser already exists; nothing to bootstrap.")
                return None

            existing = await staff_user_service.get_by_email(session, email)
            if existing:
                existing.is_superuser = True
                existing.is_active = True
                await session.commit()
                logger.warning(
                    "Existing staff user promoted to superuser",
                    extra={"user_id": str(existing.id), "email": existing.email},
                )
                return existing

            user = await staff_user_service.create_staff_user(
                session,
                StaffUserCreate(
                    email=email,
                    password=settings.INITIAL_ADMIN_PASSWORD,
                    full_name="Initial Admin",
                    is_superuser=True,
                ),
            )
            await session.commit()
            logger.info("Staff superuser created", extra={"user_id": str(user.id), "email": user.email})
            return user
