"""Seed development staff accounts for the shared-cart admin."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import sys
from pathlib import Path

# Ensure project root is on PYTHONPATH when running as a script.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from cartshare.core.config import settings
from cartshare.db.session_async import AsyncSessionLocal
from cartshare.schemas.auth import StaffUserCreate
from cartshare.services import staff_user_service


@dataclass(frozen=True, slots=True)
class DevStaff:
    email: str
    full_name: str
    password: str
    is_superuser: bool = False


DEV_STAFF: tuple[DevStaff, ...] = (
    DevStaff(
        email="admin.dev@example.com",
        full_name="Dev Admin",
        password="AdminDev123!",
        is_superuser=True,
    ),
    DevStaff(
        email="sales.dev@example.com",
        full_name="Dev Sales",
        password="SalesDev123!",
    ),
)


async def seed_staff_users() -> dict[str, int]:
    """Insert missing staff accounts and promote admins that lost the flag."""
    logger = logging.getLogger("seed_staff_users")
    logger.info("Seeding staff users into %s", settings.ASYNC_DATABASE_URL)

    counts = {"created": 0, "updated": 0, "skipped": 0}
    async with AsyncSessionLocal() as session:
        for staff in DEV_STAFF:
            existing = await staff_user_service.get_by_email(session, staff.email)
            if existing:
                if staff.is_superuser and not existing.is_superuser:
                    existing.is_superuser = True
                    session.add(existing)
                    counts["updated"] += 1
                else:
                    counts["skipped"] += 1
                continue

            await staff_user_service.create_staff_user(
                session,
                StaffUserCreate(
                    email=staff.email,
                    full_name=staff.full_name,
                    password=staff.password,
                    is_superuser=staff.is_superuser,
                ),
            )
            counts["created"] += 1
            logger.debug("Created staff user %s", staff.email)

        await session.commit()

    logger.info(
        "Seed completed: %s created, %s updated, %s skipped",
        counts["created"],
        counts["updated"],
        counts["skipped"],
    )
    return counts


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        asyncio.run(seed_staff_users())
    except KeyboardInterrupt:
        pass
