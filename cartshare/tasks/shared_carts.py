from __future__ import annotations

import asyncio

from cartshare.core.celery_app import celery_app
from cartshare.core.logging import get_logger
from cartshare.db.session_async import AsyncSessionLocal
from cartshare.services import status_workflow

logger = get_logger("cartshare.tasks.shared_carts")


async def _expire_overdue() -> int:
    async with AsyncSessionLocal() as session:
        try:
            expired = await status_workflow.expire_overdue(session)
            await session.commit()
            return expired
        except Exception:
            await session.rollback()
            raise


@celery_app.task(name="shared_carts.expire_overdue")
def expire_overdue_task() -> dict:
    expired = asyncio.run(_expire_overdue())
    logger.info("Expiry sweep finished", extra={"expired": expired})
    return {"expired": expired}
