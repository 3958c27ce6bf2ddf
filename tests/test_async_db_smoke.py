# tests/test_async_db_smoke.py
import pytest
from sqlalchemy import func, select, text

from cartshare.db.session_async import AsyncSessionLocal, run_in_transaction
from cartshare.models.shared_cart import SharedCart
from cartshare.schemas.shared_cart import SharedCartItemIn
from cartshare.services import share_service


@pytest.mark.asyncio
async def test_async_engine_executes_simple_query() -> None:
    async with AsyncSessionLocal() as session:
        result = await session.execute(text("SELECT 1"))
        assert result.scalar_one() == 1


@pytest.mark.asyncio
async def test_run_in_transaction_commits_shared_cart() -> None:
    async def _operation(session):
        record = await share_service.create_shared_cart(
            session,
            items=[SharedCartItemIn(id="a", name="A", price=1, quantity=1)],
        )
        return record.short_code

    code = await run_in_transaction(_operation)

    async with AsyncSessionLocal() as session:
        stored = (
            await session.execute(select(func.count()).select_from(SharedCart).where(SharedCart.short_code == code))
        ).scalar_one()
    assert stored == 1
