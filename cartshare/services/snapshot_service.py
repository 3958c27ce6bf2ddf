from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cartshare.core.logging import get_logger
from cartshare.core.metrics import record_shared_cart_view
from cartshare.domain.expiry import effective_status
from cartshare.domain.messaging import build_follow_up_message, build_whatsapp_link
from cartshare.domain.short_code import is_valid_short_code, normalize_short_code
from cartshare.models.shared_cart import SharedCart
from cartshare.schemas.shared_cart import SharedCartRead
from cartshare.services.exceptions import DomainValidationError, ResourceNotFoundError
from cartshare.services.share_service import shared_cart_url

logger = get_logger("cartshare.snapshot")


def as_uuid(value: str, field: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError as exc:
        raise DomainValidationError(f"Invalid UUID for {field}") from exc


async def get_shared_cart(db: AsyncSession, cart_id: str) -> SharedCart:
    """Staff read by id. Does not count as a view."""
    record = await db.get(SharedCart, as_uuid(cart_id, "cart_id"))
    if not record:
        raise ResourceNotFoundError("Shared cart not found")
    return record


async def get_by_code(db: AsyncSession, code: str) -> SharedCart | None:
    """Case-insensitive lookup by short code. Does not count as a view."""
    if not is_valid_short_code(code):
        return None
    stmt = select(SharedCart).where(SharedCart.short_code == normalize_short_code(code)).limit(1)
    result = await db.execute(stmt)
    return result.scalars().first()


async def resolve(db: AsyncSession, code: str) -> SharedCart | None:
    """Resolve a short code and count one view.

    The counter is bumped by a single ``UPDATE ... SET views = views + 1`` so
    concurrent resolutions never lose increments; the row is then re-read so
    ``views`` and ``status`` reflect the latest committed values. Returns
    ``None`` when nothing matches.
    """
    if not is_valid_short_code(code):
        record_shared_cart_view("miss")
        return None

    normalized = normalize_short_code(code)
    stmt = (
        update(SharedCart)
        .where(SharedCart.short_code == normalized)
        .values(views=SharedCart.views + 1)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if not result.rowcount:
        record_shared_cart_view("miss")
        logger.debug("Shared cart code not found", extra={"short_code": normalized})
        return None

    stmt = (
        select(SharedCart)
        .where(SharedCart.short_code == normalized)
        .execution_options(populate_existing=True)
    )
    record = (await db.execute(stmt)).scalar_one()
    record_shared_cart_view("hit")
    return record


def to_read_model(record: SharedCart, now: datetime | None = None) -> SharedCartRead:
    return SharedCartRead(
        id=record.id,
        short_code=record.short_code,
        cart_data=record.cart_data,
        customer_info=record.customer_info,
        status=record.status,
        effective_status=effective_status(record, now),
        views=record.views,
        created_at=record.created_at,
        expires_at=record.expires_at,
        url=shared_cart_url(record.short_code),
        contact_url=build_whatsapp_link(build_follow_up_message(record.short_code)),
    )
