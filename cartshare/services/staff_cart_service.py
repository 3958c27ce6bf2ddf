from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Tuple

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cartshare.domain.enums import SharedCartStatus
from cartshare.domain.expiry import effective_status, utcnow
from cartshare.models.shared_cart import SharedCart
from cartshare.schemas.shared_cart import SharedCartMetrics, SharedCartSummary

_OPEN_STATUSES = (SharedCartStatus.pending, SharedCartStatus.contacted)


def _effective_status_clause(status: SharedCartStatus, now: datetime):
    """SQL filter matching carts whose *effective* status is ``status``."""
    if status == SharedCartStatus.expired:
        return or_(
            SharedCart.status == SharedCartStatus.expired,
            and_(SharedCart.status.in_(_OPEN_STATUSES), SharedCart.expires_at < now),
        )
    if status in _OPEN_STATUSES:
        return and_(SharedCart.status == status, SharedCart.expires_at >= now)
    return SharedCart.status == status


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _search_clause(term: str):
    pattern = f"%{_escape_like(term.strip())}%"
    return or_(
        SharedCart.short_code.ilike(pattern, escape="\\"),
        SharedCart.customer_info["name"].as_string().ilike(pattern, escape="\\"),
        SharedCart.customer_info["phone"].as_string().like(pattern, escape="\\"),
    )


def to_summary(record: SharedCart, now: datetime | None = None) -> SharedCartSummary:
    cart_data = record.cart_data or {}
    customer = record.customer_info or {}
    return SharedCartSummary(
        id=record.id,
        short_code=record.short_code,
        status=record.status,
        effective_status=effective_status(record, now),
        views=record.views,
        subtotal=cart_data.get("subtotal", 0),
        item_count=len(cart_data.get("items", [])),
        customer_name=customer.get("name"),
        customer_phone=customer.get("phone"),
        created_at=record.created_at,
        expires_at=record.expires_at,
    )


async def list_shared_carts(
    db: AsyncSession,
    *,
    status_filter: SharedCartStatus | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
    now: datetime | None = None,
) -> Tuple[int, List[SharedCart]]:
    """Newest first, optionally filtered by effective status and a search term
    matched against the short code, customer name and customer phone."""
    now = now or utcnow()
    filters = []
    if status_filter:
        filters.append(_effective_status_clause(status_filter, now))
    if search and search.strip():
        filters.append(_search_clause(search))

    count_stmt = select(func.count()).select_from(SharedCart).where(*filters)
    total = (await db.execute(count_stmt)).scalar_one()

    stmt = (
        select(SharedCart)
        .where(*filters)
        .order_by(SharedCart.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return total, list(result.scalars().all())


async def get_metrics(
    db: AsyncSession,
    *,
    days: int = 7,
    recent_limit: int = 5,
    now: datetime | None = None,
) -> SharedCartMetrics:
    now = now or utcnow()
    since = now - timedelta(days=days)

    totals_stmt = select(
        func.count(SharedCart.id),
        func.coalesce(func.sum(SharedCart.views), 0),
        func.coalesce(func.sum(case((SharedCart.status == SharedCartStatus.converted, 1), else_=0)), 0),
    ).where(SharedCart.created_at >= since)
    total_carts, total_views, converted = (await db.execute(totals_stmt)).one()
    converted = int(converted)

    recent_stmt = (
        select(SharedCart)
        .where(SharedCart.created_at >= since)
        .order_by(SharedCart.created_at.desc())
        .limit(recent_limit)
    )
    recent = (await db.execute(recent_stmt)).scalars().all()

    conversion_rate = (converted / total_carts * 100) if total_carts else 0.0
    return SharedCartMetrics(
        window_days=days,
        total_carts=total_carts,
        converted_carts=converted,
        conversion_rate=round(conversion_rate, 2),
        total_views=int(total_views),
        recent=[to_summary(record, now) for record in recent],
    )
