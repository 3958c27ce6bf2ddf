"""Staff-facing status workflow for shared carts.

``pending -> contacted -> converted`` is the happy path; ``expired`` can be
reached from either non-terminal state. ``converted`` and ``expired`` are
terminal. The table is enforced unless ``ENFORCE_STATUS_TRANSITIONS`` is
disabled, in which case any status may overwrite any other.

Expiry is a label: ``effective_status`` derives it at read time from
``expires_at`` (see ``cartshare.domain.expiry``) and ``expire_overdue``
persists it in bulk.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cartshare.core.config import settings
from cartshare.core.logging import get_logger
from cartshare.core.metrics import record_status_change
from cartshare.domain.enums import SharedCartStatus
from cartshare.domain.expiry import utcnow
from cartshare.models.shared_cart import SharedCart
from cartshare.services.exceptions import InvalidStatusTransitionError, ResourceNotFoundError
from cartshare.services.snapshot_service import get_shared_cart

logger = get_logger("cartshare.status")

ALLOWED_TRANSITIONS: dict[SharedCartStatus, frozenset[SharedCartStatus]] = {
    SharedCartStatus.pending: frozenset(
        {SharedCartStatus.contacted, SharedCartStatus.converted, SharedCartStatus.expired}
    ),
    SharedCartStatus.contacted: frozenset({SharedCartStatus.converted, SharedCartStatus.expired}),
    SharedCartStatus.converted: frozenset(),
    SharedCartStatus.expired: frozenset(),
}


def can_transition(current: SharedCartStatus, target: SharedCartStatus) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS[current]


def _source_statuses(target: SharedCartStatus, enforce: bool) -> list[SharedCartStatus]:
    """Stored statuses a cart may be in for a write of ``target`` to apply."""
    return [
        status
        for status in SharedCartStatus
        if status != target and (not enforce or target in ALLOWED_TRANSITIONS[status])
    ]


async def _reload(db: AsyncSession, cart_id) -> SharedCart:
    stmt = (
        select(SharedCart)
        .where(SharedCart.id == cart_id)
        .execution_options(populate_existing=True)
    )
    record = (await db.execute(stmt)).scalars().first()
    if record is None:
        raise ResourceNotFoundError("Shared cart not found")
    return record


async def set_status(
    db: AsyncSession,
    cart_id: str,
    new_status: SharedCartStatus,
    *,
    enforce: bool | None = None,
    now: datetime | None = None,
) -> SharedCart:
    """Move a shared cart to ``new_status``.

    The transition check and the write are a single conditional ``UPDATE``
    against the stored status. The stored status is left untouched when the
    transition is rejected. Writing the current status again is accepted and
    changes nothing.
    """
    record = await get_shared_cart(db, cart_id)
    enforce = settings.ENFORCE_STATUS_TRANSITIONS if enforce is None else enforce

    stmt = (
        update(SharedCart)
        .where(SharedCart.id == record.id)
        .where(SharedCart.status.in_(_source_statuses(new_status, enforce)))
        .values(status=new_status, updated_at=now or utcnow())
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    record = await _reload(db, record.id)

    if not result.rowcount:
        if record.status == new_status:
            return record
        logger.warning(
            "Rejected shared cart status transition",
            extra={"cart_id": str(record.id), "from": record.status.value, "to": new_status.value},
        )
        raise InvalidStatusTransitionError(
            f"Cannot move shared cart from {record.status.value} to {new_status.value}"
        )

    record_status_change(new_status.value)
    logger.info(
        "Shared cart status changed",
        extra={"cart_id": str(record.id), "to": new_status.value},
    )
    return record


async def expire_overdue(db: AsyncSession, *, now: datetime | None = None) -> int:
    """Persist ``expired`` on every non-terminal cart past its deadline."""
    now = now or utcnow()
    stmt = (
        update(SharedCart)
        .where(SharedCart.status.in_([SharedCartStatus.pending, SharedCartStatus.contacted]))
        .where(SharedCart.expires_at < now)
        .values(status=SharedCartStatus.expired, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    expired = result.rowcount or 0
    if expired:
        record_status_change(SharedCartStatus.expired.value, expired)
        logger.info("Expired overdue shared carts", extra={"expired": expired})
    return expired
