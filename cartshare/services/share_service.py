from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cartshare.core.config import settings
from cartshare.core.logging import get_logger
from cartshare.core.metrics import record_short_code_collision, record_shared_cart_created
from cartshare.db.operations import flush_async, rollback_async
from cartshare.domain.enums import SharedCartStatus
from cartshare.domain.expiry import utcnow
from cartshare.domain.short_code import generate_short_code
from cartshare.models.shared_cart import SharedCart
from cartshare.schemas.shared_cart import CustomerInfoIn, SharedCartItemIn
from cartshare.services.exceptions import EmptyCartError, PersistenceError, ShortCodeExhaustedError

logger = get_logger("cartshare.share")

_SHORT_CODE_CONSTRAINT = "uq_shared_carts_short_code"


def shared_cart_url(short_code: str) -> str:
    return f"{settings.public_base_url}{settings.SHARED_CART_PATH}/{short_code.upper()}"


def _is_short_code_collision(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return _SHORT_CODE_CONSTRAINT in message or "short_code" in message


def build_snapshot(items: Sequence[SharedCartItemIn], subtotal: float | None) -> dict:
    """Copy the submitted items into the immutable ``cart_data`` document.

    Names and prices are recorded exactly as the client sent them; checking
    them against the catalog is not this service's job. A subtotal that does
    not match the lines is logged and kept.
    """
    snapshot_items = [
        {
            "product_id": item.id,
            "product_name": item.name,
            "quantity": item.quantity,
            "price": item.price,
            "image": item.image or None,
            "customization": item.customization or None,
        }
        for item in items
    ]
    computed = round(sum(item.price * item.quantity for item in items), 2)
    if subtotal is None:
        subtotal = computed
    elif abs(subtotal - computed) > 0.005:
        logger.warning(
            "Submitted subtotal differs from item lines",
            extra={"submitted_subtotal": subtotal, "computed_subtotal": computed},
        )
    return {"items": snapshot_items, "subtotal": subtotal}


async def create_shared_cart(
    db: AsyncSession,
    *,
    items: Sequence[SharedCartItemIn] | None,
    customer_info: CustomerInfoIn | None = None,
    subtotal: float | None = None,
    code_factory: Callable[[], str] = generate_short_code,
    now: datetime | None = None,
) -> SharedCart:
    """Persist a new shared cart under a freshly allocated short code.

    Each candidate code is inserted directly; the unique constraint on
    ``short_code`` decides whether it is free. A collision rolls the attempt
    back and draws again, up to ``SHORT_CODE_MAX_ATTEMPTS`` times. The
    record is flushed, not committed.
    """
    if not items:
        raise EmptyCartError()

    cart_data = build_snapshot(items, subtotal)
    customer_data = customer_info.model_dump(mode="json", exclude_none=True) if customer_info else None
    created_at = now or utcnow()
    expires_at = created_at + timedelta(days=settings.SHARED_CART_TTL_DAYS)

    for attempt in range(1, settings.SHORT_CODE_MAX_ATTEMPTS + 1):
        candidate = code_factory().upper()
        record = SharedCart(
            short_code=candidate,
            cart_data=cart_data,
            customer_info=customer_data,
            status=SharedCartStatus.pending,
            views=0,
            created_at=created_at,
            expires_at=expires_at,
        )
        db.add(record)
        try:
            await flush_async(db, record)
        except IntegrityError as exc:
            await rollback_async(db)
            if not _is_short_code_collision(exc):
                logger.error("Shared cart insert violated a constraint", exc_info=True)
                raise PersistenceError("Could not save shared cart") from exc
            record_short_code_collision()
            logger.warning(
                "Short code collision, drawing a new candidate",
                extra={"attempt": attempt, "max_attempts": settings.SHORT_CODE_MAX_ATTEMPTS},
            )
            continue
        except SQLAlchemyError as exc:
            await rollback_async(db)
            logger.error("Shared cart insert failed", exc_info=True)
            raise PersistenceError("Could not save shared cart") from exc

        record_shared_cart_created()
        logger.info(
            "Shared cart created",
            extra={
                "cart_id": str(record.id),
                "short_code": record.short_code,
                "item_count": len(cart_data["items"]),
                "attempts": attempt,
            },
        )
        return record

    logger.error(
        "Short code allocation exhausted",
        extra={"max_attempts": settings.SHORT_CODE_MAX_ATTEMPTS},
    )
    raise ShortCodeExhaustedError("Could not generate a unique short code")
