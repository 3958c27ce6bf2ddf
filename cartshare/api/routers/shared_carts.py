from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cartshare.core.config import settings
from cartshare.core.rate_limiter import rate_limit
from cartshare.db.operations import commit_async, rollback_async
from cartshare.db.session_async import get_async_db
from cartshare.schemas.shared_cart import SharedCartCreate, SharedCartCreated, SharedCartRead
from cartshare.services import share_service, snapshot_service
from cartshare.services.exceptions import PersistenceError, ServiceError

router = APIRouter(tags=["shared-carts"])

NO_STORE = "no-store"

share_rate_limit = rate_limit(
    settings.RATE_LIMIT_SHARE_PER_MINUTE,
    settings.RATE_LIMIT_SHARE_WINDOW_SECONDS,
    scope="cart_share",
)


@router.post(
    "/cart/share",
    response_model=SharedCartCreated,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(share_rate_limit)],
)
async def share_cart(
    payload: SharedCartCreate,
    db: AsyncSession = Depends(get_async_db),
):
    try:
        record = await share_service.create_shared_cart(
            db,
            items=payload.items,
            customer_info=payload.customer_info,
            subtotal=payload.subtotal,
        )
        await commit_async(db)
    except ServiceError:
        await rollback_async(db)
        raise
    except SQLAlchemyError as exc:
        await rollback_async(db)
        raise PersistenceError("Could not save shared cart") from exc

    return SharedCartCreated(
        short_code=record.short_code,
        url=share_service.shared_cart_url(record.short_code),
        cart_id=record.id,
    )


@router.get(
    "/c/{code}",
    response_model=SharedCartRead,
    responses={404: {"description": "No shared cart under this code"}},
)
async def resolve_shared_cart(
    code: str,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
):
    record = await snapshot_service.resolve(db, code)
    if record is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"found": False, "error": "Shared cart not found", "code": "not_found"},
            headers={"Cache-Control": NO_STORE},
        )
    await commit_async(db)
    response.headers["Cache-Control"] = NO_STORE
    return snapshot_service.to_read_model(record)
