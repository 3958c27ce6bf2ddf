from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cartshare.api.deps import get_current_staff
from cartshare.db.operations import commit_async, rollback_async
from cartshare.db.session_async import get_async_db
from cartshare.domain.enums import SharedCartStatus
from cartshare.domain.expiry import utcnow
from cartshare.models.user import StaffUser
from cartshare.schemas.shared_cart import (
    ExpirySweepResult,
    SharedCartMetrics,
    SharedCartPage,
    SharedCartRead,
    SharedCartStatusUpdate,
)
from cartshare.services import snapshot_service, staff_cart_service, status_workflow
from cartshare.services.exceptions import ResourceNotFoundError, ServiceError

router = APIRouter(prefix="/admin/shared-carts", tags=["admin-shared-carts"])


@router.get("", response_model=SharedCartPage)
async def list_shared_carts(
    status: SharedCartStatus | None = Query(default=None, description="Filter by effective status"),
    q: str | None = Query(default=None, max_length=100, description="Short code, customer name or phone"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_async_db),
    _: StaffUser = Depends(get_current_staff),
):
    now = utcnow()
    total, records = await staff_cart_service.list_shared_carts(
        db, status_filter=status, search=q, limit=limit, offset=offset, now=now
    )
    return SharedCartPage(
        total=total,
        limit=limit,
        offset=offset,
        items=[staff_cart_service.to_summary(record, now) for record in records],
    )


@router.get("/metrics", response_model=SharedCartMetrics)
async def shared_cart_metrics(
    days: int = Query(7, ge=1, le=365),
    db: AsyncSession = Depends(get_async_db),
    _: StaffUser = Depends(get_current_staff),
):
    return await staff_cart_service.get_metrics(db, days=days)


@router.post("/expire", response_model=ExpirySweepResult)
async def expire_overdue_shared_carts(
    db: AsyncSession = Depends(get_async_db),
    _: StaffUser = Depends(get_current_staff),
):
    try:
        expired = await status_workflow.expire_overdue(db)
        await commit_async(db)
    except ServiceError:
        await rollback_async(db)
        raise
    return ExpirySweepResult(expired=expired)


@router.get("/by-code/{code}", response_model=SharedCartRead)
async def get_shared_cart_by_code(
    code: str = Path(...),
    db: AsyncSession = Depends(get_async_db),
    _: StaffUser = Depends(get_current_staff),
):
    """Look a cart up by its short code without counting a view."""
    record = await snapshot_service.get_by_code(db, code)
    if record is None:
        raise ResourceNotFoundError("Shared cart not found")
    return snapshot_service.to_read_model(record)


@router.get("/{cart_id}", response_model=SharedCartRead)
async def get_shared_cart(
    cart_id: str = Path(...),
    db: AsyncSession = Depends(get_async_db),
    _: StaffUser = Depends(get_current_staff),
):
    record = await snapshot_service.get_shared_cart(db, cart_id)
    return snapshot_service.to_read_model(record)


@router.patch("/{cart_id}/status", response_model=SharedCartRead)
async def update_shared_cart_status(
    payload: SharedCartStatusUpdate,
    cart_id: str = Path(...),
    db: AsyncSession = Depends(get_async_db),
    _: StaffUser = Depends(get_current_staff),
):
    try:
        record = await status_workflow.set_status(db, cart_id, payload.status)
        await commit_async(db)
    except ServiceError:
        await rollback_async(db)
        raise
    return snapshot_service.to_read_model(record)
