import uuid
from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import JSON, String, Enum, DateTime, Integer, CheckConstraint, UniqueConstraint, Index, func

from cartshare.db.session import Base
from cartshare.db.types import GUID
from cartshare.domain.enums import SharedCartStatus


class SharedCart(Base):
    __tablename__ = "shared_carts"
    __table_args__ = (
        UniqueConstraint("short_code", name="uq_shared_carts_short_code"),
        CheckConstraint("views >= 0", name="ck_shared_carts_views_non_negative"),
        Index("ix_shared_carts_status_created_at", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4, nullable=False)
    short_code: Mapped[str] = mapped_column(String(16), nullable=False)

    # Snapshot copied at creation; never mutated afterwards.
    cart_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    customer_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    status: Mapped[SharedCartStatus] = mapped_column(
        Enum(SharedCartStatus, name="sharedcartstatus"),
        default=SharedCartStatus.pending,
        nullable=False,
    )
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Set by status changes only; view increments leave it alone.
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
