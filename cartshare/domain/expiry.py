"""Lazy expiry: a non-terminal cart past ``expires_at`` reads as expired."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from cartshare.domain.enums import SharedCartStatus, TERMINAL_STATUSES


class _Expiring(Protocol):
    status: SharedCartStatus
    expires_at: datetime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything we store is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_overdue(record: _Expiring, now: datetime | None = None) -> bool:
    return as_utc(record.expires_at) < (now or utcnow())


def effective_status(record: _Expiring, now: datetime | None = None) -> SharedCartStatus:
    if record.status in TERMINAL_STATUSES:
        return record.status
    if is_overdue(record, now):
        return SharedCartStatus.expired
    return record.status
