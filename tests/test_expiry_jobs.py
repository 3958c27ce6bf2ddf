# tests/test_expiry_jobs.py
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from cartshare.domain.enums import SharedCartStatus
from cartshare.models.shared_cart import SharedCart
from cartshare.tasks.shared_carts import expire_overdue_task
from scripts import expire_shared_carts


def _add_cart(db_session, code: str, created_at: datetime) -> SharedCart:
    record = SharedCart(
        short_code=code,
        cart_data={"items": [{"product_id": "x", "product_name": "X", "quantity": 1, "price": 1.0}], "subtotal": 1.0},
        status=SharedCartStatus.pending,
        views=0,
        created_at=created_at,
        expires_at=created_at + timedelta(days=7),
    )
    db_session.add(record)
    db_session.commit()
    return record


def _status_of(db_session, code: str) -> SharedCartStatus:
    db_session.expire_all()
    return db_session.execute(select(SharedCart.status).where(SharedCart.short_code == code)).scalar_one()


def test_celery_task_expires_overdue_carts(db_session):
    now = datetime.now(timezone.utc)
    _add_cart(db_session, "OLDCART", now - timedelta(days=8))
    _add_cart(db_session, "NEWCART", now)

    result = expire_overdue_task.delay().get()

    assert result == {"expired": 1}
    assert _status_of(db_session, "OLDCART") == SharedCartStatus.expired
    assert _status_of(db_session, "NEWCART") == SharedCartStatus.pending


def test_expiry_script_dry_run_then_apply(db_session):
    created = datetime(2026, 1, 1, tzinfo=timezone.utc)
    _add_cart(db_session, "JANCART", created)

    assert expire_shared_carts.main(["--as-of", "2026-01-05T00:00:00", "--dry-run"]) == 0
    assert _status_of(db_session, "JANCART") == SharedCartStatus.pending

    assert expire_shared_carts.main(["--as-of", "2026-01-09T00:00:00", "--dry-run"]) == 0
    assert _status_of(db_session, "JANCART") == SharedCartStatus.pending

    assert expire_shared_carts.main(["--as-of", "2026-01-09T00:00:00"]) == 0
    assert _status_of(db_session, "JANCART") == SharedCartStatus.expired
