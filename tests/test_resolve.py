# tests/test_resolve.py
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from cartshare.db.session_async import AsyncSessionLocal
from cartshare.services import snapshot_service

SHARE_URL = "/api/v1/cart/share"


def _resolve_url(code: str) -> str:
    return f"/api/v1/c/{code}"


@pytest.mark.asyncio
async def test_resolve_increments_views_by_exactly_n(make_shared_cart):
    record = await make_shared_cart()

    async with AsyncSessionLocal() as session:
        for expected in range(1, 6):
            resolved = await snapshot_service.resolve(session, record.short_code)
            await session.commit()
            assert resolved.views == expected


@pytest.mark.asyncio
async def test_resolve_miss_returns_none_and_touches_nothing(make_shared_cart):
    record = await make_shared_cart()

    async with AsyncSessionLocal() as session:
        assert await snapshot_service.resolve(session, "ZZZZZZZ") is None
        assert await snapshot_service.resolve(session, "not-a-code") is None
        await session.commit()
        untouched = await snapshot_service.get_by_code(session, record.short_code)
        assert untouched.views == 0


@pytest.mark.asyncio
async def test_staff_reads_do_not_count_views(make_shared_cart):
    record = await make_shared_cart()

    async with AsyncSessionLocal() as session:
        await snapshot_service.get_shared_cart(session, str(record.id))
        by_code = await snapshot_service.get_by_code(session, record.short_code.lower())
        assert by_code.views == 0


@pytest.mark.asyncio
async def test_resolve_endpoint_round_trips_snapshot(client, share_payload):
    created = (await client.post(SHARE_URL, json=share_payload)).json()

    resp = await client.get(_resolve_url(created["shortCode"]))

    assert resp.status_code == 200, resp.text
    assert resp.headers["cache-control"] == "no-store"
    body = resp.json()
    assert body["id"] == created["cartId"]
    assert body["cartData"] == {
        "items": [
            {
                "productId": "cookie-box",
                "productName": "Cookie Box",
                "quantity": 2,
                "price": 35.0,
                "image": None,
                "customization": None,
            }
        ],
        "subtotal": 70.0,
    }
    assert body["customerInfo"]["name"] == "Ana Souza"
    assert body["status"] == "pending"
    assert body["effectiveStatus"] == "pending"
    assert body["views"] == 1
    assert body["url"] == created["url"]


@pytest.mark.asyncio
async def test_resolve_endpoint_is_case_insensitive(client, make_shared_cart):
    record = await make_shared_cart()

    resp = await client.get(_resolve_url(record.short_code.lower()))
    assert resp.status_code == 200, resp.text
    assert resp.json()["shortCode"] == record.short_code


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["ZZZZZZZ", "abc", "ABCDEF0"])
async def test_resolve_endpoint_miss_is_not_found_state(client, code):
    resp = await client.get(_resolve_url(code))

    assert resp.status_code == 404
    assert resp.headers["cache-control"] == "no-store"
    assert resp.json() == {"found": False, "error": "Shared cart not found", "code": "not_found"}


@pytest.mark.asyncio
async def test_resolve_endpoint_exposes_contact_link(client, make_shared_cart):
    record = await make_shared_cart()

    body = (await client.get(_resolve_url(record.short_code))).json()

    link = urlparse(body["contactUrl"])
    assert link.netloc == "wa.me"
    assert parse_qs(link.query)["text"] == [
        f"Hi! I saw cart #{record.short_code} and would like to continue with the order"
    ]


@pytest.mark.asyncio
async def test_resolve_endpoint_reports_lazy_expiry(client, make_shared_cart):
    long_ago = datetime.now(timezone.utc) - timedelta(days=30)
    record = await make_shared_cart(now=long_ago)

    body = (await client.get(_resolve_url(record.short_code))).json()

    assert body["status"] == "pending"
    assert body["effectiveStatus"] == "expired"


@pytest.mark.asyncio
async def test_cookie_box_end_to_end(client, staff_headers):
    created = await client.post(
        SHARE_URL,
        json={
            "items": [{"id": "cookie-box", "name": "Cookie Box", "price": 35, "quantity": 2}],
            "customerInfo": {"name": "Ana Souza", "phone": "47991234567"},
            "subtotal": 70,
        },
    )
    assert created.status_code == 201, created.text
    code = created.json()["shortCode"]
    assert len(code) == 7

    first = (await client.get(_resolve_url(code))).json()
    assert first["cartData"]["subtotal"] == 70
    assert first["views"] == 1
    assert first["status"] == "pending"

    patched = await client.patch(
        f"/api/v1/admin/shared-carts/{first['id']}/status",
        json={"status": "contacted"},
        headers=staff_headers,
    )
    assert patched.status_code == 200, patched.text
    assert patched.json()["views"] == 1

    second = (await client.get(_resolve_url(code))).json()
    assert second["status"] == "contacted"
    assert second["views"] == 2
