# tests/test_share_client.py
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from cartshare.client.cart_store import CartStore
from cartshare.client.share_client import ShareClient, ShareRequestError, build_share_payload
from cartshare.main import app
from cartshare.schemas.shared_cart import CustomerInfoIn


@pytest.fixture
def asgi_http():
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


def _cookie_store() -> CartStore:
    store = CartStore()
    store.add_item({"id": "cookie-box", "name": "Cookie Box", "price": "35.00", "quantity": 2})
    return store


def test_share_payload_mirrors_cart_lines():
    payload = build_share_payload(_cookie_store(), {"name": "Ana Souza", "phone": "47991234567"})

    assert payload == {
        "items": [
            {
                "id": "cookie-box",
                "name": "Cookie Box",
                "price": 35.0,
                "quantity": 2,
                "customization": None,
                "image": None,
            }
        ],
        "customerInfo": {"name": "Ana Souza", "phone": "47991234567"},
        "subtotal": 70.0,
    }


@pytest.mark.asyncio
async def test_handoff_shares_cart_builds_message_and_clears(asgi_http):
    store = _cookie_store()
    customer = CustomerInfoIn(
        name="Ana Souza", phone="47991234567", delivery_date="2026-10-25", notes="no nuts"
    )

    async with asgi_http, ShareClient(client=asgi_http, whatsapp_number="5547990000000") as share_client:
        result = await share_client.handoff(store, customer)
        resolved = await asgi_http.get(f"/api/v1/c/{result.short_code}")

    assert store.is_empty
    assert store.is_open is False
    assert len(result.short_code) == 7
    assert result.url.endswith(f"/c/{result.short_code}")
    assert "- Cookie Box (2x) - R$ 70,00" in result.message
    assert "*Desired date:* 2026-10-25" in result.message
    assert "*Notes:* no nuts" in result.message
    assert result.message.splitlines()[-3] == result.url

    link = urlparse(result.whatsapp_url)
    assert link.path == "/5547990000000"
    assert parse_qs(link.query)["text"] == [result.message]

    body = resolved.json()
    assert body["id"] == str(result.cart_id)
    assert body["customerInfo"]["deliveryDate"] == "2026-10-25"


@pytest.mark.asyncio
async def test_failed_handoff_keeps_the_cart(asgi_http):
    store = _cookie_store()

    async with asgi_http:
        share_client = ShareClient(client=asgi_http)
        with pytest.raises(ShareRequestError) as excinfo:
            await share_client.handoff(store, {"name": "Al", "phone": "x"})

    assert excinfo.value.code == "validation_error"
    assert excinfo.value.status_code == 422
    assert store.get_total_items() == 2


@pytest.mark.asyncio
async def test_empty_cart_handoff_reports_server_code(asgi_http):
    async with asgi_http:
        with pytest.raises(ShareRequestError) as excinfo:
            await ShareClient(client=asgi_http).handoff(CartStore())

    assert excinfo.value.code == "empty_cart"
    assert excinfo.value.error == "Cart is empty"


@pytest.mark.asyncio
async def test_network_failure_is_reported_as_share_error():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = _cookie_store()
    async with httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://test") as http:
        with pytest.raises(ShareRequestError) as excinfo:
            await ShareClient(client=http).handoff(store)

    assert excinfo.value.code == "network_error"
    assert store.get_total_items() == 2


def test_client_requires_base_url_or_client():
    with pytest.raises(ValueError):
        ShareClient()
