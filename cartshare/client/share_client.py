from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import httpx
from pydantic import ValidationError

from cartshare.client.cart_store import CartStore
from cartshare.core.config import settings
from cartshare.core.logging import get_logger
from cartshare.domain.messaging import MessageLine, build_handoff_message, build_whatsapp_link
from cartshare.schemas.shared_cart import CustomerInfoIn, SharedCartCreated

logger = get_logger("cartshare.client.share")

SHARE_PATH = f"{settings.API_V1_STR}/cart/share"


class ShareRequestError(Exception):
    """The share endpoint refused or failed the handoff. The cart is untouched."""

    def __init__(self, error: str, code: str, status_code: int | None = None) -> None:
        self.error = error
        self.code = code
        self.status_code = status_code
        super().__init__(f"{code}: {error}")


@dataclass(frozen=True)
class HandoffResult:
    short_code: str
    url: str
    cart_id: UUID
    message: str
    whatsapp_url: str


def _customer_payload(customer_info: CustomerInfoIn | Mapping[str, Any] | None) -> dict | None:
    if customer_info is None:
        return None
    if isinstance(customer_info, CustomerInfoIn):
        return customer_info.model_dump(mode="json", by_alias=True, exclude_none=True)
    return dict(customer_info)


def build_share_payload(
    store: CartStore,
    customer_info: CustomerInfoIn | Mapping[str, Any] | None = None,
) -> dict:
    return {
        "items": [
            {
                "id": item.id,
                "name": item.name,
                "price": float(item.unit_price),
                "quantity": item.quantity,
                "customization": item.customization,
                "image": item.image,
            }
            for item in store.items
        ],
        "customerInfo": _customer_payload(customer_info),
        "subtotal": float(store.get_subtotal()),
    }


def _error_from_response(response: httpx.Response) -> ShareRequestError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    error = body.get("error") or body.get("detail") or response.reason_phrase
    return ShareRequestError(str(error), body.get("code", "request_failed"), response.status_code)


class ShareClient:
    """Submit a cart to the share endpoint and build the messaging handoff.

    Pass ``client`` to reuse an existing ``httpx.AsyncClient`` (its base URL
    must point at the API); otherwise one is created for ``base_url`` and
    closed by ``aclose``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        whatsapp_number: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        if client is None and not base_url:
            raise ValueError("base_url is required when no client is given")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout, connect=5.0),
        )
        self.whatsapp_number = whatsapp_number or settings.WHATSAPP_NUMBER

    async def __aenter__(self) -> "ShareClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def share(
        self,
        store: CartStore,
        customer_info: CustomerInfoIn | Mapping[str, Any] | None = None,
    ) -> SharedCartCreated:
        payload = build_share_payload(store, customer_info)
        try:
            response = await self._client.post(SHARE_PATH, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Share request failed", extra={"error": str(exc)})
            raise ShareRequestError("Could not reach the share service", "network_error") from exc

        if response.status_code != httpx.codes.CREATED:
            raise _error_from_response(response)
        try:
            return SharedCartCreated.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ShareRequestError("Unexpected share response", "bad_response", response.status_code) from exc

    async def handoff(
        self,
        store: CartStore,
        customer_info: CustomerInfoIn | Mapping[str, Any] | None = None,
    ) -> HandoffResult:
        """Share the cart, compose the sales message and clear the cart.

        On any failure ``ShareRequestError`` is raised and the cart keeps
        its items.
        """
        created = await self.share(store, customer_info)

        customer = _customer_payload(customer_info) or {}
        message = build_handoff_message(
            [MessageLine(item.name, item.quantity, item.unit_price) for item in store.items],
            store.get_subtotal(),
            created.url,
            delivery_date=customer.get("deliveryDate") or customer.get("delivery_date"),
            notes=customer.get("notes"),
        )
        result = HandoffResult(
            short_code=created.short_code,
            url=created.url,
            cart_id=created.cart_id,
            message=message,
            whatsapp_url=build_whatsapp_link(message, self.whatsapp_number),
        )
        store.clear()
        logger.info("Cart handed off", extra={"short_code": created.short_code})
        return result
