"""Plain-text payloads and deep links for the WhatsApp sales channel."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from urllib.parse import quote

from cartshare.core.config import settings

WHATSAPP_BASE_URL = "https://wa.me"


@dataclass(frozen=True, slots=True)
class MessageLine:
    name: str
    quantity: int
    unit_price: Decimal


def format_price(value: Decimal | float | int) -> str:
    """Format an amount as ``R$ 1.234,50`` using the configured separators."""
    amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    whole, cents = f"{abs(amount):.2f}".split(".")
    groups = []
    while whole:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    integer = settings.THOUSANDS_SEPARATOR.join(groups)
    return f"{sign}{settings.CURRENCY_SYMBOL} {integer}{settings.DECIMAL_SEPARATOR}{cents}"


def build_handoff_message(
    lines: Iterable[MessageLine],
    subtotal: Decimal | float,
    url: str,
    *,
    delivery_date: date | str | None = None,
    notes: str | None = None,
) -> str:
    itemized = "\n".join(
        f"- {line.name} ({line.quantity}x) - {format_price(line.unit_price * line.quantity)}"
        for line in lines
    )
    extras = ""
    if delivery_date:
        extras += f"\n*Desired date:* {delivery_date}"
    if notes:
        extras += f"\n*Notes:* {notes}"

    return (
        "Hi! I would like to place an order\n"
        "\n"
        "*My cart:*\n"
        f"{itemized}\n"
        "\n"
        f"*Total:* {format_price(subtotal)}{extras}\n"
        "\n"
        "*See the full cart:*\n"
        f"{url}\n"
        "\n"
        "Can you help me finish it?"
    )


def build_follow_up_message(short_code: str) -> str:
    return f"Hi! I saw cart #{short_code.upper()} and would like to continue with the order"


def build_whatsapp_link(message: str, number: str | None = None) -> str:
    return f"{WHATSAPP_BASE_URL}/{number or settings.WHATSAPP_NUMBER}?text={quote(message, safe='')}"
