# tests/test_messaging.py
from datetime import date
from decimal import Decimal
from urllib.parse import parse_qs, urlparse

from cartshare.domain.messaging import (
    MessageLine,
    build_follow_up_message,
    build_handoff_message,
    build_whatsapp_link,
    format_price,
)


def test_format_price_uses_brl_separators():
    assert format_price(Decimal("70")) == "R$ 70,00"
    assert format_price(1234.5) == "R$ 1.234,50"
    assert format_price(Decimal("1234567.891")) == "R$ 1.234.567,89"
    assert format_price(0) == "R$ 0,00"


def test_handoff_message_lists_items_total_and_link():
    message = build_handoff_message(
        [MessageLine("Cookie Box", 2, Decimal("35.00"))],
        Decimal("70"),
        "http://localhost:3000/c/ABCDEFG",
        delivery_date=date(2026, 10, 25),
        notes="no nuts",
    )

    assert message == (
        "Hi! I would like to place an order\n"
        "\n"
        "*My cart:*\n"
        "- Cookie Box (2x) - R$ 70,00\n"
        "\n"
        "*Total:* R$ 70,00\n"
        "*Desired date:* 2026-10-25\n"
        "*Notes:* no nuts\n"
        "\n"
        "*See the full cart:*\n"
        "http://localhost:3000/c/ABCDEFG\n"
        "\n"
        "Can you help me finish it?"
    )


def test_handoff_message_omits_optional_lines():
    message = build_handoff_message(
        [MessageLine("Brownie", 1, Decimal("12.5"))],
        12.5,
        "http://localhost:3000/c/ABCDEFG",
    )

    assert "*Desired date:*" not in message
    assert "*Notes:*" not in message
    assert "*Total:* R$ 12,50\n\n*See the full cart:*" in message


def test_whatsapp_link_round_trips_message():
    message = build_handoff_message(
        [MessageLine("Cookie Box & Co", 1, Decimal("35"))],
        35,
        "http://localhost:3000/c/ABCDEFG",
    )
    link = build_whatsapp_link(message, number="5547990000000")

    parsed = urlparse(link)
    assert parsed.netloc == "wa.me"
    assert parsed.path == "/5547990000000"
    assert parse_qs(parsed.query)["text"] == [message]


def test_follow_up_message_names_the_code():
    assert build_follow_up_message("abcdefg") == (
        "Hi! I saw cart #ABCDEFG and would like to continue with the order"
    )
