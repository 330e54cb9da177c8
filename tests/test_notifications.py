"""Order confirmation mail is best-effort and never affects the order."""

import smtplib
import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from checkout.core import email_client
from checkout.schemas.order import OrderItemRead, OrderWithItemsRead
from checkout.services import notification_service


def _order(email="buyer@example.com"):
    address = {"street": "1 Main St", "city": "X", "zip_code": "1", "country": "US"}
    if email:
        address["email"] = email
    return OrderWithItemsRead(
        id=uuid.uuid4(),
        user_id="u1",
        status="pending",
        total_amount=Decimal("21.00"),
        shipping_address=address,
        created_at=datetime.now(timezone.utc),
        items=[
            OrderItemRead(
                id=uuid.uuid4(),
                product_id="P",
                product_name="Cake",
                quantity=2,
                price_at_purchase=Decimal("10.50"),
                line_total=Decimal("21.00"),
            )
        ],
    )


def _configure_smtp(monkeypatch):
    monkeypatch.setenv("SMTP_HOST", "smtp.test")
    monkeypatch.setenv("SMTP_USERNAME", "orders@test")
    monkeypatch.setenv("SMTP_PASSWORD", "secret")


def test_render_lists_lines_and_total():
    subject, text, html = notification_service.render_order_confirmation(_order())

    assert "confirmed" in subject
    assert "2 x Cake @ 10.50 = 21.00" in text
    assert "Total: 21.00" in text
    assert "<td>Cake</td>" in html


def test_no_email_in_address_sends_nothing(monkeypatch):
    _configure_smtp(monkeypatch)
    calls = []
    monkeypatch.setattr(email_client, "send_email", lambda *a, **kw: calls.append(a))

    assert notification_service.send_order_confirmation(_order(email=None)) is False
    assert calls == []


def test_unconfigured_smtp_is_skipped(monkeypatch):
    monkeypatch.delenv("SMTP_HOST", raising=False)

    assert notification_service.send_order_confirmation(_order()) is False


def test_sends_to_shipping_email(monkeypatch):
    _configure_smtp(monkeypatch)
    calls = []
    monkeypatch.setattr(email_client, "send_email", lambda *a, **kw: calls.append(a))

    assert notification_service.send_order_confirmation(_order()) is True
    assert calls[0][0] == "buyer@example.com"


def test_smtp_failure_is_swallowed(monkeypatch):
    _configure_smtp(monkeypatch)

    def boom(*args, **kwargs):
        raise smtplib.SMTPException("down")

    monkeypatch.setattr(email_client, "send_email", boom)

    assert notification_service.send_order_confirmation(_order()) is False


def test_send_email_requires_configuration(monkeypatch):
    monkeypatch.delenv("SMTP_HOST", raising=False)

    with pytest.raises(RuntimeError, match="SMTP"):
        email_client.send_email("a@b.c", "s", "t")
