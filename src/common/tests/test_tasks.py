"""Tests for common tasks."""

from datetime import timedelta

import pytest
from django.core import mail
from django.utils import timezone

from common.models import IdempotencyRecord
from common.tasks import purge_expired_idempotency_records, send_email, send_notification

pytestmark = pytest.mark.django_db


def test_send_email_uses_bcc() -> None:
    send_email(to=["a@example.com", "b@example.com"], subject="Hi", body="Body", html_body="<p>Body</p>")

    assert len(mail.outbox) == 1
    message = mail.outbox[0]
    assert message.to == []
    assert message.bcc == ["a@example.com", "b@example.com"]
    assert message.alternatives[0][1] == "text/html"


def test_send_notification_renders_templates() -> None:
    result = send_notification(
        to="guest@example.com",
        template="rsvp_confirmed",
        data={"user_name": "Ada", "event_name": "Launch Party", "check_in_code": "CODE123", "event_slug": "launch"},
    )

    assert result == {"sent": True}
    assert len(mail.outbox) == 1
    message = mail.outbox[0]
    assert "Launch Party" in message.subject
    assert "\n" not in message.subject
    assert "CODE123" in message.body
    assert message.bcc == ["guest@example.com"]


def test_send_purchase_receipt_lists_items() -> None:
    send_notification(
        to="guest@example.com",
        template="purchase_receipt",
        data={
            "user_name": "Ada",
            "order_id": "order-1",
            "items": [{"event_name": "Launch Party", "quantity": 1, "status": "waitlisted"}],
            "total": "25.00",
            "currency": "USD",
        },
    )

    body = mail.outbox[0].body
    assert "Launch Party x1: waitlisted" in body
    assert "25.00 USD" in body


def test_purge_expired_idempotency_records() -> None:
    now = timezone.now()
    IdempotencyRecord.objects.create(route="r", key="old", expires_at=now - timedelta(seconds=1))
    IdempotencyRecord.objects.create(route="r", key="live", expires_at=now + timedelta(minutes=5))

    assert purge_expired_idempotency_records() == 1
    assert list(IdempotencyRecord.objects.values_list("key", flat=True)) == ["live"]
