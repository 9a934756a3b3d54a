"""Common tasks."""

import typing as t

import structlog
from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

from .models import IdempotencyRecord

logger = structlog.get_logger(__name__)


@shared_task
def send_email(*, to: str | list[str], subject: str, body: str, html_body: str | None = None) -> None:
    """Send an email.

    Args:
        to (str): The email address.
        subject (str): The email subject.
        body (str): The email body.
        html_body (str | None): The HTML email body.

    Returns:
        None
    """
    recipients = [to] if isinstance(to, str) else to
    email_msg = EmailMultiAlternatives(
        subject=subject,
        body=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        bcc=recipients,
    )
    if html_body:  # pragma: no branch
        email_msg.attach_alternative(html_body, "text/html")
    email_msg.send(fail_silently=False)


@shared_task
def send_notification(*, to: str, template: str, data: dict[str, t.Any]) -> dict[str, bool]:
    """Render a notification template and email it.

    Templates live in ``notifications/<template>_subject.txt`` and ``notifications/<template>_body.txt``.
    """
    context = {**data, "site_name": settings.SITE_NAME, "frontend_base_url": settings.FRONTEND_BASE_URL}
    subject = render_to_string(f"notifications/{template}_subject.txt", context).strip()
    body = render_to_string(f"notifications/{template}_body.txt", context)
    send_email(to=to, subject=subject, body=body)
    logger.info("notification_sent", template=template)
    return {"sent": True}


@shared_task
def purge_expired_idempotency_records() -> int:
    """Delete idempotency records whose TTL has run out."""
    deleted, _ = IdempotencyRecord.objects.expired().delete()
    logger.info("idempotency_records_purged", count=deleted)
    return deleted
