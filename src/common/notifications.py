"""Best-effort notification dispatch.

Notifications are queued after the surrounding transaction commits. A failure to queue is logged and
never propagates, so it can neither block nor roll back the write that triggered it.
"""

import typing as t

import structlog
from django.db import transaction

from . import tasks

logger = structlog.get_logger(__name__)

TEMPLATES = frozenset(
    {
        "rsvp_confirmed",
        "rsvp_waitlisted",
        "rsvp_updated",
        "waitlist_promoted",
        "purchase_receipt",
        "verify_email",
        "password_reset",
    }
)


def _send(to: str, template: str, data: dict[str, t.Any]) -> None:
    try:
        tasks.send_notification.delay(to=to, template=template, data=data)
    except Exception:
        logger.exception("notification_dispatch_failed", template=template)


def dispatch(to: str, template: str, data: dict[str, t.Any]) -> None:
    """Send ``template`` to ``to`` once the current transaction commits."""
    if template not in TEMPLATES:
        raise ValueError(f"Unknown notification template: {template}")
    if not to:
        logger.info("notification_skipped_no_recipient", template=template)
        return
    transaction.on_commit(lambda: _send(to, template, data))
