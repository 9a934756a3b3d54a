"""Door check-in for confirmed attendees."""

import hmac
from dataclasses import dataclass

import structlog
from django.contrib.auth.models import AnonymousUser
from django.db import transaction
from django.utils import timezone

from accounts.models import TurnoutUser
from events.exceptions import CheckInUnauthorizedError, InvalidCheckInCodeError
from events.models import Event, EventRSVP

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckInResult:
    rsvp: EventRSVP
    already_checked_in: bool


def is_authorized(event: Event, user: TurnoutUser | AnonymousUser | None = None, secret: str | None = None) -> bool:
    """The organizer may always check people in; anyone else needs the event's check-in secret."""
    if user is not None and user.is_authenticated and user.pk == event.organizer_id:
        return True
    if secret:
        return hmac.compare_digest(secret.encode(), event.check_in_secret.encode())
    return False


def check_in(
    event: Event,
    code: str,
    user: TurnoutUser | AnonymousUser | None = None,
    secret: str | None = None,
) -> CheckInResult:
    """Check in the confirmed attendee holding ``code``.

    Only codes of going, confirmed RSVPs validate; waitlisted or not-going codes never do.
    Checking the same code in twice is harmless: the second time reports ``already_checked_in``
    and leaves the original check-in time untouched.

    Raises:
        CheckInUnauthorizedError: the caller is neither the organizer nor holds the secret.
        InvalidCheckInCodeError: no confirmed attendee of this event has this code.
    """
    if not is_authorized(event, user, secret):
        logger.warning("check_in_unauthorized", event_id=str(event.pk))
        raise CheckInUnauthorizedError()

    code = (code or "").strip()
    if not code:
        raise InvalidCheckInCodeError()

    with transaction.atomic():
        rsvp = (
            EventRSVP.objects.select_for_update(of=("self",))
            .select_related("user")
            .confirmed()
            .filter(event=event, check_in_code=code)
            .first()
        )
        if rsvp is None:
            logger.info("check_in_invalid_code", event_id=str(event.pk))
            raise InvalidCheckInCodeError()

        if rsvp.checked_in_at is not None:
            logger.info("check_in_repeated", event_id=str(event.pk), rsvp_id=str(rsvp.pk))
            return CheckInResult(rsvp=rsvp, already_checked_in=True)

        rsvp.checked_in_at = timezone.now()
        rsvp.save(update_fields=["checked_in_at", "updated_at"])

    logger.info("check_in_completed", event_id=str(event.pk), rsvp_id=str(rsvp.pk))
    return CheckInResult(rsvp=rsvp, already_checked_in=False)
