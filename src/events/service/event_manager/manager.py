"""EventManager for handling RSVP admission."""

import typing as t

import structlog
from django.contrib.auth.models import AnonymousUser
from django.db import transaction
from django.utils.translation import gettext as _

from accounts.models import TurnoutUser
from common import notifications
from events.exceptions import (
    EventFullError,
    EventNotFoundError,
    InvalidStatusError,
    SelfRSVPForbiddenError,
    TimeConflictError,
)
from events.models import Event, EventRSVP

from .enums import Reasons
from .types import AdmissionResult, AdmissionSnapshot
from .utils import ensure_check_in_code, next_waitlist_position
from .waitlist import WaitlistPromoter

logger = structlog.get_logger(__name__)

RsvpStatus = EventRSVP.RsvpStatus
AttendanceState = EventRSVP.AttendanceState


class EventManager:
    """The Event Manager Class.

    It decides whether a user gets a seat at an event. Every capacity-affecting write for an event runs
    in a transaction that first locks the event row, so concurrent requests for the same event are
    totally ordered and each one sees the committed outcome of the one before it. Seat counts are
    always recomputed from the RSVP rows under that lock.
    """

    def __init__(self, user: TurnoutUser, event: Event) -> None:
        """Initialize the EventManager."""
        self.user = user
        self.event = event

    @transaction.atomic
    def rsvp(self, answer: str) -> AdmissionResult:
        """RSVP to an event.

        Going is admitted against the event's capacity: the user is confirmed while seats are left,
        waitlisted once the event is full and the waitlist is enabled, and rejected otherwise. Maybe and
        declined are stored as-is; if that frees a seat, the waitlist is promoted.

        Returns:
            AdmissionResult

        Raises:
            InvalidStatusError, SelfRSVPForbiddenError, TimeConflictError, EventFullError, EventNotFoundError
        """
        status = self._parse_status(answer)
        if self.event.organizer_id == self.user.pk:
            raise SelfRSVPForbiddenError()

        event = self.event = self._lock_event()
        if status != RsvpStatus.DECLINED:
            self._assert_no_time_conflict(event)

        prior = EventRSVP.objects.filter(event=event, user=self.user).first()
        before = _standing(prior)
        if status == RsvpStatus.GOING:
            rsvp, reason = self._admit(event, prior, waitlist_allowed=event.waitlist_enabled)
        else:
            rsvp, reason = self._step_away(event, prior, status), Reasons.NOT_GOING

        promoted = WaitlistPromoter(event).promote()
        rsvp.refresh_from_db()
        if reason in (Reasons.WAITLISTED, Reasons.STILL_WAITLISTED) and rsvp.is_confirmed:
            reason = Reasons.CONFIRMED
        result = AdmissionResult(
            rsvp=rsvp, snapshot=build_snapshot(event, rsvp), reason=_(reason), promoted=promoted
        )
        logger.info(
            "rsvp_submitted",
            event_id=str(event.pk),
            user_id=str(self.user.pk),
            status=rsvp.status,
            attendance_state=rsvp.attendance_state,
            promoted=len(promoted),
        )
        self._notify(event, rsvp, before, promoted)
        return result

    @transaction.atomic
    def admit_paid(self) -> AdmissionResult:
        """Seat a user whose payment for the event has cleared.

        Payment is itself an admission request: capacity is re-checked now, since seats may have filled
        while the user was paying. A payer who finds the event full is waitlisted, even when the event's
        waitlist is disabled, because the charge already succeeded.
        """
        event = self.event = self._lock_event()
        prior = EventRSVP.objects.filter(event=event, user=self.user).first()
        before = _standing(prior)
        rsvp, reason = self._admit(event, prior, waitlist_allowed=True)
        promoted = WaitlistPromoter(event).promote()
        rsvp.refresh_from_db()
        if reason in (Reasons.WAITLISTED, Reasons.STILL_WAITLISTED) and rsvp.is_confirmed:
            reason = Reasons.CONFIRMED
        logger.info(
            "paid_admission",
            event_id=str(event.pk),
            user_id=str(self.user.pk),
            attendance_state=rsvp.attendance_state,
            waitlist_enabled=event.waitlist_enabled,
        )
        self._notify(event, rsvp, before, promoted, notify_submitter=False)
        return AdmissionResult(rsvp=rsvp, snapshot=build_snapshot(event, rsvp), reason=_(reason), promoted=promoted)

    def _parse_status(self, answer: str) -> EventRSVP.RsvpStatus:
        try:
            return RsvpStatus(str(answer).strip().lower())
        except ValueError as e:
            raise InvalidStatusError() from e

    def _lock_event(self) -> Event:
        """Take the event's lock row for the rest of the transaction."""
        try:
            return Event.objects.select_for_update().get(pk=self.event.pk)
        except Event.DoesNotExist as e:
            raise EventNotFoundError() from e

    def _assert_no_time_conflict(self, event: Event) -> None:
        """Reject overlapping going/maybe RSVPs of the same user."""
        if not event.start or not event.end:
            return
        overlapping = (
            EventRSVP.objects.filter(
                user=self.user,
                status__in=[RsvpStatus.GOING, RsvpStatus.MAYBE],
                event__start__lt=event.end,
                event__end__gt=event.start,
            )
            .exclude(event=event)
            .exists()
        )
        if overlapping:
            raise TimeConflictError()

    def _admit(
        self, event: Event, prior: EventRSVP | None, *, waitlist_allowed: bool
    ) -> tuple[EventRSVP, Reasons]:
        """The going decision. The caller holds the event lock."""
        if prior is not None and prior.is_confirmed:
            return prior, Reasons.ALREADY_CONFIRMED
        if prior is not None and prior.is_waitlisted:
            # Keeps its place; the promoter seats it once it is at the front.
            return prior, Reasons.STILL_WAITLISTED

        if self._has_free_seat(event):
            return self._save(prior, attendance_state=AttendanceState.CONFIRMED), Reasons.CONFIRMED
        if waitlist_allowed:
            return self._save(prior, attendance_state=AttendanceState.WAITLISTED), Reasons.WAITLISTED

        logger.info("rsvp_rejected_event_full", event_id=str(event.pk), user_id=str(self.user.pk))
        raise EventFullError()

    def _has_free_seat(self, event: Event) -> bool:
        if event.capacity is None:
            return True
        rsvps = EventRSVP.objects.filter(event=event)
        if rsvps.waitlisted().exists():
            # Free seats belong to the people already queued.
            return False
        return rsvps.confirmed().count() < event.capacity

    def _save(self, prior: EventRSVP | None, *, attendance_state: EventRSVP.AttendanceState) -> EventRSVP:
        rsvp = prior or EventRSVP(event=self.event, user=self.user)
        rsvp.status = RsvpStatus.GOING
        rsvp.attendance_state = attendance_state
        if attendance_state == AttendanceState.CONFIRMED:
            rsvp.waitlist_position = None
            ensure_check_in_code(rsvp)
        else:
            rsvp.waitlist_position = next_waitlist_position(self.event)
        rsvp.save()
        return rsvp

    def _step_away(self, event: Event, prior: EventRSVP | None, status: EventRSVP.RsvpStatus) -> EventRSVP:
        rsvp = prior or EventRSVP(event=event, user=self.user)
        rsvp.status = status
        rsvp.attendance_state = None
        rsvp.waitlist_position = None
        rsvp.save()
        return rsvp

    def _notify(
        self,
        event: Event,
        rsvp: EventRSVP,
        before: tuple[str, str | None] | None,
        promoted: list[EventRSVP],
        notify_submitter: bool = True,
    ) -> None:
        """Queue notifications for after the commit. Delivery is best-effort."""
        if notify_submitter and before != _standing(rsvp):
            if rsvp.is_confirmed:
                template = "rsvp_confirmed"
            elif rsvp.is_waitlisted:
                template = "rsvp_waitlisted"
            else:
                template = "rsvp_updated"
            notifications.dispatch(self.user.email, template, notification_data(event, rsvp))
        for promoted_rsvp in promoted:
            if promoted_rsvp.pk == rsvp.pk:
                continue
            notifications.dispatch(
                promoted_rsvp.user.email, "waitlist_promoted", notification_data(event, promoted_rsvp)
            )


def _standing(rsvp: EventRSVP | None) -> tuple[str, str | None] | None:
    if rsvp is None:
        return None
    return rsvp.status, rsvp.attendance_state


def notification_data(event: Event, rsvp: EventRSVP) -> dict[str, t.Any]:
    return {
        "user_name": rsvp.user.display_name,
        "event_name": event.name,
        "event_slug": event.slug,
        "status": rsvp.status,
        "check_in_code": rsvp.check_in_code if rsvp.is_confirmed else None,
    }


def build_snapshot(event: Event, rsvp: EventRSVP | None) -> AdmissionSnapshot:
    """Aggregate seat counts for ``event`` and the standing of ``rsvp``."""
    rsvps = EventRSVP.objects.filter(event=event)
    confirmed = rsvps.confirmed().count()
    waitlisted = rsvps.waitlisted().count()
    spots_left = None if event.capacity is None else max(0, event.capacity - confirmed)

    snapshot = AdmissionSnapshot(
        event_id=event.pk,
        capacity=event.capacity,
        waitlist_enabled=event.waitlist_enabled,
        confirmed_count=confirmed,
        waitlisted_count=waitlisted,
        is_full=spots_left == 0,
        spots_left=spots_left,
    )
    if rsvp is None:
        return snapshot

    snapshot.status = EventRSVP.RsvpStatus(rsvp.status)
    snapshot.attendance_state = EventRSVP.AttendanceState(rsvp.attendance_state) if rsvp.attendance_state else None
    if rsvp.is_waitlisted:
        ahead = rsvps.waitlisted().filter(waitlist_position__lt=rsvp.waitlist_position).count()
        snapshot.waitlist_position = ahead + 1
    if rsvp.is_confirmed:
        snapshot.check_in_code = rsvp.check_in_code
    return snapshot


def get_admission_snapshot(event: Event, user: TurnoutUser | AnonymousUser | None = None) -> AdmissionSnapshot:
    """Read-only view of an event's seats and, for an authenticated user, their own RSVP."""
    rsvp = None
    if user is not None and user.is_authenticated:
        rsvp = EventRSVP.objects.filter(event=event, user=user).first()
    return build_snapshot(event, rsvp)
