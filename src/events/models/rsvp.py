import secrets
import typing as t

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models

from common.models import TimeStampedModel


def generate_check_in_code() -> str:
    return secrets.token_urlsafe(9)


class EventRSVPQuerySet(models.QuerySet["EventRSVP"]):
    """Custom queryset for EventRSVP model."""

    def with_user(self) -> t.Self:
        """Select the related user."""
        return self.select_related("user")

    def confirmed(self) -> t.Self:
        """Going and holding a seat."""
        return self.filter(status=EventRSVP.RsvpStatus.GOING, attendance_state=EventRSVP.AttendanceState.CONFIRMED)

    def waitlisted(self) -> t.Self:
        """Going and queued for a seat."""
        return self.filter(status=EventRSVP.RsvpStatus.GOING, attendance_state=EventRSVP.AttendanceState.WAITLISTED)

    def in_waitlist_order(self) -> t.Self:
        """First come, first served."""
        return self.waitlisted().order_by("waitlist_position", "created_at", "pk")


class EventRSVP(TimeStampedModel):
    class RsvpStatus(models.TextChoices):
        GOING = "going", "Going"
        MAYBE = "maybe", "Maybe"
        DECLINED = "declined", "Declined"

    class AttendanceState(models.TextChoices):
        CONFIRMED = "confirmed", "Confirmed"
        WAITLISTED = "waitlisted", "Waitlisted"

    event = models.ForeignKey("events.Event", on_delete=models.CASCADE, related_name="rsvps")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="rsvps")
    status = models.CharField(max_length=20, choices=RsvpStatus.choices, db_index=True)
    attendance_state = models.CharField(
        max_length=20, choices=AttendanceState.choices, null=True, blank=True, db_index=True
    )
    check_in_code = models.CharField(max_length=32, unique=True, null=True, blank=True, editable=False)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    waitlist_position = models.PositiveIntegerField(null=True, blank=True)

    objects = EventRSVPQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["event", "user"],
                name="unique_event_user",
            )
        ]

    def __str__(self) -> str:
        return f"RSVP: {self.user_id} -> {self.event_id} ({self.status}/{self.attendance_state})"

    def clean(self) -> None:
        """Attendance is only meaningful for people who are going."""
        if self.status == self.RsvpStatus.GOING and self.attendance_state is None:
            raise DjangoValidationError({"attendance_state": "Going RSVPs must be confirmed or waitlisted."})
        if self.status != self.RsvpStatus.GOING and self.attendance_state is not None:
            raise DjangoValidationError({"attendance_state": "Only going RSVPs have an attendance state."})

    @property
    def is_confirmed(self) -> bool:
        return self.status == self.RsvpStatus.GOING and self.attendance_state == self.AttendanceState.CONFIRMED

    @property
    def is_waitlisted(self) -> bool:
        return self.status == self.RsvpStatus.GOING and self.attendance_state == self.AttendanceState.WAITLISTED
