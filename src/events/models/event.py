import secrets
import typing as t

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models

from common.models import TimeStampedModel


def generate_check_in_secret() -> str:
    return secrets.token_urlsafe(24)


def default_currency() -> str:
    return str(settings.DEFAULT_CURRENCY)


class EventQuerySet(models.QuerySet["Event"]):
    def with_organizer(self) -> t.Self:
        """Select the organizer as well."""
        return self.select_related("organizer")


class Event(TimeStampedModel):
    """An event people can RSVP to or buy a seat for.

    ``capacity`` is the number of confirmed attendees the event admits; ``None`` means unlimited.
    The event row doubles as the lock row that serializes every capacity-affecting write for the event.
    """

    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    organizer = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="organized_events"
    )
    capacity = models.PositiveIntegerField(
        null=True, blank=True, help_text="Maximum confirmed attendees. Empty means unlimited."
    )
    waitlist_enabled = models.BooleanField(default=False)
    check_in_secret = models.CharField(max_length=64, default=generate_check_in_secret, editable=False)
    start = models.DateTimeField(null=True, blank=True, db_index=True)
    end = models.DateTimeField(null=True, blank=True)
    price_cents = models.PositiveIntegerField(
        default=0, help_text="Ticket price in the smallest currency unit. 0 is free."
    )
    currency = models.CharField(max_length=3, default=default_currency)

    objects = EventQuerySet.as_manager()

    class Meta:
        ordering = ["start", "name"]

    def __str__(self) -> str:
        return self.name

    def clean(self) -> None:
        """Validate the event's time window."""
        if self.start and self.end and self.end <= self.start:
            raise DjangoValidationError({"end": "The event must end after it starts."})
        self.currency = self.currency.lower()

    @property
    def is_purchasable(self) -> bool:
        return self.price_cents > 0

    @property
    def has_capacity_limit(self) -> bool:
        return self.capacity is not None
