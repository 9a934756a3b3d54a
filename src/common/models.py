import typing as t
import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone


class TimeStampedModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        abstract = True

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Override the save method to call full_clean before saving."""
        self.full_clean()
        super().save(*args, **kwargs)


class IdempotencyRecordQuerySet(models.QuerySet["IdempotencyRecord"]):
    def live(self) -> t.Self:
        """Records whose TTL has not run out yet."""
        return self.filter(expires_at__gt=timezone.now())

    def expired(self) -> t.Self:
        """Records whose key may be claimed again."""
        return self.filter(expires_at__lte=timezone.now())


class IdempotencyRecord(TimeStampedModel):
    """A claimed Idempotency-Key for one route.

    A record is created PENDING when a request claims its key and becomes COMPLETED once the
    response is known. Completed records are replayed verbatim until ``expires_at``.
    """

    class State(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"

    route = models.CharField(max_length=255)
    key = models.CharField(max_length=255)
    state = models.CharField(max_length=16, choices=State.choices, default=State.PENDING)
    status_code = models.PositiveSmallIntegerField(null=True, blank=True)
    response_body = models.JSONField(null=True, blank=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="idempotency_records",
    )
    expires_at = models.DateTimeField(db_index=True)

    objects = IdempotencyRecordQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["route", "key"], name="unique_idempotency_route_key"),
        ]

    def __str__(self) -> str:
        return f"{self.route} [{self.key}] ({self.state})"

    @property
    def is_expired(self) -> bool:
        return self.expires_at <= timezone.now()
