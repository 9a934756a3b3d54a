import re
import uuid

from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class TurnoutUserQueryset(models.QuerySet["TurnoutUser"]):
    """Queryset for TurnoutUser."""


class TurnoutUserManager(UserManager["TurnoutUser"]):
    def get_queryset(self) -> TurnoutUserQueryset:
        """Get queryset for TurnoutUser."""
        return TurnoutUserQueryset(self.model)


class TurnoutUser(AbstractUser):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email_verified = models.BooleanField(default=False)
    stripe_customer_id = models.CharField(
        max_length=255, unique=True, null=True, blank=True, help_text="Stripe customer for this user"
    )

    objects = TurnoutUserManager()  # type: ignore[misc]

    class Meta:
        ordering = ["username"]

    @property
    def display_name(self) -> str:
        """Display name."""
        return self.get_full_name() or re.sub(r"(\W|_)+", " ", self.username.split("@")[0]).title()
