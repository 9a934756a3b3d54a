import typing as t

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from common.models import TimeStampedModel


class OrderQuerySet(models.QuerySet["Order"]):
    def paid(self) -> t.Self:
        return self.filter(status=Order.OrderStatus.PAID)

    def with_items(self) -> t.Self:
        """Prefetch items and their events."""
        return self.select_related("user").prefetch_related("items__event")


class Order(TimeStampedModel):
    """A purchase of one or more event seats.

    Orders are created PENDING when checkout starts. Only Stripe webhooks move them on.
    """

    class OrderStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"
        CANCELED = "canceled", "Canceled"
        REFUNDED = "refunded", "Refunded"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="orders")
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING, db_index=True)
    total_cents = models.PositiveIntegerField()
    currency = models.CharField(max_length=3)
    stripe_checkout_session_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    stripe_payment_intent_id = models.CharField(max_length=255, null=True, blank=True, db_index=True)

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Order {self.pk} ({self.status})"


class OrderItem(TimeStampedModel):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    event = models.ForeignKey("events.Event", on_delete=models.PROTECT, related_name="order_items")
    unit_amount_cents = models.PositiveIntegerField()
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["order", "event"], name="unique_order_event"),
        ]

    def __str__(self) -> str:
        return f"{self.quantity} x {self.event_id} ({self.order_id})"

    @property
    def amount_cents(self) -> int:
        return self.unit_amount_cents * self.quantity


class CartItem(TimeStampedModel):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="cart_items")
    event = models.ForeignKey("events.Event", on_delete=models.CASCADE, related_name="cart_items")
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(fields=["user", "event"], name="unique_cart_user_event"),
        ]

    def __str__(self) -> str:
        return f"Cart: {self.user_id} -> {self.event_id} x{self.quantity}"


class Subscription(TimeStampedModel):
    """Local projection of a user's Stripe subscription, kept current by webhooks."""

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="subscription")
    stripe_subscription_id = models.CharField(max_length=255, unique=True)
    stripe_customer_id = models.CharField(max_length=255, blank=True, db_index=True)
    status = models.CharField(max_length=32, help_text="Stripe subscription status, e.g. active, past_due, canceled")
    price_id = models.CharField(max_length=255, blank=True)
    current_period_end = models.DateTimeField(null=True, blank=True)
    cancel_at_period_end = models.BooleanField(default=False)

    def __str__(self) -> str:
        return f"Subscription {self.stripe_subscription_id} ({self.status})"

    @property
    def is_active(self) -> bool:
        return self.status in {"active", "trialing"}
