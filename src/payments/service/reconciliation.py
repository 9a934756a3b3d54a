"""Projection of Stripe outcomes onto orders, seats and subscriptions.

Every method is safe to call repeatedly with the same input: Stripe delivers webhooks at least once.
"""

import typing as t
import uuid
from datetime import UTC, datetime

import structlog
from django.db import transaction

from accounts.models import TurnoutUser
from common import notifications
from events.service.event_manager import EventManager
from payments.exceptions import OrderNotFoundError
from payments.models import CartItem, Order, Subscription

logger = structlog.get_logger(__name__)


def _parse_order_id(order_id: str) -> uuid.UUID:
    return uuid.UUID(str(order_id))


def _format_amount(cents: int) -> str:
    return f"{cents / 100:.2f}"


class PaymentReconciler:
    @transaction.atomic
    def on_checkout_completed(self, order_id: str, session: t.Mapping[str, t.Any]) -> Order:
        """Mark the order paid and admit its owner to every purchased event.

        Raises:
            OrderNotFoundError: If no order matches ``order_id``.
        """
        try:
            order = Order.objects.select_for_update().select_related("user").get(pk=_parse_order_id(order_id))
        except (Order.DoesNotExist, ValueError) as e:
            raise OrderNotFoundError() from e

        if order.status == Order.OrderStatus.PAID:
            logger.warning("stripe_webhook_duplicate_checkout_completed", order_id=str(order.pk))
            return order

        order.status = Order.OrderStatus.PAID
        order.stripe_checkout_session_id = session.get("id") or order.stripe_checkout_session_id
        order.stripe_payment_intent_id = session.get("payment_intent")
        order.save(update_fields=["status", "stripe_checkout_session_id", "stripe_payment_intent_id", "updated_at"])

        # Lock events in a fixed order.
        items = list(order.items.select_related("event").order_by("event_id"))
        CartItem.objects.filter(user=order.user, event_id__in=[item.event_id for item in items]).delete()

        receipt_lines = []
        for item in items:
            result = EventManager(order.user, item.event).admit_paid()
            receipt_lines.append(
                {
                    "event_name": item.event.name,
                    "quantity": item.quantity,
                    "status": str(result.rsvp.attendance_state),
                }
            )

        notifications.dispatch(
            order.user.email,
            "purchase_receipt",
            {
                "user_name": order.user.display_name,
                "order_id": str(order.pk),
                "items": receipt_lines,
                "total": _format_amount(order.total_cents),
                "currency": order.currency.upper(),
            },
        )
        logger.info("order_paid", order_id=str(order.pk), user_id=str(order.user_id), item_count=len(items))
        return order

    def on_checkout_expired(self, order_id: str) -> int:
        """Cancel a still-pending order. Returns the number of orders changed."""
        updated = Order.objects.filter(pk=_parse_order_id(order_id), status=Order.OrderStatus.PENDING).update(
            status=Order.OrderStatus.CANCELED
        )
        logger.info("order_checkout_expired", order_id=order_id, canceled=bool(updated))
        return updated

    def _resolve_user(self, subscription: t.Mapping[str, t.Any]) -> TurnoutUser | None:
        metadata = subscription.get("metadata") or {}
        if user_id := metadata.get("user_id"):
            try:
                user = TurnoutUser.objects.filter(pk=uuid.UUID(str(user_id))).first()
            except ValueError:
                user = None
            if user is not None:
                return user
        if customer_id := subscription.get("customer"):
            return TurnoutUser.objects.filter(stripe_customer_id=customer_id).first()
        return None

    def on_subscription_event(self, subscription: t.Mapping[str, t.Any]) -> Subscription | None:
        """Upsert the local subscription projection from a Stripe subscription object."""
        user = self._resolve_user(subscription)
        if user is None:
            logger.warning(
                "stripe_subscription_user_not_found",
                subscription_id=subscription.get("id"),
                customer_id=subscription.get("customer"),
            )
            return None

        # Newer API versions moved the billing period onto the subscription items.
        items = (subscription.get("items") or {}).get("data") or []
        period_end = subscription.get("current_period_end") or (items[0].get("current_period_end") if items else None)
        price_id = (items[0].get("price") or {}).get("id", "") if items else ""

        projection, created = Subscription.objects.update_or_create(
            user=user,
            defaults={
                "stripe_subscription_id": subscription["id"],
                "stripe_customer_id": subscription.get("customer") or "",
                "status": subscription["status"],
                "price_id": price_id,
                "current_period_end": datetime.fromtimestamp(period_end, tz=UTC) if period_end else None,
                "cancel_at_period_end": bool(subscription.get("cancel_at_period_end")),
            },
        )
        logger.info(
            "subscription_synced",
            user_id=str(user.pk),
            subscription_id=projection.stripe_subscription_id,
            status=projection.status,
            created=created,
        )
        return projection
