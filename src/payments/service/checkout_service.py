"""Starting Stripe Checkout for event seats, carts and subscriptions.

Orders are created PENDING together with the Checkout Session in one transaction. When Stripe fails the
transaction rolls back, so no Order is left behind and the caller can retry with the same idempotency key.
"""

import typing as t
from dataclasses import dataclass

import stripe
import structlog
from django.conf import settings
from django.db import transaction
from stripe.checkout import Session

from accounts.models import TurnoutUser
from common.exceptions import ExternalDependencyError
from common.idempotency import stable_idempotency_key
from events.exceptions import EventFullError, SelfRSVPForbiddenError
from events.models import Event
from events.service.event_manager import get_admission_snapshot
from payments.exceptions import EmptyCartError, EventNotPurchasableError, MissingPriceError, MixedCurrenciesError
from payments.models import CartItem, Order, OrderItem

logger = structlog.get_logger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY

EVENT_ORDER = "EVENT_ORDER"
SUBSCRIPTION = "SUBSCRIPTION"


@dataclass(frozen=True)
class CheckoutOutcome:
    url: str | None = None
    order: Order | None = None
    already_purchased: bool = False


def get_or_create_customer(user: TurnoutUser) -> str:
    """Return the user's Stripe customer id, creating the customer on first use."""
    if user.stripe_customer_id:
        return user.stripe_customer_id
    try:
        customer = stripe.Customer.create(
            email=user.email or None,
            name=user.get_full_name() or None,
            metadata={"user_id": str(user.pk)},
            idempotency_key=stable_idempotency_key({"purpose": "customer", "user_id": str(user.pk)}),
        )
    except stripe.StripeError as e:
        logger.error("stripe_customer_create_failed", user_id=str(user.pk), error=str(e))
        raise ExternalDependencyError() from e
    user.stripe_customer_id = customer.id
    user.save(update_fields=["stripe_customer_id"])
    logger.info("stripe_customer_created", user_id=str(user.pk), customer_id=customer.id)
    return t.cast(str, customer.id)


def _create_checkout_session(**session_data: t.Any) -> Session:
    """Create a Stripe Checkout Session.

    Raises:
        ExternalDependencyError: If the Stripe API call fails.
    """
    try:
        return Session.create(**session_data)
    except stripe.StripeError as e:
        logger.error("stripe_checkout_session_failed", error=str(e), metadata=session_data.get("metadata"))
        raise ExternalDependencyError() from e


def _already_purchased(user: TurnoutUser, events: t.Iterable[Event]) -> set[t.Any]:
    return set(
        OrderItem.objects.filter(order__user=user, order__status=Order.OrderStatus.PAID, event__in=list(events))
        .values_list("event_id", flat=True)
    )


def _assert_purchasable(user: TurnoutUser, event: Event) -> None:
    if not event.is_purchasable:
        raise EventNotPurchasableError()
    if event.organizer_id == user.pk:
        raise SelfRSVPForbiddenError()
    if not event.waitlist_enabled and get_admission_snapshot(event).is_full:
        raise EventFullError()


def _order_urls(order: Order, path: str) -> dict[str, str]:
    base = f"{settings.FRONTEND_BASE_URL}{path}"
    return {
        "success_url": f"{base}?checkout=success&order={order.pk}",
        "cancel_url": f"{base}?checkout=cancel&order={order.pk}",
    }


def _start_order_checkout(
    user: TurnoutUser, items: list[tuple[Event, int]], currency: str, return_path: str
) -> CheckoutOutcome:
    customer_id = get_or_create_customer(user)
    with transaction.atomic():
        order = Order.objects.create(
            user=user,
            status=Order.OrderStatus.PENDING,
            currency=currency,
            total_cents=sum(event.price_cents * quantity for event, quantity in items),
        )
        for event, quantity in items:
            OrderItem.objects.create(order=order, event=event, unit_amount_cents=event.price_cents, quantity=quantity)

        metadata = {"type": EVENT_ORDER, "order_id": str(order.pk), "user_id": str(user.pk)}
        session = _create_checkout_session(
            mode="payment",
            customer=customer_id,
            line_items=[
                {
                    "price_data": {
                        "currency": currency,
                        "unit_amount": event.price_cents,
                        "product_data": {"name": event.name, "metadata": {"event_id": str(event.pk)}},
                    },
                    "quantity": quantity,
                }
                for event, quantity in items
            ],
            metadata=metadata,
            payment_intent_data={"metadata": metadata},
            idempotency_key=stable_idempotency_key(
                {"purpose": "event_checkout", "user_id": str(user.pk), "order_id": str(order.pk)}
            ),
            **_order_urls(order, return_path),
        )
        order.stripe_checkout_session_id = session.id
        order.save(update_fields=["stripe_checkout_session_id", "updated_at"])

    logger.info(
        "checkout_started",
        order_id=str(order.pk),
        user_id=str(user.pk),
        session_id=session.id,
        total_cents=order.total_cents,
        currency=currency,
    )
    return CheckoutOutcome(url=session.url, order=order)


def begin_event_checkout(user: TurnoutUser, event: Event) -> CheckoutOutcome:
    """Start paying for one seat at ``event``.

    Raises:
        EventNotPurchasableError, SelfRSVPForbiddenError, EventFullError, ExternalDependencyError
    """
    _assert_purchasable(user, event)
    if _already_purchased(user, [event]):
        logger.info("checkout_already_purchased", user_id=str(user.pk), event_id=str(event.pk))
        return CheckoutOutcome(already_purchased=True)
    return _start_order_checkout(user, [(event, 1)], event.currency, f"/events/{event.slug}")


def begin_cart_checkout(user: TurnoutUser) -> CheckoutOutcome:
    """Start paying for every purchasable event in the user's cart.

    Events the user already paid for are left out; if nothing is left, the outcome is ``already_purchased``.

    Raises:
        EmptyCartError, MixedCurrenciesError, SelfRSVPForbiddenError, EventFullError, ExternalDependencyError
    """
    cart = [item for item in CartItem.objects.filter(user=user).select_related("event") if item.event.is_purchasable]
    if not cart:
        raise EmptyCartError()
    currencies = {item.event.currency for item in cart}
    if len(currencies) > 1:
        raise MixedCurrenciesError()
    for item in cart:
        _assert_purchasable(user, item.event)

    paid = _already_purchased(user, [item.event for item in cart])
    items = [(item.event, item.quantity) for item in cart if item.event_id not in paid]
    if not items:
        return CheckoutOutcome(already_purchased=True)
    return _start_order_checkout(user, items, currencies.pop(), "/cart")


def begin_subscription_checkout(user: TurnoutUser, price_id: str | None, request_key: str | None) -> CheckoutOutcome:
    """Start a subscription-mode Checkout Session.

    Args:
        user: The subscriber.
        price_id: The Stripe price; defaults to ``STRIPE_SUBSCRIPTION_PRICE_ID``.
        request_key: The request's idempotency key. Retries of the same request reuse the Stripe session,
            while a later request (e.g. re-subscribing after a cancellation) gets a new one.

    Raises:
        MissingPriceError, ExternalDependencyError
    """
    price_id = price_id or settings.STRIPE_SUBSCRIPTION_PRICE_ID
    if not price_id:
        raise MissingPriceError()
    customer_id = get_or_create_customer(user)
    metadata = {"type": SUBSCRIPTION, "user_id": str(user.pk), "price_id": price_id}
    session_data: dict[str, t.Any] = {
        "mode": "subscription",
        "customer": customer_id,
        "line_items": [{"price": price_id, "quantity": 1}],
        "success_url": f"{settings.FRONTEND_BASE_URL}/profile?subscription=success",
        "cancel_url": f"{settings.FRONTEND_BASE_URL}/profile?subscription=cancel",
        "metadata": metadata,
        "subscription_data": {"metadata": metadata},
    }
    if request_key:
        session_data["idempotency_key"] = stable_idempotency_key(
            {"purpose": "subscription_checkout", "user_id": str(user.pk), "request_key": request_key}
        )
    session = _create_checkout_session(**session_data)
    logger.info("subscription_checkout_started", user_id=str(user.pk), session_id=session.id, price_id=price_id)
    return CheckoutOutcome(url=session.url)
