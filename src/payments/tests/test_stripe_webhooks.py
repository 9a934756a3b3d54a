"""Tests for routing Stripe events to the reconciler."""

import typing as t
from unittest.mock import MagicMock

import pytest

from payments.service.stripe_webhooks import StripeEventHandler

SESSION = {"id": "cs_1", "payment_status": "paid", "metadata": {"type": "EVENT_ORDER", "order_id": "order-1"}}


@pytest.fixture
def reconciler() -> MagicMock:
    return MagicMock()


def test_checkout_completed(reconciler: MagicMock, stripe_event: t.Callable[..., MagicMock]) -> None:
    StripeEventHandler(stripe_event("checkout.session.completed", SESSION), reconciler).handle()

    reconciler.on_checkout_completed.assert_called_once_with("order-1", SESSION)


def test_unpaid_session_is_ignored(reconciler: MagicMock, stripe_event: t.Callable[..., MagicMock]) -> None:
    session = {**SESSION, "payment_status": "unpaid"}

    StripeEventHandler(stripe_event("checkout.session.completed", session), reconciler).handle()

    reconciler.on_checkout_completed.assert_not_called()


def test_subscription_session_is_not_an_order(
    reconciler: MagicMock, stripe_event: t.Callable[..., MagicMock]
) -> None:
    session = {**SESSION, "metadata": {"type": "SUBSCRIPTION", "user_id": "u"}}

    StripeEventHandler(stripe_event("checkout.session.completed", session), reconciler).handle()

    reconciler.on_checkout_completed.assert_not_called()


def test_order_session_without_order_id_is_malformed(
    reconciler: MagicMock, stripe_event: t.Callable[..., MagicMock]
) -> None:
    session = {**SESSION, "metadata": {"type": "EVENT_ORDER"}}

    with pytest.raises(KeyError):
        StripeEventHandler(stripe_event("checkout.session.completed", session), reconciler).handle()


def test_checkout_expired(reconciler: MagicMock, stripe_event: t.Callable[..., MagicMock]) -> None:
    StripeEventHandler(stripe_event("checkout.session.expired", SESSION), reconciler).handle()

    reconciler.on_checkout_expired.assert_called_once_with("order-1")


@pytest.mark.parametrize(
    "event_type",
    ["customer.subscription.created", "customer.subscription.updated", "customer.subscription.deleted"],
)
def test_subscription_events(
    reconciler: MagicMock, stripe_event: t.Callable[..., MagicMock], event_type: str
) -> None:
    subscription = {"id": "sub_1", "status": "active"}

    StripeEventHandler(stripe_event(event_type, subscription), reconciler).handle()

    reconciler.on_subscription_event.assert_called_once_with(subscription)


def test_unknown_event_type_is_logged_only(reconciler: MagicMock, stripe_event: t.Callable[..., MagicMock]) -> None:
    StripeEventHandler(stripe_event("invoice.paid", {}), reconciler).handle()

    assert reconciler.method_calls == []
