"""Stripe webhook event handlers."""

import stripe
import structlog

from payments.service.checkout_service import EVENT_ORDER
from payments.service.reconciliation import PaymentReconciler

logger = structlog.get_logger(__name__)


class StripeEventHandler:
    """Routes verified Stripe events to the payment reconciler."""

    def __init__(self, event: stripe.Event, reconciler: PaymentReconciler | None = None):
        self.event = event
        self.reconciler = reconciler or PaymentReconciler()

    def handle(self) -> None:
        """Routes the event to the appropriate handler based on its type."""
        event_type = self.event.type
        handler_method = getattr(self, f"handle_{event_type.replace('.', '_')}", self.handle_unknown_event)
        handler_method(self.event)

    def handle_unknown_event(self, event: stripe.Event) -> None:
        """Log unhandled event types for future development."""
        logger.info("stripe_webhook_unhandled_event", event_type=event.type, event_id=event.id)

    @staticmethod
    def _order_id(session: stripe.StripeObject) -> str | None:
        metadata = session.get("metadata") or {}
        if metadata.get("type") != EVENT_ORDER:
            return None
        return metadata["order_id"]

    def handle_checkout_session_completed(self, event: stripe.Event) -> None:
        """Mark the order paid and admit the buyer.

        Sessions that are not event orders (e.g. subscription checkouts) are left to the subscription events.
        """
        session = event.data.object
        if session["payment_status"] not in {"paid", "no_payment_required"}:
            logger.warning(
                "stripe_session_unresolved_payment", session_id=session["id"], payment_status=session["payment_status"]
            )
            return
        if (order_id := self._order_id(session)) is None:
            logger.info("stripe_session_not_an_order", session_id=session["id"])
            return
        self.reconciler.on_checkout_completed(order_id, session)

    def handle_checkout_session_expired(self, event: stripe.Event) -> None:
        session = event.data.object
        if (order_id := self._order_id(session)) is not None:
            self.reconciler.on_checkout_expired(order_id)

    def handle_customer_subscription_created(self, event: stripe.Event) -> None:
        self.reconciler.on_subscription_event(event.data.object)

    def handle_customer_subscription_updated(self, event: stripe.Event) -> None:
        self.reconciler.on_subscription_event(event.data.object)

    def handle_customer_subscription_deleted(self, event: stripe.Event) -> None:
        """Stripe sends the final state, with ``status`` set to ``canceled``."""
        self.reconciler.on_subscription_event(event.data.object)
