import typing as t
from uuid import UUID

from django.conf import settings
from ninja.responses import Response
from ninja_extra import api_controller, route
from ninja_jwt.authentication import JWTAuth

from common.controllers import UserAwareController
from common.idempotency import execute_idempotently, get_idempotency_key
from common.schema import ServiceErrorResponses
from common.throttling import WriteThrottle, enforce_rate_limits
from events.exceptions import EventNotFoundError
from events.models import Event
from payments import schema
from payments.service import checkout_service

CheckoutResponse = tuple[int, schema.CheckoutResponseSchema] | Response


@api_controller("/checkout", auth=JWTAuth(), tags=["Checkout"], throttle=WriteThrottle())
class CheckoutController(UserAwareController):
    """Starts Stripe Checkout.

    Every route accepts an `Idempotency-Key` header. Retrying with the same key replays the first
    response instead of creating a second order or session.
    """

    def _limit(self) -> None:
        enforce_rate_limits(("checkout_user_minute", str(self.user().pk)))

    def _run(self, route_name: str, handler: t.Callable[[], checkout_service.CheckoutOutcome]) -> CheckoutResponse:
        return execute_idempotently(
            self.context.request,  # type: ignore[arg-type]
            route=route_name,
            user=self.user(),
            ttl_seconds=settings.CHECKOUT_IDEMPOTENCY_TTL_SECONDS,
            handler=lambda: (200, schema.CheckoutResponseSchema.from_outcome(handler())),
        )

    @route.post(
        "/events/{uuid:event_id}",
        url_name="checkout_event",
        response={200: schema.CheckoutResponseSchema, **ServiceErrorResponses},
    )
    def checkout_event(self, event_id: UUID) -> CheckoutResponse:
        """Pay for a seat at an event.

        Returns the Stripe Checkout URL, or `already_purchased: true` if you already paid. The seat is
        assigned when Stripe confirms the payment: confirmed if one is free, otherwise the waitlist.
        """
        self._limit()
        try:
            event = Event.objects.get(pk=event_id)
        except Event.DoesNotExist as e:
            raise EventNotFoundError() from e
        return self._run(
            f"POST:/checkout/events/{event_id}",
            lambda: checkout_service.begin_event_checkout(self.user(), event),
        )

    @route.post(
        "/cart",
        url_name="checkout_cart",
        response={200: schema.CheckoutResponseSchema, **ServiceErrorResponses},
    )
    def checkout_cart(self) -> CheckoutResponse:
        """Pay for every event in your cart in one Stripe Checkout. All items must share a currency."""
        self._limit()
        return self._run("POST:/checkout/cart", lambda: checkout_service.begin_cart_checkout(self.user()))

    @route.post(
        "/subscription",
        url_name="checkout_subscription",
        response={200: schema.CheckoutResponseSchema, **ServiceErrorResponses},
    )
    def checkout_subscription(self, payload: schema.SubscriptionCheckoutSchema) -> CheckoutResponse:
        """Start a subscription. The subscription becomes active once Stripe reports it."""
        self._limit()
        request_key = get_idempotency_key(self.context.request)  # type: ignore[arg-type]
        return self._run(
            "POST:/checkout/subscription",
            lambda: checkout_service.begin_subscription_checkout(self.user(), payload.price_id, request_key),
        )
