import stripe
import structlog
from django.conf import settings
from django.http import HttpRequest
from ninja.errors import HttpError
from ninja_extra import api_controller, route

from payments.exceptions import OrderNotFoundError
from payments.service import stripe_webhooks

logger = structlog.get_logger(__name__)


@api_controller("/stripe", auth=None, tags=["Stripe"])
class StripeWebhookController:
    @route.post("/webhook", url_name="stripe_webhook", response={200: None})
    def handle_webhook(self, request: HttpRequest) -> tuple[int, None]:
        """Handle incoming Stripe webhooks.

        Verification failures answer 400. Events that can never succeed (unknown orders, malformed payloads)
        are acknowledged with 200 so Stripe stops retrying. Any other failure surfaces as 500 and is retried.
        """
        payload = request.body
        sig_header = request.META.get("HTTP_STRIPE_SIGNATURE")
        if not sig_header:
            raise HttpError(400, "Invalid Stripe signature")
        try:
            event = stripe.Webhook.construct_event(payload, sig_header, settings.STRIPE_WEBHOOK_SECRET)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("stripe_webhook_verification_failed", error=str(e))
            raise HttpError(400, "Invalid Stripe signature") from e

        try:
            stripe_webhooks.StripeEventHandler(event).handle()
        except OrderNotFoundError:
            logger.warning("stripe_webhook_unknown_order", event_id=event.id, event_type=event.type)
        except (KeyError, ValueError, TypeError) as e:
            logger.warning("stripe_webhook_malformed_payload", event_id=event.id, event_type=event.type, error=str(e))

        return 200, None
