from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja_extra import NinjaExtraAPI

from accounts.controllers.account import AccountController
from common.exceptions import ServiceError
from common.schema import VersionResponse
from common.throttling import AnonDefaultThrottle, UserDefaultThrottle
from events.controllers.event_public import EVENT_PUBLIC_CONTROLLERS
from payments.controllers.cart import CartController
from payments.controllers.checkout import CheckoutController
from payments.controllers.stripe_webhook import StripeWebhookController

from .exception_handlers import handle_django_validation_error, handle_general_exception, handle_service_error

api = NinjaExtraAPI(
    title="Turnout API",
    docs_url="/docs",
    version=settings.VERSION,
    description=f"Turnout API {settings.VERSION}",
    app_name=f"turnout-api-{settings.VERSION}",
    urls_namespace="api",
    servers=[
        {"url": settings.SERVICE_URL, "description": settings.SERVICE_DESCRIPTION},
    ],
    throttle=[AnonDefaultThrottle(), UserDefaultThrottle()],
)


@api.get("/version", tags=["Version"], response={200: VersionResponse})
def version(request: HttpRequest) -> tuple[int, VersionResponse]:
    """Get the API version.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, VersionResponse(version=settings.VERSION)


api.register_controllers(
    # Account controllers
    AccountController,
    # Event controllers
    *EVENT_PUBLIC_CONTROLLERS,
    # Payment controllers
    CheckoutController,
    CartController,
    StripeWebhookController,
)

EXCEPTION_HANDLERS = {
    Exception: handle_general_exception,
    ValidationError: handle_django_validation_error,
    ServiceError: handle_service_error,
}

for exc, handler in EXCEPTION_HANDLERS.items():
    api.add_exception_handler(exc, handler)
