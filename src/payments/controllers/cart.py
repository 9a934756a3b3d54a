from uuid import UUID

from ninja_extra import api_controller, route
from ninja_jwt.authentication import JWTAuth

from common.controllers import UserAwareController
from common.schema import ResponseMessage, ServiceErrorResponses
from common.throttling import WriteThrottle
from events.exceptions import EventNotFoundError
from events.models import Event
from payments import schema
from payments.models import CartItem
from payments.service import cart_service


@api_controller("/cart", auth=JWTAuth(), tags=["Cart"])
class CartController(UserAwareController):
    @route.get("", url_name="list_cart", response=list[schema.CartItemSchema])
    def list_cart(self) -> list[CartItem]:
        """The events in your cart, oldest first."""
        return list(cart_service.list_cart(self.user()))

    @route.post(
        "",
        url_name="add_to_cart",
        response={200: schema.CartItemSchema, **ServiceErrorResponses},
        throttle=WriteThrottle(),
    )
    def add_to_cart(self, payload: schema.CartItemCreateSchema) -> CartItem:
        """Add a paid event to your cart. Adding the same event again increases its quantity."""
        try:
            event = Event.objects.get(pk=payload.event_id)
        except Event.DoesNotExist as e:
            raise EventNotFoundError() from e
        return cart_service.add_to_cart(self.user(), event, payload.quantity)

    @route.delete(
        "/{uuid:event_id}",
        url_name="remove_from_cart",
        response={200: ResponseMessage, **ServiceErrorResponses},
        throttle=WriteThrottle(),
    )
    def remove_from_cart(self, event_id: UUID) -> ResponseMessage:
        """Remove an event from your cart. Removing an event that is not in the cart is not an error."""
        cart_service.remove_from_cart(self.user(), event_id)
        return ResponseMessage(message="Removed from cart.")
