from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import Field

from payments.models import CartItem
from payments.service.checkout_service import CheckoutOutcome


class CheckoutResponseSchema(Schema):
    url: str | None = None
    order_id: UUID | None = None
    already_purchased: bool = False

    @classmethod
    def from_outcome(cls, outcome: CheckoutOutcome) -> "CheckoutResponseSchema":
        return cls(
            url=outcome.url,
            order_id=outcome.order.pk if outcome.order else None,
            already_purchased=outcome.already_purchased,
        )


class SubscriptionCheckoutSchema(Schema):
    price_id: str | None = Field(None, description="Stripe price id; defaults to the configured subscription price")


class CartItemCreateSchema(Schema):
    event_id: UUID
    quantity: int = Field(1, ge=1, le=20)


class CartItemSchema(ModelSchema):
    event_id: UUID
    event_name: str
    unit_amount_cents: int
    currency: str

    class Meta:
        model = CartItem
        fields = ["id", "quantity", "created_at"]

    @staticmethod
    def resolve_event_id(obj: CartItem) -> UUID:
        return obj.event_id

    @staticmethod
    def resolve_event_name(obj: CartItem) -> str:
        return obj.event.name

    @staticmethod
    def resolve_unit_amount_cents(obj: CartItem) -> int:
        return obj.event.price_cents

    @staticmethod
    def resolve_currency(obj: CartItem) -> str:
        return obj.event.currency
