from common.exceptions import InvalidInputError, NotFoundError


class OrderNotFoundError(NotFoundError):
    code = "order_not_found"
    default_message = "Order not found."


class EventNotPurchasableError(InvalidInputError):
    code = "event_not_purchasable"
    default_message = "This event is not purchasable."


class EmptyCartError(InvalidInputError):
    code = "empty_cart"
    default_message = "Your cart has no purchasable items."


class MixedCurrenciesError(InvalidInputError):
    code = "mixed_currencies"
    default_message = "All items in a checkout must use the same currency."


class MissingPriceError(InvalidInputError):
    code = "missing_price"
    default_message = "No subscription price is configured."
