from uuid import UUID

import structlog
from django.db import transaction
from django.db.models import F, QuerySet

from accounts.models import TurnoutUser
from events.models import Event
from payments.exceptions import EventNotPurchasableError
from payments.models import CartItem

logger = structlog.get_logger(__name__)


def list_cart(user: TurnoutUser) -> QuerySet[CartItem]:
    return CartItem.objects.filter(user=user).select_related("event")


@transaction.atomic
def add_to_cart(user: TurnoutUser, event: Event, quantity: int = 1) -> CartItem:
    """Add ``quantity`` seats for ``event``, incrementing an existing cart line."""
    if not event.is_purchasable:
        raise EventNotPurchasableError()
    item, created = CartItem.objects.select_for_update().get_or_create(
        user=user, event=event, defaults={"quantity": quantity}
    )
    if not created:
        CartItem.objects.filter(pk=item.pk).update(quantity=F("quantity") + quantity)
        item.refresh_from_db(fields=["quantity"])
    logger.info("cart_item_added", user_id=str(user.pk), event_id=str(event.pk), quantity=item.quantity)
    return item


def remove_from_cart(user: TurnoutUser, event_id: UUID) -> bool:
    deleted, _ = CartItem.objects.filter(user=user, event_id=event_id).delete()
    if deleted:
        logger.info("cart_item_removed", user_id=str(user.pk), event_id=str(event_id))
    return bool(deleted)
