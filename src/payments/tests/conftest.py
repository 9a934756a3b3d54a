import typing as t
from unittest.mock import MagicMock, patch

import pytest
import stripe

from accounts.models import TurnoutUser
from events.models import Event


@pytest.fixture
def paid_event_factory(organizer: TurnoutUser) -> t.Callable[..., Event]:
    counter = iter(range(1, 1000))

    def factory(**kwargs: t.Any) -> Event:
        n = next(counter)
        kwargs.setdefault("name", f"Paid Event {n}")
        kwargs.setdefault("slug", f"paid-event-{n}")
        kwargs.setdefault("organizer", organizer)
        kwargs.setdefault("capacity", 2)
        kwargs.setdefault("price_cents", 2500)
        kwargs.setdefault("currency", "usd")
        return Event.objects.create(**kwargs)

    return factory


@pytest.fixture
def paid_event(paid_event_factory: t.Callable[..., Event]) -> Event:
    return paid_event_factory()


@pytest.fixture
def mock_customer_create() -> t.Iterator[MagicMock]:
    with patch("stripe.Customer.create") as mock_create:
        mock_create.return_value = MagicMock(id="cus_test_123")
        yield mock_create


@pytest.fixture
def mock_session_create(mock_customer_create: MagicMock) -> t.Iterator[MagicMock]:
    with patch("stripe.checkout.Session.create") as mock_create:
        mock_create.return_value = MagicMock(id="cs_test_123", url="https://checkout.stripe.com/c/pay/cs_test_123")
        yield mock_create


@pytest.fixture
def stripe_event() -> t.Callable[..., MagicMock]:
    """Build a verified Stripe event whose payload is a plain dict."""

    def factory(event_type: str, obj: dict[str, t.Any], event_id: str = "evt_test_1") -> MagicMock:
        event = MagicMock(spec=stripe.Event)
        event.id = event_id
        event.type = event_type
        event.data = MagicMock()
        event.data.object = obj
        return event

    return factory
