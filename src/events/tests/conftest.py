import typing as t
from datetime import datetime, timedelta

import pytest

from accounts.models import TurnoutUser
from events.models import Event


class EventFactory:
    def __init__(self, organizer: TurnoutUser) -> None:
        self.organizer = organizer
        self.counter = 0

    def __call__(self, **kwargs: t.Any) -> Event:
        self.counter += 1
        kwargs.setdefault("name", f"Event {self.counter}")
        kwargs.setdefault("slug", f"event-{self.counter}")
        kwargs.setdefault("organizer", self.organizer)
        return Event.objects.create(**kwargs)


@pytest.fixture
def event_factory(organizer: TurnoutUser) -> EventFactory:
    return EventFactory(organizer)


@pytest.fixture
def event(event_factory: EventFactory, next_week: datetime) -> Event:
    """Two seats, with a waitlist."""
    return event_factory(capacity=2, waitlist_enabled=True, start=next_week, end=next_week + timedelta(hours=3))


@pytest.fixture
def no_waitlist_event(event_factory: EventFactory, next_week: datetime) -> Event:
    """One seat, no waitlist."""
    return event_factory(capacity=1, waitlist_enabled=False, start=next_week, end=next_week + timedelta(hours=3))


@pytest.fixture
def guests(user_factory: t.Callable[..., TurnoutUser]) -> list[TurnoutUser]:
    return [user_factory(username=f"guest{i}@example.com", email=f"guest{i}@example.com") for i in range(5)]
