"""Concurrent admissions against one event.

Needs a database with row locks, so these only run on PostgreSQL.
"""

import threading
import typing as t

import pytest
from django.db import connection

from accounts.models import TurnoutUser
from events.exceptions import EventFullError
from events.models import Event, EventRSVP
from events.service.event_manager import EventManager

pytestmark = [
    pytest.mark.django_db(transaction=True),
    pytest.mark.skipif(connection.vendor != "postgresql", reason="requires SELECT ... FOR UPDATE"),
]


def _race(event: Event, users: list[TurnoutUser], action: t.Callable[[EventManager], t.Any]) -> list[BaseException]:
    barrier = threading.Barrier(len(users))
    errors: list[BaseException] = []

    def run(user: TurnoutUser) -> None:
        try:
            barrier.wait()
            action(EventManager(user, event))
        except BaseException as e:  # noqa: BLE001
            errors.append(e)
        finally:
            connection.close()

    threads = [threading.Thread(target=run, args=(user,)) for user in users]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return errors


def _users(user_factory: t.Callable[..., TurnoutUser], count: int) -> list[TurnoutUser]:
    return [user_factory(username=f"racer{i}@example.com", email=f"racer{i}@example.com") for i in range(count)]


def test_simultaneous_going_never_overbooks(
    event_factory: t.Callable[..., Event], user_factory: t.Callable[..., TurnoutUser]
) -> None:
    event = event_factory(capacity=3, waitlist_enabled=True)
    users = _users(user_factory, 12)

    errors = _race(event, users, lambda manager: manager.rsvp("going"))

    assert errors == []
    rsvps = EventRSVP.objects.filter(event=event)
    assert rsvps.confirmed().count() == 3
    assert rsvps.waitlisted().count() == 9
    positions = list(rsvps.waitlisted().values_list("waitlist_position", flat=True))
    assert len(set(positions)) == 9


def test_simultaneous_going_without_waitlist(
    event_factory: t.Callable[..., Event], user_factory: t.Callable[..., TurnoutUser]
) -> None:
    event = event_factory(capacity=2, waitlist_enabled=False)
    users = _users(user_factory, 8)

    errors = _race(event, users, lambda manager: manager.rsvp("going"))

    assert len(errors) == 6
    assert all(isinstance(e, EventFullError) for e in errors)
    assert EventRSVP.objects.filter(event=event).confirmed().count() == 2


def test_simultaneous_paid_admissions(
    event_factory: t.Callable[..., Event], user_factory: t.Callable[..., TurnoutUser]
) -> None:
    event = event_factory(capacity=2, waitlist_enabled=False, price_cents=1000)
    users = _users(user_factory, 6)

    errors = _race(event, users, lambda manager: manager.admit_paid())

    assert errors == []
    rsvps = EventRSVP.objects.filter(event=event)
    assert rsvps.confirmed().count() == 2
    assert rsvps.waitlisted().count() == 4
