"""Tests for the door check-in endpoint."""

import typing as t

import orjson
import pytest
from django.test.client import Client
from django.urls import reverse

from accounts.models import TurnoutUser
from events.models import Event, EventRSVP
from events.service.event_manager import EventManager

pytestmark = pytest.mark.django_db


@pytest.fixture
def confirmed(event: Event, user: TurnoutUser) -> EventRSVP:
    return EventManager(user, event).rsvp("going").rsvp


def _check_in(client: Client, event: Event, body: dict[str, t.Any], **headers: str) -> t.Any:
    return client.post(
        reverse("api:check_in", kwargs={"event_id": event.pk}),
        data=orjson.dumps(body),
        content_type="application/json",
        **headers,
    )


def test_organizer_checks_in_twice(organizer_client: Client, event: Event, confirmed: EventRSVP) -> None:
    first = _check_in(organizer_client, event, {"code": confirmed.check_in_code})
    second = _check_in(organizer_client, event, {"code": confirmed.check_in_code})

    assert first.status_code == second.status_code == 200
    assert first.json()["already_checked_in"] is False
    assert second.json()["already_checked_in"] is True
    assert second.json()["checked_in_at"] == first.json()["checked_in_at"]
    assert first.json()["attendee_name"] == confirmed.user.display_name


def test_door_staff_with_secret_header(client: Client, event: Event, confirmed: EventRSVP) -> None:
    response = _check_in(client, event, {"code": confirmed.check_in_code}, HTTP_X_CHECK_IN_SECRET=event.check_in_secret)

    assert response.status_code == 200


def test_door_staff_with_secret_in_body(client: Client, event: Event, confirmed: EventRSVP) -> None:
    response = _check_in(client, event, {"code": confirmed.check_in_code, "secret": event.check_in_secret})

    assert response.status_code == 200


def test_guest_cannot_check_in_others(user_client: Client, event: Event, confirmed: EventRSVP) -> None:
    response = _check_in(user_client, event, {"code": confirmed.check_in_code})

    assert response.status_code == 403
    assert response.json()["reason"] == "check_in_unauthorized"


def test_unknown_code(organizer_client: Client, event: Event) -> None:
    response = _check_in(organizer_client, event, {"code": "not-a-code"})

    assert response.status_code == 404
    assert response.json()["reason"] == "invalid_check_in_code"
