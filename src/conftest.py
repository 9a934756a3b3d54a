"""Project-wide fixtures."""

import secrets
import string
import typing as t
from datetime import datetime, time, timedelta

import faker
import pytest
from django.core.cache import cache
from django.test.client import Client
from django.utils import timezone
from ninja_jwt.tokens import RefreshToken

from accounts.models import TurnoutUser


@pytest.fixture(autouse=True)
def enable_celery_eager_mode(settings: t.Any) -> None:
    """Enable Celery eager mode for tests so tasks execute synchronously."""
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


@pytest.fixture(autouse=True)
def relax_default_throttles(monkeypatch: pytest.MonkeyPatch) -> None:
    """Raise the global ninja-extra throttles so they never interfere with tests."""
    monkeypatch.setattr("common.throttling.AnonDefaultThrottle.rate", "10000/min")
    monkeypatch.setattr("common.throttling.UserDefaultThrottle.rate", "10000/min")
    monkeypatch.setattr("common.throttling.WriteThrottle.rate", "10000/min")


@pytest.fixture(autouse=True)
def clear_cache() -> t.Iterator[None]:
    """Rate limit counters live in the cache; start every test from an empty one."""
    cache.clear()
    yield
    cache.clear()


class TurnoutUserFactory:
    """Factory for creating TurnoutUser instances for testing."""

    fake = faker.Faker()

    def create_user(self, **kwargs: t.Any) -> TurnoutUser:
        username = kwargs.pop(
            "username", "".join(secrets.choice(string.ascii_lowercase) for _ in range(8)) + "@user.test"
        )
        email = kwargs.pop("email", username + ("@test.com" if "@" not in username else ""))
        password = kwargs.pop("password", "password")
        first_name = kwargs.pop("first_name", self.fake.first_name())
        last_name = kwargs.pop("last_name", self.fake.last_name())
        return TurnoutUser.objects.create_user(
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            **kwargs,
        )

    def __call__(self, **kwargs: t.Any) -> TurnoutUser:
        return self.create_user(**kwargs)


@pytest.fixture
def user_factory() -> TurnoutUserFactory:
    return TurnoutUserFactory()


@pytest.fixture
def user(user_factory: TurnoutUserFactory) -> TurnoutUser:
    """A standard, non-privileged user."""
    return user_factory(username="member@example.com", email="member@example.com")


@pytest.fixture
def organizer(user_factory: TurnoutUserFactory) -> TurnoutUser:
    """The user who owns the events under test."""
    return user_factory(username="organizer@example.com", email="organizer@example.com")


def _jwt_client(user: TurnoutUser) -> Client:
    refresh = RefreshToken.for_user(user)
    return Client(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")  # type: ignore[attr-defined]


@pytest.fixture
def client_for() -> t.Callable[[TurnoutUser], Client]:
    """Build an API client authenticated as the given user."""
    return _jwt_client


@pytest.fixture
def user_client(user: TurnoutUser) -> Client:
    """API client authenticated as ``user``."""
    return _jwt_client(user)


@pytest.fixture
def organizer_client(organizer: TurnoutUser) -> Client:
    """API client authenticated as ``organizer``."""
    return _jwt_client(organizer)


@pytest.fixture
def next_week() -> datetime:
    today = timezone.now()
    same_time_next_week = today + timedelta(days=7)
    noon = time(hour=12, minute=0)
    return timezone.make_aware(
        datetime.combine(same_time_next_week.date(), noon),
        timezone.get_current_timezone(),
    )
