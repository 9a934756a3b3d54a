"""Tests for the idempotency store."""

import typing as t
from datetime import timedelta

import orjson
import pytest
from django.test import RequestFactory
from django.utils import timezone
from freezegun import freeze_time
from ninja.responses import Response

from accounts.models import TurnoutUser
from common.exceptions import CapacityError, ExternalDependencyError, InvalidInputError
from common.idempotency import (
    IdempotencyOutcome,
    begin,
    execute_idempotently,
    finish,
    get_idempotency_key,
    release,
    stable_idempotency_key,
)
from common.models import IdempotencyRecord

pytestmark = pytest.mark.django_db

ROUTE = "POST:/events/abc/rsvp"


@pytest.fixture
def rf() -> RequestFactory:
    return RequestFactory()


class TestBegin:
    def test_no_key_means_no_idempotency(self, user: TurnoutUser) -> None:
        claim = begin(ROUTE, None, user=user)

        assert claim.outcome == IdempotencyOutcome.NONE
        assert claim.record is None
        assert not IdempotencyRecord.objects.exists()

    def test_first_request_claims_the_key(self, user: TurnoutUser) -> None:
        claim = begin(ROUTE, "k1", user=user)

        assert claim.outcome == IdempotencyOutcome.CLAIMED
        assert claim.record is not None
        assert claim.record.state == IdempotencyRecord.State.PENDING
        assert claim.record.user == user

    def test_pending_key_is_in_flight(self, user: TurnoutUser) -> None:
        begin(ROUTE, "k1", user=user)

        assert begin(ROUTE, "k1", user=user).outcome == IdempotencyOutcome.INFLIGHT

    def test_completed_key_replays(self, user: TurnoutUser) -> None:
        claim = begin(ROUTE, "k1", user=user)
        assert claim.record is not None
        finish(claim.record, 201, {"ok": True})

        replay = begin(ROUTE, "k1", user=user)

        assert replay.outcome == IdempotencyOutcome.REPLAY
        assert replay.record is not None
        assert replay.record.status_code == 201
        assert replay.record.response_body == {"ok": True}

    def test_key_owned_by_another_user_conflicts(self, user: TurnoutUser, organizer: TurnoutUser) -> None:
        begin(ROUTE, "k1", user=user)

        assert begin(ROUTE, "k1", user=organizer).outcome == IdempotencyOutcome.CONFLICT

    def test_same_key_on_another_route_is_independent(self, user: TurnoutUser) -> None:
        begin(ROUTE, "k1", user=user)

        assert begin("POST:/events/xyz/rsvp", "k1", user=user).outcome == IdempotencyOutcome.CLAIMED

    def test_expired_key_can_be_claimed_again(self, user: TurnoutUser) -> None:
        claim = begin(ROUTE, "k1", user=user, ttl_seconds=60)
        assert claim.record is not None
        finish(claim.record, 200, {"first": True})

        with freeze_time(timezone.now() + timedelta(seconds=61)):
            again = begin(ROUTE, "k1", user=user, ttl_seconds=60)

        assert again.outcome == IdempotencyOutcome.CLAIMED
        assert IdempotencyRecord.objects.filter(route=ROUTE, key="k1").count() == 1

    def test_key_too_long(self, user: TurnoutUser) -> None:
        with pytest.raises(InvalidInputError):
            begin(ROUTE, "k" * 256, user=user)

    def test_release_drops_pending_claim(self, user: TurnoutUser) -> None:
        claim = begin(ROUTE, "k1", user=user)
        assert claim.record is not None

        release(claim.record)

        assert begin(ROUTE, "k1", user=user).outcome == IdempotencyOutcome.CLAIMED

    def test_release_keeps_completed_record(self, user: TurnoutUser) -> None:
        claim = begin(ROUTE, "k1", user=user)
        assert claim.record is not None
        finish(claim.record, 200, {})

        release(claim.record)

        assert begin(ROUTE, "k1", user=user).outcome == IdempotencyOutcome.REPLAY


class TestGetIdempotencyKey:
    def test_reads_standard_header(self, rf: RequestFactory) -> None:
        assert get_idempotency_key(rf.post("/", HTTP_IDEMPOTENCY_KEY="abc")) == "abc"

    def test_reads_legacy_header(self, rf: RequestFactory) -> None:
        assert get_idempotency_key(rf.post("/", HTTP_X_IDEMPOTENCY_KEY="abc")) == "abc"

    def test_blank_header_is_no_key(self, rf: RequestFactory) -> None:
        assert get_idempotency_key(rf.post("/", HTTP_IDEMPOTENCY_KEY="  ")) is None


class TestExecuteIdempotently:
    def _counting_handler(self, calls: list[int]) -> t.Callable[[], tuple[int, dict[str, int]]]:
        def handler() -> tuple[int, dict[str, int]]:
            calls.append(1)
            return 200, {"n": len(calls)}

        return handler

    def test_runs_every_time_without_a_key(self, rf: RequestFactory, user: TurnoutUser) -> None:
        calls: list[int] = []
        handler = self._counting_handler(calls)

        execute_idempotently(rf.post("/"), route=ROUTE, user=user, handler=handler)
        execute_idempotently(rf.post("/"), route=ROUTE, user=user, handler=handler)

        assert len(calls) == 2

    def test_replays_the_first_response(self, rf: RequestFactory, user: TurnoutUser) -> None:
        calls: list[int] = []
        handler = self._counting_handler(calls)
        request = rf.post("/", HTTP_IDEMPOTENCY_KEY="k1")

        first = execute_idempotently(request, route=ROUTE, user=user, handler=handler)
        second = execute_idempotently(request, route=ROUTE, user=user, handler=handler)

        assert first == (200, {"n": 1})
        assert isinstance(second, Response)
        assert second.status_code == 200
        assert orjson.loads(second.content) == {"n": 1}
        assert len(calls) == 1

    def test_service_errors_are_replayed(self, rf: RequestFactory, user: TurnoutUser) -> None:
        request = rf.post("/", HTTP_IDEMPOTENCY_KEY="k1")

        def handler() -> tuple[int, t.Any]:
            raise CapacityError()

        with pytest.raises(CapacityError):
            execute_idempotently(request, route=ROUTE, user=user, handler=handler)
        replay = execute_idempotently(request, route=ROUTE, user=user, handler=handler)

        assert isinstance(replay, Response)
        assert replay.status_code == 409
        assert orjson.loads(replay.content) == CapacityError().as_payload()

    def test_gateway_failure_releases_the_key(self, rf: RequestFactory, user: TurnoutUser) -> None:
        request = rf.post("/", HTTP_IDEMPOTENCY_KEY="k1")

        def failing() -> tuple[int, t.Any]:
            raise ExternalDependencyError()

        with pytest.raises(ExternalDependencyError):
            execute_idempotently(request, route=ROUTE, user=user, handler=failing)

        assert execute_idempotently(request, route=ROUTE, user=user, handler=lambda: (200, {"ok": 1})) == (
            200,
            {"ok": 1},
        )

    def test_unexpected_error_releases_the_key(self, rf: RequestFactory, user: TurnoutUser) -> None:
        request = rf.post("/", HTTP_IDEMPOTENCY_KEY="k1")

        def failing() -> tuple[int, t.Any]:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            execute_idempotently(request, route=ROUTE, user=user, handler=failing)

        assert not IdempotencyRecord.objects.exists()


class TestStableIdempotencyKey:
    def test_ignores_key_order(self) -> None:
        assert stable_idempotency_key({"a": 1, "b": 2}) == stable_idempotency_key({"b": 2, "a": 1})

    def test_differs_for_different_payloads(self) -> None:
        assert stable_idempotency_key({"order_id": "1"}) != stable_idempotency_key({"order_id": "2"})
