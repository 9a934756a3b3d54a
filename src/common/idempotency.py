"""At-most-once execution of write endpoints keyed by an ``Idempotency-Key`` header.

A caller-supplied key is scoped to a resolved route (which includes resource identifiers, so a key can
never cross resources). The first request with a key claims it; later requests either replay the
stored response, are rejected while the first one is still running, or are rejected because the key
belongs to someone else. Concurrent claims race on the ``(route, key)`` unique constraint.
"""

import hashlib
import typing as t
from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum

import orjson
import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.http import HttpRequest
from django.utils import timezone
from ninja.responses import Response
from pydantic import BaseModel

from accounts.models import TurnoutUser

from .exceptions import (
    ExternalDependencyError,
    IdempotencyKeyConflictError,
    IdempotencyRequestInFlightError,
    InvalidInputError,
    ServiceError,
)
from .models import IdempotencyRecord

logger = structlog.get_logger(__name__)

IDEMPOTENCY_HEADERS = ("Idempotency-Key", "X-Idempotency-Key")
MAX_KEY_LENGTH = 255


class IdempotencyOutcome(StrEnum):
    NONE = "none"
    CLAIMED = "claimed"
    REPLAY = "replay"
    INFLIGHT = "inflight"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class IdempotencyClaim:
    outcome: IdempotencyOutcome
    record: IdempotencyRecord | None = None


def get_idempotency_key(request: HttpRequest) -> str | None:
    """Read the idempotency key from the request headers, if any."""
    for header in IDEMPOTENCY_HEADERS:
        value = (request.headers.get(header) or "").strip()
        if value:
            return value
    return None


def _classify(record: IdempotencyRecord, user: TurnoutUser | None) -> IdempotencyClaim:
    if user is not None and record.user_id is not None and record.user_id != user.pk:
        return IdempotencyClaim(IdempotencyOutcome.CONFLICT, record)
    if record.state == IdempotencyRecord.State.COMPLETED:
        return IdempotencyClaim(IdempotencyOutcome.REPLAY, record)
    return IdempotencyClaim(IdempotencyOutcome.INFLIGHT, record)


def begin(
    route: str,
    key: str | None,
    user: TurnoutUser | None = None,
    ttl_seconds: int | None = None,
) -> IdempotencyClaim:
    """Claim ``key`` for ``route``.

    Args:
        route: The resolved route, e.g. ``POST:/events/<id>/rsvp``.
        key: The caller-supplied key. No key means no idempotency.
        user: The owner of the claim. A key claimed by another user yields CONFLICT.
        ttl_seconds: How long the record stays live. Defaults to ``IDEMPOTENCY_DEFAULT_TTL_SECONDS``.

    Returns:
        The claim outcome and, unless the outcome is NONE, the record it refers to.
    """
    if not key:
        return IdempotencyClaim(IdempotencyOutcome.NONE)
    if len(key) > MAX_KEY_LENGTH:
        raise InvalidInputError(f"The idempotency key must be at most {MAX_KEY_LENGTH} characters long.")

    ttl = ttl_seconds or settings.IDEMPOTENCY_DEFAULT_TTL_SECONDS
    # Two attempts: an expired record is purged once, and a lost insert race is re-read once.
    for _ in range(2):
        existing = IdempotencyRecord.objects.filter(route=route, key=key).first()
        if existing is not None and not existing.is_expired:
            return _classify(existing, user)
        if existing is not None:
            IdempotencyRecord.objects.filter(pk=existing.pk, expires_at__lte=timezone.now()).delete()
            logger.info("idempotency_key_expired_reclaimed", route=route, idempotency_key=key)
        try:
            with transaction.atomic():
                record = IdempotencyRecord.objects.create(
                    route=route,
                    key=key,
                    user=user,
                    expires_at=timezone.now() + timedelta(seconds=ttl),
                )
        except (IntegrityError, ValidationError):
            logger.info("idempotency_claim_race_lost", route=route, idempotency_key=key)
            continue
        return IdempotencyClaim(IdempotencyOutcome.CLAIMED, record)

    existing = IdempotencyRecord.objects.filter(route=route, key=key).first()
    if existing is None:
        # The winner released its claim in between. Report it as in flight and let the caller retry.
        return IdempotencyClaim(IdempotencyOutcome.INFLIGHT)
    return _classify(existing, user)


def finish(record: IdempotencyRecord, status_code: int, body: t.Any) -> None:
    """Mark the claim COMPLETED and store the response to replay."""
    record.state = IdempotencyRecord.State.COMPLETED
    record.status_code = status_code
    record.response_body = body
    IdempotencyRecord.objects.filter(pk=record.pk).update(
        state=record.state,
        status_code=status_code,
        response_body=body,
        updated_at=timezone.now(),
    )


def release(record: IdempotencyRecord) -> None:
    """Drop a PENDING claim so a retry with the same key can run again."""
    IdempotencyRecord.objects.filter(pk=record.pk, state=IdempotencyRecord.State.PENDING).delete()


def _to_json(payload: t.Any) -> t.Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    return orjson.loads(orjson.dumps(payload, default=str))


def execute_idempotently(
    request: HttpRequest,
    *,
    route: str,
    handler: t.Callable[[], tuple[int, t.Any]],
    user: TurnoutUser | None = None,
    ttl_seconds: int | None = None,
) -> tuple[int, t.Any] | Response:
    """Run ``handler`` at most once per ``Idempotency-Key``.

    Without a key the handler simply runs. With a key, a completed earlier run is replayed verbatim,
    an earlier run still in progress raises ``IdempotencyRequestInFlightError`` and a key owned by a
    different user raises ``IdempotencyKeyConflictError``.

    Service errors raised by the handler are recorded and replayed like any other response, except
    ``ExternalDependencyError`` and unexpected exceptions, which release the claim so the same key
    can be retried.
    """
    claim = begin(route, get_idempotency_key(request), user=user, ttl_seconds=ttl_seconds)

    match claim.outcome:
        case IdempotencyOutcome.NONE:
            return handler()
        case IdempotencyOutcome.REPLAY:
            assert claim.record is not None
            logger.info("idempotency_replay", route=route, status_code=claim.record.status_code)
            return Response(claim.record.response_body, status=claim.record.status_code or 200)
        case IdempotencyOutcome.INFLIGHT:
            raise IdempotencyRequestInFlightError()
        case IdempotencyOutcome.CONFLICT:
            logger.warning("idempotency_key_conflict", route=route)
            raise IdempotencyKeyConflictError()

    record = claim.record
    assert record is not None
    try:
        status_code, payload = handler()
    except ExternalDependencyError:
        release(record)
        raise
    except ServiceError as exc:
        finish(record, exc.status_code, exc.as_payload())
        raise
    except Exception:
        release(record)
        raise
    finish(record, status_code, _to_json(payload))
    return status_code, payload


def stable_idempotency_key(payload: t.Any) -> str:
    """Derive a deterministic idempotency token from a JSON-serializable payload.

    Key order does not matter, so the same logical payload always hashes to the same token.
    """
    serialized = orjson.dumps(payload, option=orjson.OPT_SORT_KEYS, default=str)
    return hashlib.sha256(serialized).hexdigest()
