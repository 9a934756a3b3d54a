"""Exception handlers for the API."""

import typing as t
from copy import deepcopy

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja.responses import Response

from common.exceptions import RateLimitExceededError, ServiceError

logger = structlog.get_logger(__name__)

SENSITIVE_KEYS = {"password", "token", "x-api-key", "authorization", "authentication", "x-check-in-secret", "cookie"}


def obfuscate(data: dict[str, t.Any]) -> dict[str, t.Any]:
    """Obfuscate sensitive data in payloads and headers."""
    new_data = deepcopy(data)
    for key in data.keys():
        if key.lower() in SENSITIVE_KEYS:
            new_data[key] = "********"
    return new_data


def handle_service_error(request: HttpRequest, exc: ServiceError | t.Type[ServiceError]) -> Response:
    """Render a domain error as ``{"reason": ..., "detail": ...}`` with its HTTP status.

    Rate limit refusals also carry the ``RateLimit-*`` and ``Retry-After`` headers.
    """
    assert isinstance(exc, ServiceError)
    logger.info("service_error", reason=exc.code, status_code=exc.status_code, path=request.path)
    response = Response(exc.as_payload(), status=exc.status_code)
    if isinstance(exc, RateLimitExceededError):
        for header, value in exc.headers.items():
            response[header] = value
    return response


def handle_general_exception(request: HttpRequest, exc: Exception | t.Type[Exception]) -> Response:
    """Handle a general exception.

    Args:
        request: The incoming HTTP request.
        exc: The exception.

    Returns:
        The response.
    """
    logger.exception(
        "internal_server_error",
        method=request.method,
        path=request.path,
        headers=obfuscate(dict(request.headers)),
        query=obfuscate(request.GET.dict()),
    )
    data: dict[str, t.Any] = {"detail": "Internal Server Error."}
    if settings.DEBUG:  # pragma: no cover
        data["error"] = repr(exc)
    return Response(status=500, data=data)


def handle_django_validation_error(request: HttpRequest, exc: ValidationError | t.Type[ValidationError]) -> Response:
    """Handle a validation error.

    Args:
        request: The incoming HTTP request.
        exc: The exception.
    """
    assert isinstance(exc, ValidationError)
    logger.warning("validation_error", path=request.path)
    if hasattr(exc, "error_dict"):
        errors = {k: [ee for e in v for ee in e] for k, v in exc.error_dict.items()}
    else:
        errors = {"__all__": exc.messages}
    return Response(status=400, data={"errors": errors})
