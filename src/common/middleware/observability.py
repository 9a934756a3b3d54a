"""Observability middleware for context enrichment."""

import typing as t
import uuid

import structlog
from django.http import HttpRequest, HttpResponse

from common.controllers.base import get_client_ip


class StructlogContextMiddleware:
    """Enriches structlog context with request metadata.

    Binds request-level context (request_id, method, path, IP, user) to all log events
    during the request lifecycle and echoes the request id in the ``X-Request-ID`` header.
    """

    def __init__(self, get_response: t.Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        """Process request and bind context.

        Args:
            request: Django HttpRequest

        Returns:
            HttpResponse
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()

        context: dict[str, t.Any] = {
            "request_id": request_id,
            "method": request.method,
            "path": request.path,
            "ip_address": get_client_ip(request),
        }
        # JWT users are only resolved later by the API; this catches session-authenticated requests.
        if hasattr(request, "user") and request.user.is_authenticated:
            context["user_id"] = str(request.user.pk)

        structlog.contextvars.bind_contextvars(**context)

        response = self.get_response(request)
        response["X-Request-ID"] = request_id

        structlog.contextvars.clear_contextvars()

        return response
