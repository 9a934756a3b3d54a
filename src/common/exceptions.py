"""Service-level errors shared by every app.

Each error carries a stable machine-readable ``code`` and the HTTP status it maps to. The API renders
them as ``{"reason": code, "detail": message}``.
"""

import typing as t


class ServiceError(Exception):
    status_code: int = 400
    code: str = "service_error"
    default_message: str = "The request could not be processed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_payload(self) -> dict[str, t.Any]:
        """The JSON body returned to the client."""
        return {"reason": self.code, "detail": self.message}


class InvalidInputError(ServiceError):
    status_code = 400
    code = "invalid_input"
    default_message = "The request is invalid."


class AuthenticationRequiredError(ServiceError):
    status_code = 401
    code = "authentication_required"
    default_message = "Authentication is required."


class AuthorizationError(ServiceError):
    status_code = 403
    code = "forbidden"
    default_message = "You are not allowed to do this."


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class CapacityError(ServiceError):
    status_code = 409
    code = "capacity_reached"
    default_message = "There is no capacity left."


class ConflictError(ServiceError):
    status_code = 409
    code = "conflict"
    default_message = "The request conflicts with the current state."


class IdempotencyRequestInFlightError(ConflictError):
    code = "already_in_progress"
    default_message = "A request with this idempotency key is already in progress."


class IdempotencyKeyConflictError(ConflictError):
    code = "idempotency_key_conflict"
    default_message = "This idempotency key was used by someone else."


class RateLimitExceededError(ServiceError):
    status_code = 429
    code = "rate_limited"
    default_message = "Too many requests. Please try again later."

    def __init__(self, message: str | None = None, headers: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.headers = headers or {}


class ExternalDependencyError(ServiceError):
    status_code = 502
    code = "external_dependency_failed"
    default_message = "An upstream service failed. It is safe to retry with the same idempotency key."
