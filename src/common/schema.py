"""Common schemas for the API."""

import typing as t

from ninja import Schema


class VersionResponse(Schema):
    version: str


class ResponseMessage(Schema):
    message: str


class ErrorResponse(Schema):
    reason: str
    detail: str


class ValidationErrorResponse(Schema):
    errors: dict[str, str | list[str]]


ServiceErrorResponses: dict[int, t.Any] = {
    400: ErrorResponse,
    401: ErrorResponse,
    403: ErrorResponse,
    404: ErrorResponse,
    409: ErrorResponse,
    429: ErrorResponse,
    502: ErrorResponse,
}
