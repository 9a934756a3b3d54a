import datetime
import typing as t
from uuid import uuid4

from django.conf import settings
from ninja import Field, Schema
from pydantic import UUID4, EmailStr, field_serializer


class EmailSchema(Schema):
    email: EmailStr


class _BaseEmailJWTPayloadSchema(Schema):
    user_id: UUID4
    email: EmailStr
    exp: datetime.datetime
    jti: str = Field(default_factory=lambda: str(uuid4()))
    aud: str = Field(default_factory=lambda: settings.JWT_AUDIENCE)

    @field_serializer("exp")
    def serialize_exp(self, value: datetime.datetime) -> int:
        return int(value.timestamp())


class VerifyEmailJWTPayloadSchema(_BaseEmailJWTPayloadSchema):
    type: t.Literal["email_verification"] = "email_verification"


class PasswordResetJWTPayloadSchema(_BaseEmailJWTPayloadSchema):
    type: t.Literal["password_reset"] = "password_reset"
