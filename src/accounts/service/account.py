"""Account abuse-sensitive flows: resending verification emails and requesting password resets.

Both flows answer identically whether or not the address belongs to an account, and both only hand out
short-lived signed tokens. Redeeming the tokens belongs to the authentication service.
"""

import jwt
import structlog
from django.conf import settings
from django.utils import timezone

from accounts import schema
from accounts.models import TurnoutUser
from common import notifications
from common.throttling import enforce_rate_limits

logger = structlog.get_logger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please wait a moment and try again."


def create_token(payload: schema._BaseEmailJWTPayloadSchema) -> str:
    """Sign a JWT for an email flow with the project secret."""
    return jwt.encode(payload.model_dump(mode="json"), settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def _expires_in_minutes() -> int:
    return int(settings.VERIFY_TOKEN_LIFETIME.total_seconds() // 60)


def resend_verification_email(email: str, ip_address: str) -> str | None:
    """Send a new verification link if ``email`` belongs to an unverified account.

    Returns:
        The signed token, or None when nothing was sent.

    Raises:
        RateLimitExceededError: when the IP or the email exceeded the resend limits.
    """
    email = email.strip().lower()
    enforce_rate_limits(
        ("resend_ip_minute", ip_address),
        ("resend_email_minute", email),
        ("resend_email_day", email),
        message=RATE_LIMIT_MESSAGE,
    )
    user = TurnoutUser.objects.filter(email__iexact=email).first()
    if user is None or user.email_verified:
        logger.info("verification_resend_skipped", reason="unknown_or_verified")
        return None

    payload = schema.VerifyEmailJWTPayloadSchema(
        user_id=user.id,
        email=user.email,
        exp=timezone.now() + settings.VERIFY_TOKEN_LIFETIME,
    )
    token = create_token(payload)
    notifications.dispatch(
        user.email, "verify_email", {"token": token, "expires_in_minutes": _expires_in_minutes()}
    )
    logger.info("verification_email_requested", user_id=str(user.id))
    return token


def request_password_reset(email: str, ip_address: str) -> str | None:
    """Send a password reset link if ``email`` belongs to an active account.

    Returns:
        The signed token, or None when nothing was sent.

    Raises:
        RateLimitExceededError: when the IP or the email exceeded the password reset limits.
    """
    email = email.strip().lower()
    enforce_rate_limits(
        ("forgot_ip_minute", ip_address),
        ("forgot_email_minute", email),
        ("forgot_email_day", email),
        message=RATE_LIMIT_MESSAGE,
    )
    user = TurnoutUser.objects.filter(email__iexact=email, is_active=True).first()
    if user is None:
        logger.info("password_reset_user_not_found")
        return None

    payload = schema.PasswordResetJWTPayloadSchema(
        user_id=user.id,
        email=user.email,
        exp=timezone.now() + settings.VERIFY_TOKEN_LIFETIME,
    )
    token = create_token(payload)
    notifications.dispatch(
        user.email, "password_reset", {"token": token, "expires_in_minutes": _expires_in_minutes()}
    )
    logger.info("password_reset_email_sent", user_id=str(user.id))
    return token
