"""This module contains the controllers for the accounts app."""

from ninja_extra import api_controller, route

from accounts.schema import EmailSchema
from accounts.service import account as account_service
from common.controllers import UserAwareController
from common.schema import ErrorResponse, ResponseMessage


@api_controller("/account", tags=["Account"], auth=None)
class AccountController(UserAwareController):
    @route.post(
        "/verify-resend",
        response={200: ResponseMessage, 429: ErrorResponse},
        url_name="resend-verification-email",
    )
    def resend_verification_email(self, payload: EmailSchema) -> ResponseMessage:
        """Resend the email verification link for a given email address.

        Use this if the original verification email was lost or expired. Always returns the same
        message to prevent user enumeration. The email is only sent if the account exists and is not
        yet verified. Limited per IP and per email address, per minute and per day; a 429 carries
        RateLimit-* and Retry-After headers.
        """
        account_service.resend_verification_email(payload.email, self.client_ip())
        return ResponseMessage(message="If an unverified account exists for this email, a new link is on its way.")

    @route.post(
        "/password/reset-request",
        response={200: ResponseMessage, 429: ErrorResponse},
        url_name="reset-password-request",
    )
    def reset_password_request(self, payload: EmailSchema) -> ResponseMessage:
        """Request a password reset by email.

        Sends a password reset link to the provided email if an account exists. Always returns the
        same message to prevent user enumeration. Limited per IP and per email address.
        """
        account_service.request_password_reset(payload.email, self.client_ip())
        return ResponseMessage(message="If an account exists for this email, a password reset link will be sent.")
