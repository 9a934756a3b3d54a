import typing as t

from django.contrib.auth.models import AnonymousUser
from ninja_extra import ControllerBase

from accounts.models import TurnoutUser


def get_client_ip(request: t.Any) -> str:
    """Extract the client IP address, honouring X-Forwarded-For from the reverse proxy."""
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first
        return str(x_forwarded_for.split(",")[0].strip())
    return str(request.META.get("REMOTE_ADDR", "unknown"))


class UserAwareController(ControllerBase):
    def maybe_user(self) -> TurnoutUser | AnonymousUser:
        """Get the user for this request."""
        return t.cast(TurnoutUser | AnonymousUser, self.context.request.user)  # type: ignore[union-attr]

    def user(self) -> TurnoutUser:
        """Get the user for this request."""
        return t.cast(TurnoutUser, self.context.request.user)  # type: ignore[union-attr]

    def client_ip(self) -> str:
        """Get the client IP address for this request."""
        return get_client_ip(self.context.request)  # type: ignore[union-attr]
