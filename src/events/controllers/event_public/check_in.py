from uuid import UUID

from ninja_extra import api_controller, route

from common.authentication import OptionalAuth
from common.schema import ServiceErrorResponses
from common.throttling import WriteThrottle
from events import schema
from events.service import check_in_service

from .base import EventPublicBaseController

CHECK_IN_SECRET_HEADER = "X-Check-In-Secret"


@api_controller("/events", auth=OptionalAuth(), tags=["Check-in"])
class EventCheckInController(EventPublicBaseController):
    @route.post(
        "/{uuid:event_id}/check-in",
        url_name="check_in",
        response={200: schema.CheckInResponseSchema, **ServiceErrorResponses},
        throttle=WriteThrottle(),
    )
    def check_in(self, event_id: UUID, payload: schema.CheckInSchema) -> schema.CheckInResponseSchema:
        """Check in an attendee at the door with their check-in code.

        Callable by the event organizer (JWT) or by door staff holding the event's check-in secret,
        sent in the `X-Check-In-Secret` header or the `secret` field. Only confirmed attendees'
        codes are accepted; waitlisted codes are rejected with 404 `invalid_check_in_code`.
        Scanning the same code twice is safe: the second response has `already_checked_in=true`
        and the original check-in time.
        """
        event = self.get_one(event_id)
        secret = self.context.request.headers.get(CHECK_IN_SECRET_HEADER) or payload.secret  # type: ignore[union-attr]
        result = check_in_service.check_in(event, payload.code, user=self.maybe_user(), secret=secret)
        return schema.CheckInResponseSchema.from_result(result)
