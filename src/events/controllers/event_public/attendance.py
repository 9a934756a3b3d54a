from uuid import UUID

from ninja.responses import Response
from ninja_extra import api_controller, route
from ninja_jwt.authentication import JWTAuth

from common.authentication import OptionalAuth
from common.idempotency import execute_idempotently
from common.schema import ServiceErrorResponses
from common.throttling import WriteThrottle, enforce_rate_limits
from events import schema
from events.service.event_manager import EventManager, get_admission_snapshot

from .base import EventPublicBaseController


@api_controller("/events", auth=OptionalAuth(), tags=["Events"])
class EventPublicAttendanceController(EventPublicBaseController):
    """Handles RSVPs and seat availability."""

    @route.post(
        "/{uuid:event_id}/rsvp",
        url_name="rsvp_event",
        response={200: schema.RSVPResponseSchema, **ServiceErrorResponses},
        auth=JWTAuth(),
        throttle=WriteThrottle(),
    )
    def rsvp_event(
        self, event_id: UUID, payload: schema.RSVPSchema
    ) -> tuple[int, schema.RSVPResponseSchema] | Response:
        """RSVP to an event (status: 'going', 'maybe' or 'declined').

        Going is admitted against the event's capacity. While seats are left you are confirmed and get
        a check-in code; once the event is full you join the waitlist if the organizer enabled one,
        otherwise the request fails with 409 `event_full`. Waitlisted RSVPs are promoted first come,
        first served as seats free up. Switching to maybe or declined gives your seat back.

        Send an `Idempotency-Key` header to make retries safe: the first response is stored and
        replayed for repeated requests with the same key, and a duplicate arriving while the first
        is still running gets 409 `already_in_progress`. Limited per IP, per user and per event.
        """
        user = self.user()
        enforce_rate_limits(
            ("rsvp_ip_minute", self.client_ip()),
            ("rsvp_user_minute", str(user.pk)),
            ("rsvp_event_minute", str(event_id)),
        )
        event = self.get_one(event_id)

        def handler() -> tuple[int, schema.RSVPResponseSchema]:
            result = EventManager(user, event).rsvp(payload.status)
            return 200, schema.RSVPResponseSchema.from_result(result)

        return execute_idempotently(
            self.context.request,  # type: ignore[arg-type]
            route=f"POST:/events/{event_id}/rsvp",
            user=user,
            handler=handler,
        )

    @route.get(
        "/{uuid:event_id}/admission",
        url_name="get_admission_snapshot",
        response={200: schema.AdmissionSnapshotSchema, **ServiceErrorResponses},
    )
    def get_admission(self, event_id: UUID) -> schema.AdmissionSnapshotSchema:
        """Seat availability for an event.

        Returns confirmed and waitlisted counts, whether the event is full and how many spots are left
        (null when unlimited). Authenticated users also get their own RSVP status, attendance state,
        waitlist rank and, once confirmed, their check-in code.
        """
        event = self.get_one(event_id)
        return schema.AdmissionSnapshotSchema.from_snapshot(get_admission_snapshot(event, self.maybe_user()))
