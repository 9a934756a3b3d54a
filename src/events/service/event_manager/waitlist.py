import structlog

from events.models import Event, EventRSVP

from .utils import ensure_check_in_code

logger = structlog.get_logger(__name__)


class WaitlistPromoter:
    """Moves waitlisted RSVPs into free seats, first come first served.

    Must run while the caller holds the event's lock row, after any write that may have freed a seat.
    """

    def __init__(self, event: Event) -> None:
        self.event = event

    def promote(self) -> list[EventRSVP]:
        """Promote as many waitlisted RSVPs as there are free seats.

        Returns:
            The promoted RSVPs, in promotion order.
        """
        waitlist = EventRSVP.objects.with_user().filter(event=self.event).in_waitlist_order()
        if self.event.capacity is not None:
            free_seats = self.event.capacity - EventRSVP.objects.filter(event=self.event).confirmed().count()
            if free_seats <= 0:
                return []
            waitlist = waitlist[:free_seats]

        promoted: list[EventRSVP] = []
        for rsvp in waitlist:
            rsvp.attendance_state = EventRSVP.AttendanceState.CONFIRMED
            rsvp.waitlist_position = None
            ensure_check_in_code(rsvp)
            rsvp.save(update_fields=["attendance_state", "waitlist_position", "check_in_code", "updated_at"])
            promoted.append(rsvp)

        if promoted:
            logger.info(
                "waitlist_promoted",
                event_id=str(self.event.pk),
                promoted_rsvp_ids=[str(r.pk) for r in promoted],
            )
        return promoted
