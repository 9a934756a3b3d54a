from django.db.models import Max

from events.models import Event, EventRSVP
from events.models.rsvp import generate_check_in_code


def ensure_check_in_code(rsvp: EventRSVP) -> None:
    """Give the RSVP its check-in code on first confirmation. An existing code never changes."""
    if not rsvp.check_in_code:
        rsvp.check_in_code = generate_check_in_code()


def next_waitlist_position(event: Event) -> int:
    """The position behind the last RSVP currently on the waitlist."""
    current = EventRSVP.objects.filter(event=event).waitlisted().aggregate(last=Max("waitlist_position"))["last"]
    return (current or 0) + 1
