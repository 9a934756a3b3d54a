"""Types for the admission system."""

import uuid
from dataclasses import dataclass, field

from pydantic import BaseModel

from events.models import EventRSVP


class AdmissionSnapshot(BaseModel):
    """Seat counts for an event, plus the acting user's own standing.

    Never carries information about other users' RSVPs beyond the aggregates.
    """

    event_id: uuid.UUID
    capacity: int | None = None
    waitlist_enabled: bool
    confirmed_count: int
    waitlisted_count: int
    is_full: bool
    spots_left: int | None = None  # None means unlimited
    status: EventRSVP.RsvpStatus | None = None
    attendance_state: EventRSVP.AttendanceState | None = None
    waitlist_position: int | None = None  # 1-based rank among waitlisted RSVPs
    check_in_code: str | None = None


@dataclass
class AdmissionResult:
    """The outcome of an admission request."""

    rsvp: EventRSVP
    snapshot: AdmissionSnapshot
    reason: str
    promoted: list[EventRSVP] = field(default_factory=list)
