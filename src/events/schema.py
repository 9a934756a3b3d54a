import datetime
from uuid import UUID

from ninja import Schema
from pydantic import Field

from events.models import EventRSVP
from events.service.check_in_service import CheckInResult
from events.service.event_manager import AdmissionResult, AdmissionSnapshot


class RSVPSchema(Schema):
    status: str = Field(..., description="One of: going, maybe, declined")


class AdmissionSnapshotSchema(Schema):
    event_id: UUID
    capacity: int | None = None
    waitlist_enabled: bool
    confirmed_count: int
    waitlisted_count: int
    is_full: bool
    spots_left: int | None = None
    status: EventRSVP.RsvpStatus | None = None
    attendance_state: EventRSVP.AttendanceState | None = None
    waitlist_position: int | None = None
    check_in_code: str | None = None

    @classmethod
    def from_snapshot(cls, snapshot: AdmissionSnapshot) -> "AdmissionSnapshotSchema":
        return cls(**snapshot.model_dump())


class RSVPResponseSchema(AdmissionSnapshotSchema):
    rsvp_id: UUID
    message: str

    @classmethod
    def from_result(cls, result: AdmissionResult) -> "RSVPResponseSchema":
        return cls(rsvp_id=result.rsvp.pk, message=result.reason, **result.snapshot.model_dump())


class CheckInSchema(Schema):
    code: str = Field(..., min_length=1, max_length=64)
    secret: str | None = Field(None, description="The event's check-in secret, if not sent as X-Check-In-Secret")


class CheckInResponseSchema(Schema):
    already_checked_in: bool
    rsvp_id: UUID
    attendee_name: str
    checked_in_at: datetime.datetime

    @classmethod
    def from_result(cls, result: CheckInResult) -> "CheckInResponseSchema":
        rsvp = result.rsvp
        assert rsvp.checked_in_at is not None
        return cls(
            already_checked_in=result.already_checked_in,
            rsvp_id=rsvp.pk,
            attendee_name=rsvp.user.display_name,
            checked_in_at=rsvp.checked_in_at,
        )
