from common.exceptions import AuthorizationError, CapacityError, ConflictError, InvalidInputError, NotFoundError


class EventNotFoundError(NotFoundError):
    code = "event_not_found"
    default_message = "Event not found."


class SelfRSVPForbiddenError(AuthorizationError):
    code = "self_rsvp_forbidden"
    default_message = "Organizers cannot RSVP to or buy tickets for their own event."


class InvalidStatusError(InvalidInputError):
    code = "invalid_status"
    default_message = "Status must be one of: going, maybe, declined."


class EventFullError(CapacityError):
    code = "event_full"
    default_message = "This event is full."


class TimeConflictError(ConflictError):
    code = "time_conflict"
    default_message = "You already RSVP'd to another event at the same time."


class CheckInUnauthorizedError(AuthorizationError):
    code = "check_in_unauthorized"
    default_message = "Only the organizer or someone with the check-in secret can check attendees in."


class InvalidCheckInCodeError(NotFoundError):
    code = "invalid_check_in_code"
    default_message = "This code does not match a confirmed attendee of this event."
