from .attendance import EventPublicAttendanceController
from .check_in import EventCheckInController

EVENT_PUBLIC_CONTROLLERS: list[type] = [
    EventPublicAttendanceController,
    EventCheckInController,
]

__all__ = [
    "EventPublicAttendanceController",
    "EventCheckInController",
    "EVENT_PUBLIC_CONTROLLERS",
]
