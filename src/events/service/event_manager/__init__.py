"""Admission control for events.

This package decides who gets a seat: it confirms or waitlists RSVPs against an event's capacity,
promotes the waitlist as seats free up, and seats paying customers once their payment clears.
"""

from .enums import Reasons
from .manager import EventManager, get_admission_snapshot
from .types import AdmissionResult, AdmissionSnapshot
from .waitlist import WaitlistPromoter

__all__ = [
    "Reasons",
    "AdmissionResult",
    "AdmissionSnapshot",
    "EventManager",
    "WaitlistPromoter",
    "get_admission_snapshot",
]
