from .event import Event
from .rsvp import EventRSVP

__all__ = ["Event", "EventRSVP"]
