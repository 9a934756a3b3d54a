"""Enums for the admission system."""

from enum import StrEnum

from django.utils.translation import gettext_noop


class Reasons(StrEnum):
    """Why an admission request ended the way it did.

    Note: Strings are marked with _noop() for translation extraction.
    """

    CONFIRMED = gettext_noop("Your spot is confirmed.")
    ALREADY_CONFIRMED = gettext_noop("You already have a spot.")
    WAITLISTED = gettext_noop("The event is full. You have been added to the waitlist.")
    STILL_WAITLISTED = gettext_noop("You are still on the waitlist.")
    NOT_GOING = gettext_noop("Your RSVP has been updated.")
