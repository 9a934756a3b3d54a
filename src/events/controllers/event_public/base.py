from uuid import UUID

from common.controllers import UserAwareController
from events import models
from events.exceptions import EventNotFoundError


class EventPublicBaseController(UserAwareController):
    """Base controller for public event endpoints.

    Subclasses should be decorated with @api_controller to register routes.
    """

    def get_one(self, event_id: UUID) -> models.Event:
        """Fetch the event or raise EventNotFoundError."""
        try:
            return models.Event.objects.with_organizer().get(pk=event_id)
        except models.Event.DoesNotExist as e:
            raise EventNotFoundError() from e
