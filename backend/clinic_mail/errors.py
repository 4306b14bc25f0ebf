"""
Exception types raised by the notification scheduler and dispatcher.
"""


class NotificationError(Exception):
    """Base class for all clinic-mail errors."""


class ValidationError(NotificationError):
    """Request payload is missing or has invalid fields."""

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__('; '.join(self.errors))


class NotFoundError(NotificationError, LookupError):
    """Appointment or template does not exist."""


class RenderError(NotificationError):
    """A placeholder value could not be formatted."""


class ConditionParseError(NotificationError, ValueError):
    """An inline condition string is not of the form `field OP value`."""


class TransportError(NotificationError):
    """The mail transport refused or failed to deliver a message."""


class StoreError(NotificationError):
    """The persistence layer failed to read or write."""
