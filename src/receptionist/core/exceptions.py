"""Exception types raised across the call engine."""

from typing import Optional


class ReceptionistError(Exception):
    """Base class for call engine errors."""

    error_type = "error"

    def __init__(self, message: str, call_id: Optional[str] = None):
        self.message = message
        self.call_id = call_id
        super().__init__(self.message)

    def __str__(self):
        if self.call_id:
            return f"{self.message} (call_id: {self.call_id})"
        return self.message


class ValidationError(ReceptionistError):
    """Raised when an event payload is malformed or conflicts with stored state."""

    error_type = "validation_error"


class NotFoundError(ReceptionistError):
    """Raised when an event cannot be resolved to an active business."""

    error_type = "not_found"


class StoreError(ReceptionistError):
    """Raised when the record store fails. Safe to retry through redelivery."""

    error_type = "store_error"


class NotificationError(ReceptionistError):
    """Raised when notification dispatch fails. Never fatal to an event."""

    error_type = "notification_error"
