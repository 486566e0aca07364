"""Core module - Configuration and error types.

The record store lives in ``receptionist.core.database`` and is imported
directly, since it depends on the models package.
"""

from receptionist.core.config import get_settings, Settings, format_phone_number
from receptionist.core.exceptions import (
    ReceptionistError,
    ValidationError,
    NotFoundError,
    StoreError,
    NotificationError
)

__all__ = [
    "get_settings",
    "Settings",
    "format_phone_number",
    "ReceptionistError",
    "ValidationError",
    "NotFoundError",
    "StoreError",
    "NotificationError",
]
