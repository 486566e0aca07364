"""Integrations module - External notification channels."""

from receptionist.integrations.notifications import NotificationService, notification_service

__all__ = [
    "NotificationService",
    "notification_service",
]
