"""Enumeration types for the call engine."""

from enum import Enum


class CallStatus(str, Enum):
    """Lifecycle status of a call record."""
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CallStatus.COMPLETED, CallStatus.FAILED)


class EventType(str, Enum):
    """Explicit Retell webhook event types."""
    CALL_STARTED = "call_started"
    CALL_ENDED = "call_ended"
    CALL_ANALYZED = "call_analyzed"


class EventKind(str, Enum):
    """Resolved event variant. LEGACY covers status-only payloads."""
    STARTED = "call_started"
    ENDED = "call_ended"
    ANALYZED = "call_analyzed"
    LEGACY = "legacy"


class EventAction(str, Enum):
    """What processing an event did to the call record."""
    CREATED = "created"
    UPDATED = "updated"
    IGNORED = "ignored"
    FAILED = "failed"


class NotificationChannel(str, Enum):
    """Notification delivery channels."""
    SMS = "sms"
    SLACK = "slack"


class NotificationStatus(str, Enum):
    """Outcome of a single notification attempt."""
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"
