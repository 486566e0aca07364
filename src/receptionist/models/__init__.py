"""Models package - All Pydantic models organized by domain."""

from receptionist.models.enums import (
    CallStatus,
    EventType,
    EventKind,
    EventAction,
    NotificationChannel,
    NotificationStatus
)
from receptionist.models.call import RetellWebhookPayload, CallEvent, resolve_event, TRANSCRIPT_FIELDS
from receptionist.models.records import Business, CallRecord, AnalyticsDelta, CallAnalyticsDaily
from receptionist.models.results import (
    ExtractedInformation,
    ChannelResult,
    NotificationResult,
    EventResult
)

__all__ = [
    # Enums
    "CallStatus",
    "EventType",
    "EventKind",
    "EventAction",
    "NotificationChannel",
    "NotificationStatus",
    # Call models
    "RetellWebhookPayload",
    "CallEvent",
    "resolve_event",
    "TRANSCRIPT_FIELDS",
    # Record models
    "Business",
    "CallRecord",
    "AnalyticsDelta",
    "CallAnalyticsDaily",
    # Result models
    "ExtractedInformation",
    "ChannelResult",
    "NotificationResult",
    "EventResult",
]
