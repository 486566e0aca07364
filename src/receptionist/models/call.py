"""Call-related models - Webhook payloads and resolved lifecycle events."""

from typing import Optional, Dict, Any, Tuple
from pydantic import BaseModel, Field, field_validator

from receptionist.core.exceptions import ValidationError
from receptionist.models.enums import CallStatus, EventType, EventKind


# Fields that may carry the conversation text, in priority order
TRANSCRIPT_FIELDS: Tuple[str, ...] = (
    "transcript",
    "transcript_text",
    "conversation",
    "call_summary",
    "summary",
)


class RetellWebhookPayload(BaseModel):
    """Incoming webhook payload from Retell (flat shape)."""
    call_id: str = Field(..., min_length=1, description="Retell call ID")
    to_number: str = Field(..., min_length=1, description="Business phone number that was called")
    from_number: Optional[str] = Field(None, description="Caller phone number")
    agent_id: Optional[str] = Field(None, description="Retell agent ID")
    event_type: Optional[EventType] = Field(
        None,
        description="Explicit event type; absent for legacy payloads"
    )
    call_status: Optional[CallStatus] = Field(
        None,
        description="Legacy status indicator"
    )
    transcript: Optional[str] = Field(None, description="Conversation transcript")
    transcript_text: Optional[str] = Field(None, description="Alternate transcript field")
    conversation: Optional[str] = Field(None, description="Alternate transcript field")
    call_summary: Optional[str] = Field(None, description="Retell generated summary")
    summary: Optional[str] = Field(None, description="Alternate summary field")
    recording_url: Optional[str] = Field(None, description="Recording URL")
    call_duration: Optional[float] = Field(None, ge=0, description="Call duration in seconds")

    @field_validator("call_id", "to_number")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @classmethod
    def from_webhook(cls, raw_data: Dict[str, Any]) -> "RetellWebhookPayload":
        """
        Build a payload from either the flat shape or Retell's nested
        ``{"event": ..., "call": {...}}`` shape.

        Args:
            raw_data: Decoded JSON body

        Returns:
            Validated payload
        """
        call = raw_data.get("call")
        if not isinstance(call, dict) or "event" not in raw_data:
            return cls(**raw_data)

        flat = dict(call)
        flat["event_type"] = raw_data["event"]
        # Native Retell statuses ("ongoing", "ended") are not legacy indicators
        flat.pop("call_status", None)

        analysis = call.get("call_analysis") or {}
        if not flat.get("call_summary") and analysis.get("call_summary"):
            flat["call_summary"] = analysis["call_summary"]

        if flat.get("call_duration") is None:
            if call.get("call_length_sec") is not None:
                flat["call_duration"] = call["call_length_sec"]
            elif call.get("duration_ms") is not None:
                flat["call_duration"] = call["duration_ms"] / 1000

        return cls(**flat)

    def get_transcript(self) -> Optional[str]:
        """Return the first non-empty transcript-bearing field."""
        for field_name in TRANSCRIPT_FIELDS:
            value = getattr(self, field_name)
            if isinstance(value, str) and value.strip():
                return value
        return None


class CallEvent(BaseModel):
    """A payload resolved to exactly one lifecycle event variant."""
    kind: EventKind
    payload: RetellWebhookPayload
    legacy_status: Optional[CallStatus] = None

    model_config = {"frozen": True}

    @property
    def call_id(self) -> str:
        return self.payload.call_id

    @property
    def label(self) -> str:
        """Value stored as ``last_event_type`` on the call record."""
        if self.kind == EventKind.LEGACY:
            return f"legacy:{self.legacy_status.value}"
        return self.kind.value


def resolve_event(payload: RetellWebhookPayload) -> CallEvent:
    """
    Resolve a payload into a tagged event.

    An explicit ``event_type`` always wins; otherwise a ``call_status`` marks
    a legacy event. A payload with neither cannot be processed.

    Raises:
        ValidationError: when the payload carries no event indicator
    """
    if payload.event_type is not None:
        return CallEvent(kind=EventKind(payload.event_type.value), payload=payload)

    if payload.call_status is not None:
        return CallEvent(
            kind=EventKind.LEGACY,
            payload=payload,
            legacy_status=payload.call_status
        )

    raise ValidationError(
        "Payload has neither event_type nor call_status",
        call_id=payload.call_id
    )
