"""Result models for extraction, notifications and event processing."""

from typing import Optional, List, Dict
from pydantic import BaseModel, Field

from receptionist.models.enums import (
    CallStatus,
    EventAction,
    NotificationChannel,
    NotificationStatus
)


class ExtractedInformation(BaseModel):
    """Caller information pulled from a transcript. Missing values stay None."""
    name: Optional[str] = Field(None, description="Caller name")
    callback_number: Optional[str] = Field(None, description="Callback number in canonical format")
    address: Optional[str] = Field(None, description="Service address")
    reason: Optional[str] = Field(None, description="Reason for calling")
    call_summary: Optional[str] = Field(None, description="Reason bounded to ten words")

    model_config = {"frozen": True}

    def to_record_fields(self) -> Dict[str, str]:
        """Map present values onto call record columns."""
        fields = {
            "caller_name": self.name,
            "callback_number": self.callback_number,
            "address": self.address,
            "reason": self.reason,
            "call_summary": self.call_summary,
        }
        return {key: value for key, value in fields.items() if value is not None}


class ChannelResult(BaseModel):
    """Outcome of one notification channel."""
    success: bool = Field(False, description="Whether the channel delivered")
    status: NotificationStatus = Field(..., description="sent, failed or skipped")
    error: Optional[str] = Field(None, description="Failure reason")
    note: Optional[str] = Field(None, description="Additional context")


class NotificationResult(BaseModel):
    """Combined outcome of all notification channels for a call."""
    success: bool = Field(False, description="Overall delivery success")
    channels: Dict[NotificationChannel, ChannelResult] = Field(
        default_factory=dict,
        description="Per-channel outcomes"
    )
    errors: List[str] = Field(default_factory=list, description="Collected channel errors")


class EventResult(BaseModel):
    """Per-event processing result returned to the webhook sender."""
    success: bool = Field(..., description="Whether the event was processed")
    call_id: str = Field(..., description="Retell call ID")
    business_id: Optional[str] = Field(None, description="Resolved business ID")
    event_type: str = Field(..., description="Resolved event variant")
    action: EventAction = Field(..., description="Effect on the call record")
    status: Optional[CallStatus] = Field(None, description="Record status after processing")
    notifications_sent: bool = Field(False, description="Whether notifications succeeded")
    extracted_info: Optional[ExtractedInformation] = Field(
        None,
        description="Information extracted from the transcript"
    )
    confidence: Optional[float] = Field(None, description="Extraction confidence")
    message: str = Field("", description="Human readable outcome")
    error_type: Optional[str] = Field(None, description="Error category on failure")
    error: Optional[str] = Field(None, description="Error message on failure")
