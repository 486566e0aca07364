"""Stored record models - Businesses, call records and daily analytics."""

from typing import Optional
from datetime import date as date_type, datetime
from pydantic import BaseModel, Field

from receptionist.models.enums import CallStatus


class Business(BaseModel):
    """A business using the receptionist, resolved by its phone number."""
    id: str = Field(..., description="Business ID")
    business_name: str = Field(..., description="Display name")
    owner_name: Optional[str] = Field(None, description="Owner name")
    owner_phone: Optional[str] = Field(None, description="Owner phone for SMS")
    slack_webhook_url: Optional[str] = Field(None, description="Slack incoming webhook URL")
    phone_number: str = Field(..., description="Business phone in canonical format")
    retell_agent_id: Optional[str] = Field(None, description="Retell agent ID")
    is_active: bool = Field(True, description="Whether the business accepts calls")

    class Config:
        from_attributes = True


class CallRecord(BaseModel):
    """Canonical per-call record merged from one or more webhook events."""
    call_id: str = Field(..., description="Retell call ID")
    business_id: str = Field(..., description="Owning business ID")
    status: CallStatus = Field(CallStatus.IN_PROGRESS, description="Lifecycle status")

    # Extracted caller information
    caller_name: Optional[str] = Field(None, description="Caller name")
    callback_number: Optional[str] = Field(None, description="Callback number in canonical format")
    address: Optional[str] = Field(None, description="Service address")
    reason: Optional[str] = Field(None, description="Reason for calling")
    call_summary: Optional[str] = Field(None, description="Short summary of the reason")
    extraction_confidence: Optional[float] = Field(
        None,
        ge=0,
        le=1,
        description="Share of caller fields that were extracted"
    )

    # Call data
    recording_url: Optional[str] = Field(None, description="Recording URL")
    transcript_text: Optional[str] = Field(None, description="Conversation transcript")
    duration_seconds: Optional[float] = Field(None, description="Call duration")
    cost: Optional[float] = Field(None, description="Derived call cost")
    from_number: Optional[str] = Field(None, description="Caller phone number")
    to_number: Optional[str] = Field(None, description="Business phone number")

    # Processing state
    notification_sent: bool = Field(False, description="Whether notifications succeeded")
    last_event_type: Optional[str] = Field(None, description="Last applied event")

    # Timestamps
    created_at: Optional[datetime] = Field(None, description="Record creation time")
    updated_at: Optional[datetime] = Field(None, description="Last update time")

    class Config:
        from_attributes = True


class AnalyticsDelta(BaseModel):
    """Increment applied atomically to one daily analytics row."""
    total_calls: int = Field(0, ge=0)
    successful_notifications: int = Field(0, ge=0)
    failed_notifications: int = Field(0, ge=0)
    total_duration: float = Field(0, ge=0)
    total_cost: float = Field(0, ge=0)

    def is_empty(self) -> bool:
        return not any((
            self.total_calls,
            self.successful_notifications,
            self.failed_notifications,
            self.total_duration,
            self.total_cost,
        ))


class CallAnalyticsDaily(BaseModel):
    """Per-business, per-day call counters."""
    business_id: str
    date: date_type
    total_calls: int = 0
    successful_notifications: int = 0
    failed_notifications: int = 0
    total_duration: float = 0
    total_cost: float = 0
