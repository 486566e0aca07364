"""Pytest fixtures and configuration for AI Receptionist call engine tests."""

import asyncio
import os
import pytest
from datetime import date, datetime, timezone
from typing import Dict, Any, Generator, List, Optional, Tuple
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

# Set test environment variables before importing app
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("DEBUG", "true")

from receptionist.core.database import CallStore
from receptionist.core.exceptions import StoreError
from receptionist.models import (
    AnalyticsDelta,
    Business,
    CallAnalyticsDaily,
    CallRecord,
    CallStatus,
    ChannelResult,
    NotificationChannel,
    NotificationResult,
    NotificationStatus,
    RetellWebhookPayload
)
from receptionist.services.analytics import AnalyticsAggregator
from receptionist.services.call_processor import CallProcessor


BUSINESS_PHONE = "+15551234567"

SARAH_TRANSCRIPT = "My name is Sarah Jones and I need help with a clogged drain"

FULL_TRANSCRIPT = (
    "Agent: Thanks for calling Acme Plumbing, how can I help?\n"
    "Caller: Hello, my name is John Doe.\n"
    "Caller: My phone number is 555-987-6543. I live at 42 Oak Avenue, near the school.\n"
    "Caller: I need help with a leaking water heater."
)


# ===========================================
# In-Memory Record Store
# ===========================================

class InMemoryCallStore(CallStore):
    """
    CallStore kept in dictionaries.

    Every method yields to the event loop before touching state so that
    unsynchronized callers interleave the way they would against a real
    database. Method names listed in ``fail_on`` raise StoreError.
    """

    def __init__(self, businesses: Optional[List[Business]] = None):
        self.businesses: Dict[str, Business] = {b.phone_number: b for b in businesses or []}
        self.calls: Dict[str, CallRecord] = {}
        self.analytics: Dict[Tuple[str, date], CallAnalyticsDaily] = {}
        self.notification_logs: List[Dict[str, Any]] = []
        self.fail_on: set = set()
        self.upsert_count = 0

    async def _enter(self, method: str) -> None:
        await asyncio.sleep(0)
        if method in self.fail_on:
            raise StoreError(f"{method} failed")

    async def find_business_by_phone(self, phone: str) -> Optional[Business]:
        await self._enter("find_business_by_phone")
        business = self.businesses.get(phone)
        if business and business.is_active:
            return business
        return None

    async def get_call(self, call_id: str) -> Optional[CallRecord]:
        await self._enter("get_call")
        return self.calls.get(call_id)

    async def upsert_call(self, call_id: str, fields: Dict[str, Any]) -> CallRecord:
        await self._enter("upsert_call")
        now = datetime.now(timezone.utc)
        existing = self.calls.get(call_id)
        data = existing.model_dump() if existing else {"created_at": now}
        data.update(fields)
        data["call_id"] = call_id
        data["updated_at"] = now
        record = CallRecord(**data)
        self.calls[call_id] = record
        self.upsert_count += 1
        return record

    async def update_call_status(
        self,
        call_id: str,
        status: CallStatus,
        last_event_type: Optional[str] = None
    ) -> CallRecord:
        await self._enter("update_call_status")
        existing = self.calls.get(call_id)
        if existing is None:
            raise StoreError("Status update matched no call", call_id=call_id)
        changes = {"status": status, "updated_at": datetime.now(timezone.utc)}
        if last_event_type:
            changes["last_event_type"] = last_event_type
        record = existing.model_copy(update=changes)
        self.calls[call_id] = record
        return record

    async def update_notification_status(self, call_id: str, notification_sent: bool) -> None:
        await self._enter("update_notification_status")
        existing = self.calls[call_id]
        self.calls[call_id] = existing.model_copy(update={"notification_sent": notification_sent})

    async def increment_daily_analytics(self, business_id: str, day: date, delta: AnalyticsDelta) -> None:
        await self._enter("increment_daily_analytics")
        row = self.analytics.get((business_id, day)) or CallAnalyticsDaily(business_id=business_id, date=day)
        self.analytics[(business_id, day)] = row.model_copy(update={
            "total_calls": row.total_calls + delta.total_calls,
            "successful_notifications": row.successful_notifications + delta.successful_notifications,
            "failed_notifications": row.failed_notifications + delta.failed_notifications,
            "total_duration": row.total_duration + delta.total_duration,
            "total_cost": round(row.total_cost + delta.total_cost, 4),
        })

    async def log_notification(
        self,
        call_id: str,
        channel: str,
        status: str,
        recipient: Optional[str] = None,
        error_message: Optional[str] = None
    ) -> None:
        await self._enter("log_notification")
        self.notification_logs.append({
            "call_id": call_id,
            "notification_type": channel,
            "status": status,
            "recipient": recipient,
            "error_message": error_message,
        })

    async def health_check(self) -> bool:
        return "health_check" not in self.fail_on

    def analytics_for(self, business_id: str) -> CallAnalyticsDaily:
        """Today's analytics row for a business (all zeros when absent)."""
        rows = [row for (bid, _), row in self.analytics.items() if bid == business_id]
        if not rows:
            return CallAnalyticsDaily(business_id=business_id, date=datetime.now(timezone.utc).date())
        assert len(rows) == 1
        return rows[0]


# ===========================================
# Sample Data Fixtures
# ===========================================

@pytest.fixture
def business() -> Business:
    """Active business without a Slack webhook."""
    return Business(
        id="biz_acme",
        business_name="Acme Plumbing",
        owner_name="Alice Owner",
        owner_phone="+15550001111",
        phone_number=BUSINESS_PHONE,
        retell_agent_id="agent_acme"
    )


@pytest.fixture
def other_business() -> Business:
    """Second business, used for ownership conflicts."""
    return Business(
        id="biz_other",
        business_name="Other Trees",
        owner_phone="+15550002222",
        slack_webhook_url="https://hooks.slack.com/services/T000/B000/XXXX",
        phone_number="+15557654321"
    )


@pytest.fixture
def store(business, other_business) -> InMemoryCallStore:
    return InMemoryCallStore([business, other_business])


@pytest.fixture
def notifier() -> AsyncMock:
    """Notification service mock reporting success on every channel."""
    mock = AsyncMock()
    mock.send_all_notifications.return_value = NotificationResult(
        success=True,
        channels={
            NotificationChannel.SMS: ChannelResult(success=True, status=NotificationStatus.SENT),
            NotificationChannel.SLACK: ChannelResult(success=False, status=NotificationStatus.SKIPPED),
        }
    )
    return mock


@pytest.fixture
def processor(store, notifier) -> CallProcessor:
    return CallProcessor(store=store, notifier=notifier, analytics=AnalyticsAggregator(store=store))


def _flat_payload(**overrides) -> RetellWebhookPayload:
    """Flat webhook payload for the test business."""
    data: Dict[str, Any] = {
        "call_id": "call_test_12345",
        "to_number": "(555) 123-4567",
        "from_number": "+15559876543",
        "agent_id": "agent_acme",
    }
    data.update(overrides)
    return RetellWebhookPayload(**data)


@pytest.fixture
def make_payload():
    """Factory for flat webhook payloads; keyword arguments override defaults."""
    return _flat_payload


@pytest.fixture
def sarah_transcript() -> str:
    return SARAH_TRANSCRIPT


@pytest.fixture
def full_transcript() -> str:
    return FULL_TRANSCRIPT


@pytest.fixture
def sample_retell_webhook_call_analyzed() -> Dict[str, Any]:
    """Retell's nested call_analyzed webhook."""
    return {
        "event": "call_analyzed",
        "call": {
            "call_id": "call_test_12345",
            "agent_id": "agent_acme",
            "call_type": "phone_call",
            "from_number": "+15559876543",
            "to_number": BUSINESS_PHONE,
            "direction": "inbound",
            "call_status": "ended",
            "start_timestamp": 1700000000000,
            "end_timestamp": 1700000120000,
            "duration_ms": 120000,
            "transcript": FULL_TRANSCRIPT,
            "recording_url": "https://storage.retell.ai/recordings/call_test_12345.wav",
            "call_analysis": {
                "call_summary": "Caller reported a leaking water heater.",
                "user_sentiment": "Neutral"
            }
        }
    }


@pytest.fixture
def sample_retell_webhook_call_started() -> Dict[str, Any]:
    """Retell's nested call_started webhook."""
    return {
        "event": "call_started",
        "call": {
            "call_id": "call_test_12345",
            "agent_id": "agent_acme",
            "from_number": "+15559876543",
            "to_number": BUSINESS_PHONE,
            "call_status": "ongoing"
        }
    }


@pytest.fixture
def sample_legacy_webhook() -> Dict[str, Any]:
    """Flat status-only webhook."""
    return {
        "call_id": "call_legacy_1",
        "to_number": "555-123-4567",
        "from_number": "+15559876543",
        "call_status": "completed",
        "transcript": SARAH_TRANSCRIPT,
        "call_duration": 120
    }


# ===========================================
# Client Fixtures
# ===========================================

@pytest.fixture
def client(processor, store) -> Generator[TestClient, None, None]:
    """Test client wired to the in-memory store and mocked notifier."""
    from receptionist.main import app

    with patch("receptionist.api.webhooks.call_processor", processor), \
            patch("receptionist.api.webhooks.call_store", store):
        with TestClient(app) as test_client:
            yield test_client


# ===========================================
# Pytest Configuration
# ===========================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
