"""Record store for the call engine - interface and Supabase implementation."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, Callable
from supabase import create_client, Client
from supabase.lib.client_options import ClientOptions

from receptionist.core.config import get_settings
from receptionist.core.exceptions import StoreError
from receptionist.models import Business, CallRecord, CallStatus, AnalyticsDelta

logger = logging.getLogger(__name__)


class CallStore(ABC):
    """
    Persistence boundary consumed by the call processor.

    Implementations must guarantee at most one call record per call_id
    (upsert keyed by a uniqueness constraint) and must apply analytics
    deltas atomically.
    """

    @abstractmethod
    async def find_business_by_phone(self, phone: str) -> Optional[Business]:
        """Find an active business by its canonical phone number."""

    @abstractmethod
    async def get_call(self, call_id: str) -> Optional[CallRecord]:
        """Fetch a call record by call_id."""

    @abstractmethod
    async def upsert_call(self, call_id: str, fields: Dict[str, Any]) -> CallRecord:
        """Insert the call or merge ``fields`` into the existing record."""

    @abstractmethod
    async def update_call_status(
        self,
        call_id: str,
        status: CallStatus,
        last_event_type: Optional[str] = None
    ) -> CallRecord:
        """Set the status of an existing call record."""

    @abstractmethod
    async def update_notification_status(self, call_id: str, notification_sent: bool) -> None:
        """Record whether notifications for the call succeeded."""

    @abstractmethod
    async def increment_daily_analytics(
        self,
        business_id: str,
        day: date,
        delta: AnalyticsDelta
    ) -> None:
        """Atomically add ``delta`` to the (business_id, day) analytics row."""

    @abstractmethod
    async def log_notification(
        self,
        call_id: str,
        channel: str,
        status: str,
        recipient: Optional[str] = None,
        error_message: Optional[str] = None
    ) -> None:
        """Append a notification attempt to the notification log."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Check store connectivity."""


def _serialize(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Convert enum and datetime values into JSON-friendly primitives."""
    data = {}
    for key, value in fields.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, (datetime, date)):
            value = value.isoformat()
        data[key] = value
    return data


class SupabaseCallStore(CallStore):
    """
    Supabase implementation of the call store.

    Uses the sync Supabase client; every request runs in a worker thread so
    the event loop keeps serving other webhook deliveries.
    """

    def __init__(self):
        """Initialize with lazy client creation."""
        self._client: Optional[Client] = None
        self._settings = None

    @property
    def settings(self):
        """Lazy load settings."""
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def client(self) -> Client:
        """Lazy initialization of Supabase client."""
        if self._client is None:
            settings = self.settings
            if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
                raise ValueError("Supabase credentials not configured")

            self._client = create_client(
                settings.SUPABASE_URL,
                settings.SUPABASE_SERVICE_KEY,
                options=ClientOptions(
                    postgrest_client_timeout=30,
                    storage_client_timeout=30
                )
            )
            logger.info("Supabase client initialized")
        return self._client

    async def _execute(self, action: str, build: Callable[[Client], Any]):
        """Build a query against the client and execute it off the event loop."""
        try:
            query = build(self.client)
            return await asyncio.to_thread(query.execute)
        except Exception as e:
            logger.error(f"Supabase {action} failed: {e}")
            raise StoreError(f"Failed to {action}: {e}") from e

    # ===========================================
    # Business Lookup
    # ===========================================

    async def find_business_by_phone(self, phone: str) -> Optional[Business]:
        """Find an active business by canonical phone number."""
        response = await self._execute(
            "find business",
            lambda client: (
                client.table(self.settings.BUSINESSES_TABLE)
                .select("*")
                .eq("phone_number", phone)
                .eq("is_active", True)
                .limit(1)
            )
        )

        if response.data:
            return Business(**response.data[0])

        logger.warning(f"No active business for phone: {phone}")
        return None

    # ===========================================
    # Call Records
    # ===========================================

    async def get_call(self, call_id: str) -> Optional[CallRecord]:
        """Fetch call record by call_id."""
        response = await self._execute(
            "get call",
            lambda client: (
                client.table(self.settings.CALLS_TABLE)
                .select("*")
                .eq("call_id", call_id)
                .limit(1)
            )
        )

        if response.data:
            return CallRecord(**response.data[0])
        return None

    async def upsert_call(self, call_id: str, fields: Dict[str, Any]) -> CallRecord:
        """Insert-or-merge keyed by the unique call_id column."""
        data = _serialize(fields)
        data["call_id"] = call_id
        data["updated_at"] = datetime.now(timezone.utc).isoformat()

        response = await self._execute(
            "upsert call",
            lambda client: (
                client.table(self.settings.CALLS_TABLE)
                .upsert(data, on_conflict="call_id")
            )
        )

        if not response.data:
            raise StoreError("Upsert returned no data", call_id=call_id)

        logger.info(f"Upserted call {call_id}: {sorted(fields.keys())}")
        return CallRecord(**response.data[0])

    async def update_call_status(
        self,
        call_id: str,
        status: CallStatus,
        last_event_type: Optional[str] = None
    ) -> CallRecord:
        """Update call status."""
        data = {
            "status": status.value,
            "updated_at": datetime.now(timezone.utc).isoformat()
        }
        if last_event_type:
            data["last_event_type"] = last_event_type

        response = await self._execute(
            "update call status",
            lambda client: (
                client.table(self.settings.CALLS_TABLE)
                .update(data)
                .eq("call_id", call_id)
            )
        )

        if not response.data:
            raise StoreError("Status update matched no call", call_id=call_id)

        logger.info(f"Call {call_id} status updated to {status.value}")
        return CallRecord(**response.data[0])

    async def update_notification_status(self, call_id: str, notification_sent: bool) -> None:
        """Update call notification status."""
        await self._execute(
            "update notification status",
            lambda client: (
                client.table(self.settings.CALLS_TABLE)
                .update({
                    "notification_sent": notification_sent,
                    "updated_at": datetime.now(timezone.utc).isoformat()
                })
                .eq("call_id", call_id)
            )
        )

    # ===========================================
    # Analytics
    # ===========================================

    async def increment_daily_analytics(
        self,
        business_id: str,
        day: date,
        delta: AnalyticsDelta
    ) -> None:
        """Apply the delta through the atomic upsert-increment function."""
        params = {
            "p_business_id": business_id,
            "p_date": day.isoformat(),
            "p_total_calls": delta.total_calls,
            "p_successful_notifications": delta.successful_notifications,
            "p_failed_notifications": delta.failed_notifications,
            "p_total_duration": delta.total_duration,
            "p_total_cost": delta.total_cost,
        }

        await self._execute(
            "increment analytics",
            lambda client: client.rpc(self.settings.ANALYTICS_INCREMENT_FUNCTION, params)
        )

    # ===========================================
    # Notification Log
    # ===========================================

    async def log_notification(
        self,
        call_id: str,
        channel: str,
        status: str,
        recipient: Optional[str] = None,
        error_message: Optional[str] = None
    ) -> None:
        """Insert a notification log row."""
        await self._execute(
            "log notification",
            lambda client: (
                client.table(self.settings.NOTIFICATION_LOGS_TABLE)
                .insert({
                    "call_id": call_id,
                    "notification_type": channel,
                    "status": status,
                    "recipient": recipient,
                    "error_message": error_message
                })
            )
        )

    # ===========================================
    # Health Check
    # ===========================================

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            await self._execute(
                "health check",
                lambda client: client.table(self.settings.BUSINESSES_TABLE).select("id").limit(1)
            )
            return True
        except StoreError:
            return False


# Singleton instance
call_store = SupabaseCallStore()
