"""Analytics aggregator - per-business daily call counters."""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from receptionist.core.exceptions import ReceptionistError
from receptionist.models import AnalyticsDelta

logger = logging.getLogger(__name__)


def utc_today() -> date:
    """Current UTC date, the bucket for daily analytics rows."""
    return datetime.now(timezone.utc).date()


class AnalyticsAggregator:
    """
    Translates lifecycle transitions into atomic daily analytics increments.

    The call record is committed before any of these run, so failures here
    are logged and never surface to the event.
    """

    def __init__(self, store=None):
        """Initialize aggregator with an optional store override."""
        self._store = store

    @property
    def store(self):
        """Lazy load the default store."""
        if self._store is None:
            from receptionist.core.database import call_store
            self._store = call_store
        return self._store

    async def record_event(self, business_id: str, call_id: str) -> None:
        """Count one processed webhook event toward total_calls."""
        await self._increment(business_id, call_id, AnalyticsDelta(total_calls=1))

    async def record_notification_outcome(self, business_id: str, call_id: str, success: bool) -> None:
        """Count one notification dispatch by outcome."""
        if success:
            delta = AnalyticsDelta(successful_notifications=1)
        else:
            delta = AnalyticsDelta(failed_notifications=1)
        await self._increment(business_id, call_id, delta)

    async def record_duration(
        self,
        business_id: str,
        call_id: str,
        duration_seconds: float,
        cost: Optional[float]
    ) -> None:
        """Add a call's duration and cost the first time the record gets them."""
        delta = AnalyticsDelta(total_duration=duration_seconds, total_cost=cost or 0)
        await self._increment(business_id, call_id, delta)

    async def _increment(self, business_id: str, call_id: str, delta: AnalyticsDelta) -> None:
        if delta.is_empty():
            return

        day = utc_today()
        try:
            await self.store.increment_daily_analytics(business_id, day, delta)
            logger.debug(f"Analytics {business_id}/{day} += {delta.model_dump(exclude_defaults=True)}")
        except ReceptionistError as e:
            logger.error(f"Analytics update failed for business {business_id} (call {call_id}): {e}")
