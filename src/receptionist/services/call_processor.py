"""Call Processor Service - Reconciles Retell lifecycle events into call records."""

import asyncio
import logging
from typing import Dict, Any, Optional, Callable, Awaitable

from pydantic import BaseModel

from receptionist.core.config import get_settings, format_phone_number, calculate_call_cost
from receptionist.core.exceptions import ValidationError, NotFoundError, StoreError, NotificationError
from receptionist.extraction import extract_call_information, calculate_confidence
from receptionist.models import (
    Business,
    CallEvent,
    CallRecord,
    CallStatus,
    EventAction,
    EventKind,
    EventResult,
    ExtractedInformation,
    RetellWebhookPayload,
    resolve_event
)
from receptionist.services.analytics import AnalyticsAggregator
from receptionist.services.locks import KeyedLock

logger = logging.getLogger(__name__)


class HandlerOutcome(BaseModel):
    """What an event handler did to the call record while holding its lock."""
    record: Optional[CallRecord] = None
    action: EventAction
    message: str
    notify: bool = False
    duration_added: bool = False
    extracted_info: Optional[ExtractedInformation] = None
    confidence: Optional[float] = None


def transition_allowed(current: Optional[CallStatus], target: CallStatus, kind: EventKind) -> bool:
    """
    Whether a record in ``current`` status may move to ``target``.

    Status only moves forward. The one override is an Analyzed event, which
    always lands on completed.
    """
    if current is None or current == target or current == CallStatus.IN_PROGRESS:
        return True
    return kind == EventKind.ANALYZED and target == CallStatus.COMPLETED


class CallProcessor:
    """
    Main orchestration service for Retell call events.

    Every event for a call goes through the same steps:
    1. Resolve the event variant and the owning business
    2. Under the per-call lock, read the record and apply the variant's handler
    3. After the lock, update analytics and dispatch notifications

    Events for different calls run fully concurrently.
    """

    def __init__(self, store=None, notifier=None, analytics: Optional[AnalyticsAggregator] = None):
        """Initialize processor with lazy-loaded dependencies."""
        self._settings = None
        self._store = store
        self._notifier = notifier
        self._analytics = analytics
        self._locks = KeyedLock()
        self._handlers: Dict[EventKind, Callable[..., Awaitable[HandlerOutcome]]] = {
            EventKind.STARTED: self._handle_started,
            EventKind.ENDED: self._handle_ended,
            EventKind.ANALYZED: self._handle_analyzed,
            EventKind.LEGACY: self._handle_legacy,
        }
        logger.info("Call processor initialized")

    @property
    def settings(self):
        """Lazy load settings."""
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def store(self):
        """Lazy load the default store."""
        if self._store is None:
            from receptionist.core.database import call_store
            self._store = call_store
        return self._store

    @property
    def notifier(self):
        """Lazy load the default notification service."""
        if self._notifier is None:
            from receptionist.integrations.notifications import NotificationService
            self._notifier = NotificationService(store=self.store)
        return self._notifier

    @property
    def analytics(self) -> AnalyticsAggregator:
        """Lazy load the analytics aggregator."""
        if self._analytics is None:
            self._analytics = AnalyticsAggregator(store=self.store)
        return self._analytics

    @property
    def locks(self) -> KeyedLock:
        return self._locks

    async def process_webhook(self, payload: RetellWebhookPayload) -> EventResult:
        """
        Process one webhook delivery.

        Validation, unknown business and store failures come back as a
        failure EventResult; redelivering the same event is always safe.

        Args:
            payload: Validated Retell webhook payload

        Returns:
            EventResult describing what happened to the call record
        """
        call_id = payload.call_id
        event_label = "unresolved event"
        business: Optional[Business] = None

        try:
            event = resolve_event(payload)
            event_label = event.label
            logger.info(f"Processing {event_label} for call {call_id}")

            business = await self._resolve_business(payload)

            async with self._locks.acquire(call_id):
                existing = await self.store.get_call(call_id)
                self._check_business(existing, business, call_id)
                outcome = await self._handlers[event.kind](event, business, existing)

        except (ValidationError, NotFoundError, StoreError) as e:
            business_id = business.id if business else None
            logger.error(
                f"Failed {event_label} for call {call_id} "
                f"(business {business_id}): {e.error_type}: {e.message}"
            )
            return EventResult(
                success=False,
                call_id=call_id,
                business_id=business_id,
                event_type=event_label,
                action=EventAction.FAILED,
                message=f"Failed to process {event_label}",
                error_type=e.error_type,
                error=e.message
            )

        await self._record_analytics(outcome, business, call_id)

        notifications_sent = False
        if outcome.notify and outcome.record is not None:
            notifications_sent = await self._dispatch_notifications(outcome.record, business)

        logger.info(
            f"Call {call_id} {event_label}: {outcome.action.value} "
            f"(status={outcome.record.status.value if outcome.record else None})"
        )

        return EventResult(
            success=True,
            call_id=call_id,
            business_id=business.id,
            event_type=event_label,
            action=outcome.action,
            status=outcome.record.status if outcome.record else None,
            notifications_sent=notifications_sent,
            extracted_info=outcome.extracted_info,
            confidence=outcome.confidence,
            message=outcome.message
        )

    # ===========================================
    # Resolution
    # ===========================================

    async def _resolve_business(self, payload: RetellWebhookPayload) -> Business:
        """Find the active business that owns the called number."""
        phone = format_phone_number(payload.to_number)
        if not phone:
            raise ValidationError(f"Invalid to_number: {payload.to_number}", call_id=payload.call_id)

        business = await self.store.find_business_by_phone(phone)
        if business is None:
            raise NotFoundError(f"No active business for phone {phone}", call_id=payload.call_id)

        return business

    def _check_business(self, existing: Optional[CallRecord], business: Business, call_id: str) -> None:
        """A stored record is never reassigned to another business."""
        if existing is not None and existing.business_id != business.id:
            raise ValidationError(
                f"Call belongs to business {existing.business_id}, event resolved to {business.id}",
                call_id=call_id
            )

    # ===========================================
    # Event Handlers
    # ===========================================

    async def _handle_started(
        self,
        event: CallEvent,
        business: Business,
        existing: Optional[CallRecord]
    ) -> HandlerOutcome:
        """Create the minimal in-progress record; a duplicate only merges call data."""
        if not transition_allowed(existing.status if existing else None, CallStatus.IN_PROGRESS, event.kind):
            return self._ignored(event, existing, "stale call_started after terminal status")

        fields = self._call_fields(event.payload)
        fields.update(business_id=business.id, status=CallStatus.IN_PROGRESS, last_event_type=event.label)

        return await self._write(event, existing, fields)

    async def _handle_ended(
        self,
        event: CallEvent,
        business: Business,
        existing: Optional[CallRecord]
    ) -> HandlerOutcome:
        """Mark the call completed without touching extracted fields."""
        if not transition_allowed(existing.status if existing else None, CallStatus.COMPLETED, event.kind):
            return self._ignored(event, existing, f"call_ended for {existing.status.value} call")

        if existing is None:
            fields = self._call_fields(event.payload)
            fields.update(business_id=business.id, status=CallStatus.COMPLETED, last_event_type=event.label)
            return await self._write(event, existing, fields)

        record = await self.store.update_call_status(event.call_id, CallStatus.COMPLETED, event.label)
        return HandlerOutcome(
            record=record,
            action=EventAction.UPDATED,
            message="Call marked completed"
        )

    async def _handle_analyzed(
        self,
        event: CallEvent,
        business: Business,
        existing: Optional[CallRecord]
    ) -> HandlerOutcome:
        """Extract caller information, merge it and notify the business."""
        fields = self._call_fields(event.payload)
        extracted, confidence = await self._extract(event.payload)
        if extracted is not None:
            fields.update(extracted.to_record_fields())
            fields["extraction_confidence"] = confidence

        fields.update(business_id=business.id, status=CallStatus.COMPLETED, last_event_type=event.label)

        outcome = await self._write(event, existing, fields)
        outcome.extracted_info = extracted
        outcome.confidence = confidence
        outcome.notify = extracted is not None and extracted.call_summary is not None
        return outcome

    async def _handle_legacy(
        self,
        event: CallEvent,
        business: Business,
        existing: Optional[CallRecord]
    ) -> HandlerOutcome:
        """Apply a status-only payload in one step."""
        status = event.legacy_status

        if existing is not None and existing.status.is_terminal and self._reached_by_explicit_event(existing):
            return self._ignored(event, existing, "legacy event after explicit lifecycle event")

        if not transition_allowed(existing.status if existing else None, status, event.kind):
            return self._ignored(event, existing, f"legacy {status.value} for {existing.status.value} call")

        fields = self._call_fields(event.payload)
        extracted, confidence = None, None
        if status == CallStatus.COMPLETED:
            extracted, confidence = await self._extract(event.payload)
            if extracted is not None:
                fields.update(extracted.to_record_fields())
                fields["extraction_confidence"] = confidence

        fields.update(business_id=business.id, status=status, last_event_type=event.label)

        outcome = await self._write(event, existing, fields)
        outcome.extracted_info = extracted
        outcome.confidence = confidence
        outcome.notify = status == CallStatus.COMPLETED
        return outcome

    # ===========================================
    # Helpers
    # ===========================================

    def _call_fields(self, payload: RetellWebhookPayload) -> Dict[str, Any]:
        """Non-null call data carried by the payload."""
        fields = {
            "from_number": payload.from_number,
            "to_number": payload.to_number,
            "recording_url": payload.recording_url,
            "transcript_text": payload.get_transcript(),
            "duration_seconds": payload.call_duration,
            "cost": calculate_call_cost(payload.call_duration, self.settings.RETELL_COST_PER_MINUTE),
        }
        return {key: value for key, value in fields.items() if value is not None}

    async def _extract(self, payload: RetellWebhookPayload):
        """Run the extraction engine off the event loop when a transcript exists."""
        transcript = payload.get_transcript()
        if transcript is None:
            logger.info(f"No transcript for call {payload.call_id} - skipping extraction")
            return None, None

        extracted = await asyncio.to_thread(extract_call_information, transcript)
        confidence = calculate_confidence(extracted)
        logger.info(f"Extraction for call {payload.call_id}: confidence={confidence}")
        return extracted, confidence

    async def _write(
        self,
        event: CallEvent,
        existing: Optional[CallRecord],
        fields: Dict[str, Any]
    ) -> HandlerOutcome:
        """Upsert the record and note which analytics the write earned."""
        record = await self.store.upsert_call(event.call_id, fields)

        created = existing is None
        duration_added = "duration_seconds" in fields and (created or existing.duration_seconds is None)

        return HandlerOutcome(
            record=record,
            action=EventAction.CREATED if created else EventAction.UPDATED,
            message=f"Call record {'created' if created else 'updated'} from {event.label}",
            duration_added=duration_added
        )

    def _ignored(self, event: CallEvent, existing: Optional[CallRecord], reason: str) -> HandlerOutcome:
        logger.warning(f"Ignoring {event.label} for call {event.call_id}: {reason}")
        return HandlerOutcome(
            record=existing,
            action=EventAction.IGNORED,
            message=f"Ignored: {reason}"
        )

    @staticmethod
    def _reached_by_explicit_event(record: CallRecord) -> bool:
        return bool(record.last_event_type) and not record.last_event_type.startswith(EventKind.LEGACY.value)

    async def _record_analytics(self, outcome: HandlerOutcome, business: Business, call_id: str) -> None:
        # Every processed event counts, ignored and redelivered ones included.
        await self.analytics.record_event(business.id, call_id)

        if outcome.duration_added and outcome.record is not None:
            await self.analytics.record_duration(
                business.id,
                call_id,
                outcome.record.duration_seconds or 0,
                outcome.record.cost
            )

    async def _dispatch_notifications(self, record: CallRecord, business: Business) -> bool:
        """
        Notify the business and record the outcome.

        Runs after the call lock is released. A failure is recorded on the
        call and in analytics but never fails the event.
        """
        try:
            result = await self.notifier.send_all_notifications(record, business)
            success = result.success
            if not success:
                logger.warning(f"Notifications incomplete for call {record.call_id}: {result.errors}")
        except NotificationError as e:
            logger.error(f"Notification dispatch failed for call {record.call_id}: {e}")
            success = False

        try:
            await self.store.update_notification_status(record.call_id, success)
        except StoreError as e:
            logger.error(f"Failed to record notification status for call {record.call_id}: {e}")

        await self.analytics.record_notification_outcome(business.id, record.call_id, success)
        return success


# Singleton instance
call_processor = CallProcessor()
