"""Business notifications for completed calls - SMS (via Retell) and Slack."""

import logging
from typing import Optional, Dict, Any
import httpx

from receptionist.core.config import get_settings
from receptionist.core.exceptions import NotificationError, StoreError
from receptionist.extraction import DEFAULT_SUMMARY
from receptionist.models import (
    Business,
    CallRecord,
    ChannelResult,
    NotificationChannel,
    NotificationResult,
    NotificationStatus
)

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Sends the caller details of a finished call to the business owner.

    SMS is delivered by Retell itself, so it is only logged here. Slack goes
    through the business's incoming webhook. Every attempt is written to the
    notification log.
    """

    def __init__(self, store=None):
        """Initialize service with an optional store override."""
        self._settings = None
        self._store = store

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

    async def send_all_notifications(
        self,
        call: CallRecord,
        business: Business
    ) -> NotificationResult:
        """
        Send SMS and Slack notifications for a call.

        Overall success requires SMS success and a Slack message that was
        either sent or skipped because no webhook is configured.

        Args:
            call: The processed call record
            business: The business that received the call

        Returns:
            NotificationResult with per-channel outcomes

        Raises:
            NotificationError: when a channel fails outside its own error handling
        """
        try:
            sms = await self.send_sms_notification(call, business)
            slack = await self.send_slack_notification(call, business)
        except Exception as e:
            raise NotificationError(f"Notification delivery failed: {e}", call_id=call.call_id) from e

        result = NotificationResult(
            channels={NotificationChannel.SMS: sms, NotificationChannel.SLACK: slack}
        )

        if not sms.success:
            result.errors.append(f"SMS: {sms.error}")
        if slack.status == NotificationStatus.FAILED:
            result.errors.append(f"Slack: {slack.error}")

        result.success = sms.success and slack.status != NotificationStatus.FAILED

        logger.info(
            f"Notifications for call {call.call_id}: "
            f"sms={sms.status.value}, slack={slack.status.value}, success={result.success}"
        )
        return result

    async def send_sms_notification(self, call: CallRecord, business: Business) -> ChannelResult:
        """Record the owner SMS, which Retell delivers on its own."""
        logger.info(
            f"SMS for call {call.call_id} handled by Retell "
            f"(business {business.id}, owner {business.owner_phone})"
        )
        await self._log_attempt(call.call_id, NotificationChannel.SMS, NotificationStatus.SENT, business.owner_phone)

        return ChannelResult(
            success=True,
            status=NotificationStatus.SENT,
            note="SMS handled by Retell AI"
        )

    async def send_slack_notification(self, call: CallRecord, business: Business) -> ChannelResult:
        """Post the call details to the business's Slack webhook."""
        if not business.slack_webhook_url:
            logger.warning(f"No Slack webhook configured for business {business.id} (call {call.call_id})")
            return ChannelResult(
                success=False,
                status=NotificationStatus.SKIPPED,
                error="No Slack webhook configured"
            )

        message = self.format_slack_message(call, business)

        try:
            async with httpx.AsyncClient(timeout=self.settings.SLACK_TIMEOUT_SECONDS) as client:
                response = await client.post(business.slack_webhook_url, json=message)

            if response.status_code != 200:
                raise httpx.HTTPStatusError(
                    f"Slack returned status {response.status_code}",
                    request=response.request,
                    response=response
                )

        except httpx.TimeoutException:
            error = "Slack webhook timeout"
        except httpx.HTTPError as e:
            error = str(e) or e.__class__.__name__
        else:
            logger.info(f"Slack notification sent for call {call.call_id}")
            await self._log_attempt(
                call.call_id,
                NotificationChannel.SLACK,
                NotificationStatus.SENT,
                business.slack_webhook_url
            )
            return ChannelResult(success=True, status=NotificationStatus.SENT)

        logger.error(f"Slack notification failed for call {call.call_id}: {error}")
        await self._log_attempt(
            call.call_id,
            NotificationChannel.SLACK,
            NotificationStatus.FAILED,
            business.slack_webhook_url,
            error
        )
        return ChannelResult(success=False, status=NotificationStatus.FAILED, error=error)

    def format_slack_message(self, call: CallRecord, business: Business) -> Dict[str, Any]:
        """Build the Slack Block Kit payload for a call."""
        timestamp = call.created_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip() if call.created_at else "Unknown time"

        if call.recording_url:
            recording = f"<{call.recording_url}|Download Audio>"
        else:
            recording = "Not available"

        return {
            "text": f"New call for {business.business_name}",
            "blocks": [
                {
                    "type": "header",
                    "text": {
                        "type": "plain_text",
                        "text": f"{call.call_summary or DEFAULT_SUMMARY} - {business.business_name}"
                    }
                },
                {
                    "type": "section",
                    "fields": [
                        {"type": "mrkdwn", "text": f"*Name:* {call.caller_name or 'Not provided'}"},
                        {"type": "mrkdwn", "text": f"*Callback:* {call.callback_number or 'Not provided'}"},
                        {"type": "mrkdwn", "text": f"*Address:* {call.address or 'Not provided'}"},
                        {"type": "mrkdwn", "text": f"*Reason:* {call.reason or 'Not provided'}"}
                    ]
                },
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": f"*Recording:* {recording}"}
                },
                {
                    "type": "context",
                    "elements": [
                        {"type": "mrkdwn", "text": f"{timestamp} | Call ID: {call.call_id}"}
                    ]
                }
            ]
        }

    async def _log_attempt(
        self,
        call_id: str,
        channel: NotificationChannel,
        status: NotificationStatus,
        recipient: Optional[str],
        error: Optional[str] = None
    ) -> None:
        """Write to the notification log; a failed write never fails delivery."""
        try:
            await self.store.log_notification(call_id, channel.value, status.value, recipient, error)
        except StoreError as e:
            logger.error(f"Failed to log {channel.value} notification for call {call_id}: {e}")


# Singleton instance
notification_service = NotificationService()
