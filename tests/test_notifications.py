"""Tests for the notification service."""

import asyncio
import httpx
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from receptionist.core.exceptions import NotificationError
from receptionist.integrations.notifications import NotificationService
from receptionist.models import CallRecord, CallStatus, NotificationChannel, NotificationStatus


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def call_record() -> CallRecord:
    return CallRecord(
        call_id="call_test_12345",
        business_id="biz_other",
        status=CallStatus.COMPLETED,
        caller_name="Sarah Jones",
        callback_number="+15559876543",
        reason="Help with a clogged drain",
        call_summary="Help with a clogged drain",
        recording_url="https://storage.retell.ai/recordings/call_test_12345.wav",
        created_at=datetime(2024, 5, 1, 14, 30, tzinfo=timezone.utc)
    )


@pytest.fixture
def mock_slack():
    """Mock httpx client used for Slack webhook posts."""
    with patch("receptionist.integrations.notifications.httpx.AsyncClient") as mock:
        mock_instance = AsyncMock()
        mock_instance.post.return_value = MagicMock(status_code=200)
        mock.return_value.__aenter__.return_value = mock_instance
        mock.return_value.__aexit__.return_value = None
        yield mock_instance


class TestSlackMessage:
    """Tests for Slack Block Kit formatting."""

    def test_message_contents(self, call_record, other_business):
        message = NotificationService().format_slack_message(call_record, other_business)

        assert message["text"] == "New call for Other Trees"
        header = message["blocks"][0]
        assert header["text"]["text"] == "Help with a clogged drain - Other Trees"

        fields = [field["text"] for field in message["blocks"][1]["fields"]]
        assert "*Name:* Sarah Jones" in fields
        assert "*Callback:* +15559876543" in fields
        assert "*Address:* Not provided" in fields
        assert "*Reason:* Help with a clogged drain" in fields

        assert "call_test_12345.wav|Download Audio" in message["blocks"][2]["text"]["text"]
        assert "Call ID: call_test_12345" in message["blocks"][3]["elements"][0]["text"]

    def test_message_without_summary_or_recording(self, call_record, other_business):
        call = call_record.model_copy(update={"call_summary": None, "recording_url": None, "created_at": None})

        message = NotificationService().format_slack_message(call, other_business)

        assert message["blocks"][0]["text"]["text"] == "Customer inquiry - Other Trees"
        assert message["blocks"][2]["text"]["text"] == "*Recording:* Not available"
        assert message["blocks"][3]["elements"][0]["text"].startswith("Unknown time")


class TestSendNotifications:
    """Tests for SMS and Slack dispatch."""

    def test_all_channels_succeed(self, store, call_record, other_business, mock_slack):
        service = NotificationService(store=store)

        result = run(service.send_all_notifications(call_record, other_business))

        assert result.success is True
        assert result.errors == []
        assert result.channels[NotificationChannel.SMS].status == NotificationStatus.SENT
        assert result.channels[NotificationChannel.SLACK].status == NotificationStatus.SENT

        mock_slack.post.assert_awaited_once()
        url = mock_slack.post.call_args[0][0]
        assert url == other_business.slack_webhook_url
        assert mock_slack.post.call_args[1]["json"]["text"] == "New call for Other Trees"

        logged = [(log["notification_type"], log["status"]) for log in store.notification_logs]
        assert logged == [("sms", "sent"), ("slack", "sent")]

    def test_slack_skipped_without_webhook(self, store, call_record, business, mock_slack):
        service = NotificationService(store=store)

        result = run(service.send_all_notifications(call_record, business))

        assert result.success is True
        assert result.channels[NotificationChannel.SLACK].status == NotificationStatus.SKIPPED
        mock_slack.post.assert_not_called()
        assert [log["notification_type"] for log in store.notification_logs] == ["sms"]

    def test_slack_non_200_is_failure(self, store, call_record, other_business, mock_slack):
        mock_slack.post.return_value = MagicMock(status_code=500)
        service = NotificationService(store=store)

        result = run(service.send_all_notifications(call_record, other_business))

        assert result.success is False
        slack = result.channels[NotificationChannel.SLACK]
        assert slack.status == NotificationStatus.FAILED
        assert "500" in slack.error
        assert result.errors == [f"Slack: {slack.error}"]
        assert store.notification_logs[-1]["status"] == "failed"

    def test_slack_timeout_is_failure(self, store, call_record, other_business, mock_slack):
        mock_slack.post.side_effect = httpx.TimeoutException("timed out")
        service = NotificationService(store=store)

        result = run(service.send_all_notifications(call_record, other_business))

        assert result.success is False
        assert result.channels[NotificationChannel.SLACK].error == "Slack webhook timeout"

    def test_slack_connection_error_is_failure(self, store, call_record, other_business, mock_slack):
        mock_slack.post.side_effect = httpx.ConnectError("connection refused")
        service = NotificationService(store=store)

        result = run(service.send_all_notifications(call_record, other_business))

        assert result.success is False
        assert result.channels[NotificationChannel.SLACK].error == "connection refused"

    def test_log_failure_does_not_fail_delivery(self, store, call_record, other_business, mock_slack):
        store.fail_on.add("log_notification")
        service = NotificationService(store=store)

        result = run(service.send_all_notifications(call_record, other_business))

        assert result.success is True
        assert store.notification_logs == []

    def test_unexpected_channel_failure_raises_notification_error(
        self, store, call_record, other_business, mock_slack
    ):
        service = NotificationService(store=store)

        with patch.object(service, "format_slack_message", side_effect=KeyError("blocks")):
            with pytest.raises(NotificationError) as exc_info:
                run(service.send_all_notifications(call_record, other_business))

        assert exc_info.value.call_id == "call_test_12345"
        assert exc_info.value.error_type == "notification_error"
        mock_slack.post.assert_not_called()
