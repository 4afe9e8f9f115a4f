"""Webhook notifications (Discord, Slack, Microsoft Teams)."""

from publish_helper.notify.notifier import Notifier
from publish_helper.notify.webhooks import (
    WebhookProvider,
    WebhookResult,
    WebhookSender,
    WebhookStatus,
    chunk_code_blocks,
    detect_provider,
    send_webhook_message,
)

__all__ = [
    "Notifier",
    "WebhookProvider",
    "WebhookResult",
    "WebhookSender",
    "WebhookStatus",
    "chunk_code_blocks",
    "detect_provider",
    "send_webhook_message",
]
