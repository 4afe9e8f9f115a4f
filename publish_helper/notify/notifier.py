"""Progress and failure notifications for a publish run."""

import logging

from publish_helper.notify.webhooks import (
    DEFAULT_CHUNK_SIZE,
    WebhookResult,
    WebhookSender,
    WebhookStatus,
    chunk_code_blocks,
    create_sender,
)

logger = logging.getLogger(__name__)


class Notifier:
    """Echoes run progress to an optional webhook.

    The provider is resolved once when the notifier is created. Delivery
    failures are logged and never raised, so notifications cannot abort
    a publish.
    """

    def __init__(self, webhook_url: str | None, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.chunk_size = chunk_size
        self.sender: WebhookSender | None = None
        if webhook_url:
            self.sender = create_sender(webhook_url)
            if self.sender is None:
                logger.warning("Webhook URL is not a supported Discord, Slack or Teams URL")
            else:
                logger.debug("Webhook notifications via %s", self.sender.provider.value)

    @property
    def enabled(self) -> bool:
        return self.sender is not None

    def send(self, message: str) -> WebhookResult:
        """Send a message; failures are logged."""
        if self.sender is None:
            return WebhookResult(status=WebhookStatus.UNSUPPORTED, error="No webhook configured")

        result = self.sender.send(message)
        if not result.success:
            logger.warning("Webhook delivery failed: %s", result.error)
        return result

    def send_error(self, headline: str, error_text: str | None) -> list[WebhookResult]:
        """Send a headline followed by the error text in bounded code blocks."""
        if self.sender is None:
            return []
        results = [self.send(headline)]
        for block in chunk_code_blocks(error_text or "", self.chunk_size):
            results.append(self.send(block))
        return results
