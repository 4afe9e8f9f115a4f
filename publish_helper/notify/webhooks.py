"""Webhook providers for status notifications.

Supported providers, detected from the webhook URL:
- Discord (discord.com/api/webhooks/)
- Slack (hooks.slack.com/services/)
- Microsoft Teams (teams.microsoft.com/l/, webhook.office.com)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from publish_helper.utils.http import post_json

# Discord rejects messages above 2000 characters
DEFAULT_CHUNK_SIZE = 1900

FENCE = "```"


class WebhookProvider(str, Enum):
    """Known webhook providers."""

    DISCORD = "discord"
    SLACK = "slack"
    TEAMS = "teams"


class WebhookStatus(Enum):
    """Outcome of a webhook delivery."""

    SUCCESS = "success"
    HTTP_ERROR = "http_error"
    NETWORK_ERROR = "network_error"
    UNSUPPORTED = "unsupported"


@dataclass
class WebhookResult:
    """Result of sending a webhook message.

    Attributes:
        status: Delivery outcome
        http_status: HTTP status code, if a response was received
        error: Error description for failed deliveries
    """

    status: WebhookStatus
    http_status: int | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status == WebhookStatus.SUCCESS

    @classmethod
    def ok(cls, http_status: int | None = None) -> "WebhookResult":
        return cls(status=WebhookStatus.SUCCESS, http_status=http_status)


class WebhookSender(ABC):
    """Sends plain text/markdown messages to one webhook URL."""

    provider: ClassVar[WebhookProvider]
    url_markers: ClassVar[tuple[str, ...]]

    def __init__(self, url: str, timeout: int = 30) -> None:
        self.url = url
        self.timeout = timeout

    @classmethod
    def matches(cls, url: str) -> bool:
        return any(marker in url for marker in cls.url_markers)

    @abstractmethod
    def build_payload(self, message: str) -> dict[str, Any]:
        """Build the provider-specific JSON body."""

    def send(self, message: str) -> WebhookResult:
        """POST the message and classify the outcome. Never raises."""
        response = post_json(self.url, self.build_payload(message), timeout=self.timeout)
        if response.network_error:
            return WebhookResult(
                status=WebhookStatus.NETWORK_ERROR,
                error=f"Failed to send message: {response.body}",
            )
        if not response.ok:
            return WebhookResult(
                status=WebhookStatus.HTTP_ERROR,
                http_status=response.status,
                error=f"Failed to send message: {response.status} {response.reason}".strip(),
            )
        return WebhookResult.ok(response.status)


class DiscordWebhook(WebhookSender):
    provider = WebhookProvider.DISCORD
    url_markers = ("discord.com/api/webhooks/",)

    def build_payload(self, message: str) -> dict[str, Any]:
        return {"content": message}


class SlackWebhook(WebhookSender):
    provider = WebhookProvider.SLACK
    url_markers = ("hooks.slack.com/services/",)

    def build_payload(self, message: str) -> dict[str, Any]:
        return {"text": message}


class TeamsWebhook(WebhookSender):
    provider = WebhookProvider.TEAMS
    url_markers = ("teams.microsoft.com/l/", "webhook.office.com/")

    def build_payload(self, message: str) -> dict[str, Any]:
        return {"text": message}


SENDERS: tuple[type[WebhookSender], ...] = (DiscordWebhook, SlackWebhook, TeamsWebhook)


def detect_provider(url: str | None) -> WebhookProvider | None:
    """Detect the webhook provider from its URL."""
    if not url:
        return None
    for sender_class in SENDERS:
        if sender_class.matches(url):
            return sender_class.provider
    return None


def create_sender(url: str) -> WebhookSender | None:
    """Create the sender for a webhook URL, or None if the URL is not recognized."""
    for sender_class in SENDERS:
        if sender_class.matches(url):
            return sender_class(url)
    return None


def send_webhook_message(url: str, message: str) -> WebhookResult:
    """Send a message to a webhook URL.

    Returns:
        WebhookResult; an unrecognized URL yields UNSUPPORTED, not an exception
    """
    sender = create_sender(url)
    if sender is None:
        return WebhookResult(
            status=WebhookStatus.UNSUPPORTED,
            error="Unsupported webhook URL",
        )
    return sender.send(message)


def chunk_code_blocks(text: str, max_size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """Split long text into fenced code blocks no longer than max_size.

    Lines are kept intact where possible; a single line longer than a block
    is hard-split.

    Args:
        text: Text to split (e.g. npm error output)
        max_size: Maximum length of each block, fences included

    Returns:
        List of fenced blocks (empty for empty text)
    """
    text = text.replace(FENCE, "'''").strip()
    if not text:
        return []

    # "```\n" + body + "\n```"
    budget = max_size - (len(FENCE) * 2 + 2)
    if budget <= 0:
        raise ValueError(f"max_size {max_size} is too small for a fenced block")

    bodies: list[str] = []
    current = ""
    for line in text.splitlines():
        while len(line) > budget:
            if current:
                bodies.append(current)
                current = ""
            bodies.append(line[:budget])
            line = line[budget:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > budget:
            bodies.append(current)
            current = line
        else:
            current = candidate
    if current:
        bodies.append(current)

    return [f"{FENCE}\n{body}\n{FENCE}" for body in bodies]
