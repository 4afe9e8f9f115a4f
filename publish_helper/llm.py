"""LLM-based summaries of diffs and commit logs.

The backend is selected from the API key prefix:
- sk-ant-  -> Anthropic (messages API)
- sk-or-   -> OpenRouter (chat completions)
- sk-      -> DeepSeek (chat completions)

Inputs above MAX_INPUT_LENGTH characters are summarized chunk by chunk;
after MAX_CHUNKS chunks the remainder is dropped and a truncation marker
is appended.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from publish_helper.utils.http import post_json

logger = logging.getLogger(__name__)

SummaryType = Literal["changelog", "commit", "podcast"]

MAX_INPUT_LENGTH = 100_000
MAX_CHUNKS = 10
TRUNCATION_MARKER = "[truncated]"
MAX_TOKENS = 500
TEMPERATURE = 0.7

PROMPTS: dict[str, str] = {
    "changelog": (
        "Generate a concise changelog summary from the provided text.\n"
        "Only include the most important changes and improvements.\n"
        "Use prefixes like 'Added:', 'Fixed:', 'Changed:' to categorize changes, ordered by type "
        "(e.g., 'Added: New feature X', 'Fixed: Bug in feature Y').\n"
        "Use bullet points for multiple changes if necessary and, if appropriate, code snippets "
        "or examples of how to use new or updated features.\n"
        "No whitespace at the start of the line.\n"
        "Example format:\n"
        "- New feature X that improves user experience\n"
        "- Bug in feature Y that caused crashes when xyz happened\n"
    ),
    "commit": (
        "Generate a concise commit message from the provided text - summarize the changes made "
        "in a clear and informative way.\n"
        "Use the commit description to explain the purpose and impact of the changes.\n"
        "Use bullet points for multiple changes if necessary; put multiple changes in one bullet "
        "point if they're essentially the same.\n"
        "No whitespace at the start of the line, no newlines, no markdown formatting.\n"
        "Example format:\n"
        "- New feature X that improves user experience\n"
        "- Bug in feature Y that caused crashes when xyz happened\n"
    ),
    "podcast": (
        "Generate a concise summary of the provided text as if it were a podcast episode "
        "transcript.\n"
        "Focus on the key points and insights discussed, making it engaging and easy to "
        "understand for listeners."
    ),
}


class LLMProvider(str, Enum):
    """Supported LLM backends."""

    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"
    DEEPSEEK = "deepseek"


ENDPOINTS: dict[LLMProvider, str] = {
    LLMProvider.ANTHROPIC: "https://api.anthropic.com/v1/messages",
    LLMProvider.OPENROUTER: "https://openrouter.ai/api/v1/chat/completions",
    LLMProvider.DEEPSEEK: "https://api.deepseek.com/v1/chat/completions",
}

DEFAULT_MODELS: dict[LLMProvider, str] = {
    LLMProvider.ANTHROPIC: "claude-opus-4-20250514",
    LLMProvider.OPENROUTER: "deepseek/deepseek-chat",
    LLMProvider.DEEPSEEK: "deepseek-chat",
}

ANTHROPIC_VERSION = "2023-06-01"


@dataclass
class SummaryResult:
    """Result of a summarization request.

    Attributes:
        success: Whether a summary was produced
        summary: Model output (success only)
        error: Error description (failure only)
        status: HTTP-like status code of the failure
    """

    success: bool
    summary: str = ""
    error: str | None = None
    status: int | None = None

    @classmethod
    def failed(cls, error: str, status: int) -> "SummaryResult":
        return cls(success=False, error=error, status=status)


def detect_llm_provider(api_key: str) -> LLMProvider | None:
    """Map an API key prefix to its backend."""
    if api_key.startswith("sk-ant-"):
        return LLMProvider.ANTHROPIC
    if api_key.startswith("sk-or-"):
        return LLMProvider.OPENROUTER
    if api_key.startswith("sk-"):
        return LLMProvider.DEEPSEEK
    return None


def get_prompt(summary_type: str) -> str:
    """Return the system prompt for a summary type.

    Raises:
        ValueError: For unknown summary types
    """
    try:
        return PROMPTS[summary_type]
    except KeyError:
        raise ValueError(f"Unknown summarization type: {summary_type}") from None


class Summarizer:
    """Sends text to the LLM backend selected by the API key."""

    def __init__(
        self,
        api_key: str | None,
        model: str | None = None,
        timeout: int = 120,
    ) -> None:
        self.api_key = api_key or ""
        self.provider = detect_llm_provider(self.api_key) if self.api_key else None
        self.model = model or (DEFAULT_MODELS[self.provider] if self.provider else None)
        self.timeout = timeout

    def summarize(self, text: str, summary_type: str = "changelog", prompt: str | None = None) -> SummaryResult:
        """Summarize text with a built-in prompt or a custom one.

        Args:
            text: Diff or commit log to summarize
            summary_type: One of 'changelog', 'commit', 'podcast'
            prompt: Custom system prompt (overrides summary_type)

        Returns:
            SummaryResult; network and API failures are returned, not raised
        """
        if not self.api_key:
            return SummaryResult.failed("No LLM API key provided", 400)
        if self.provider is None:
            return SummaryResult.failed("Unknown LLM API key format", 501)

        if prompt is None:
            try:
                prompt = get_prompt(summary_type)
            except ValueError as e:
                return SummaryResult.failed(str(e), 400)

        logger.info(
            "Using %s for summarization (Length: %s)", self.provider.value, f"{len(text):,}"
        )
        return self._summarize_chunked(self.provider, prompt, text)

    def _summarize_chunked(self, provider: LLMProvider, prompt: str, text: str) -> SummaryResult:
        if len(text) <= MAX_INPUT_LENGTH:
            return self._complete(provider, prompt, text)

        parts: list[str] = []
        chunks = [text[i : i + MAX_INPUT_LENGTH] for i in range(0, len(text), MAX_INPUT_LENGTH)]
        for index, chunk in enumerate(chunks):
            if index >= MAX_CHUNKS:
                parts.append(TRUNCATION_MARKER)
                break
            result = self._complete(provider, prompt, chunk)
            if not result.success:
                return result
            parts.append(result.summary)

        return SummaryResult(success=True, summary="\n\n".join(parts))

    def _complete(self, provider: LLMProvider, prompt: str, text: str) -> SummaryResult:
        url = ENDPOINTS[provider]
        payload, headers = self._build_request(provider, prompt, text)

        response = post_json(url, payload, headers=headers, timeout=self.timeout)
        if response.network_error:
            return SummaryResult.failed(f"Fetch Error: {response.body}", 500)
        if not response.ok:
            return SummaryResult.failed(f"API Error: {response.body}", response.status)

        try:
            data = response.json()
            return SummaryResult(success=True, summary=self._extract_text(provider, data).strip())
        except (ValueError, KeyError, IndexError, TypeError) as e:
            return SummaryResult.failed(f"Unexpected API response: {e}", 502)

    def _build_request(
        self, provider: LLMProvider, prompt: str, text: str
    ) -> tuple[dict[str, Any], dict[str, str]]:
        if provider == LLMProvider.ANTHROPIC:
            payload = {
                "model": self.model,
                "system": prompt,
                "messages": [{"role": "user", "content": text}],
                "max_tokens": MAX_TOKENS,
                "temperature": TEMPERATURE,
            }
            headers = {"x-api-key": self.api_key, "anthropic-version": ANTHROPIC_VERSION}
            return payload, headers

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": prompt},
                {"role": "user", "content": text},
            ],
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }
        return payload, {"Authorization": f"Bearer {self.api_key}"}

    def _extract_text(self, provider: LLMProvider, data: dict[str, Any]) -> str:
        if provider == LLMProvider.ANTHROPIC:
            return "".join(
                block.get("text", "") for block in data["content"] if block.get("type") == "text"
            )
        return str(data["choices"][0]["message"]["content"])
