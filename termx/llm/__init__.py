"""OpenAI-compatible chat-completions provider - direct HTTP calls via httpx."""

import json
from abc import ABC, abstractmethod
from typing import Any

import httpx

from termx.exceptions import ConfigurationError, LLMAPIError, LLMError
from termx.llm.accumulator import (
    ContentCallback,
    Fragment,
    FragmentKind,
    TurnAccumulator,
    accumulate,
    accumulate_response,
    parse_sse_line,
)
from termx.llm.types import Message, ToolCall, ToolDefinition, Turn
from termx.logging import get_logger

log = get_logger(__name__)

__all__ = [
    "ContentCallback",
    "Fragment",
    "FragmentKind",
    "LLMProvider",
    "Message",
    "OpenAICompatibleProvider",
    "ToolCall",
    "ToolDefinition",
    "Turn",
    "TurnAccumulator",
    "accumulate",
    "create_provider",
    "get_provider",
    "set_provider",
]


class LLMProvider(ABC):
    """Abstract base class for chat model transports."""

    model: str = ""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
        on_content: ContentCallback | None = None,
    ) -> Turn:
        """Run one streamed model call and return the accumulated turn."""

    @abstractmethod
    async def complete_once(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
    ) -> Turn:
        """Run one non-streamed model call."""

    async def close(self) -> None:
        return None


class OpenAICompatibleProvider(LLMProvider):
    """Provider for any endpoint implementing ``POST /chat/completions``."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the provider.

        Args:
            base_url: Endpoint root, e.g. ``https://api.openai.com/v1``
            api_key: Bearer credential
            model: Model name sent with every request
            timeout: Per-request HTTP timeout in seconds
            client: Optional preconfigured client (tests inject a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            limits=httpx.Limits(max_keepalive_connections=8, keepalive_expiry=30.0),
        )

    @property
    def url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _build_body(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None,
        stream: bool,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "stream": stream,
        }
        if tools:
            body["tools"] = [t.to_dict() for t in tools]
        return body

    async def complete(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
        on_content: ContentCallback | None = None,
    ) -> Turn:
        """Stream a completion and reduce it into one Turn."""
        body = self._build_body(messages, tools, stream=True)
        try:
            log.debug("Calling chat endpoint", model=self.model, url=self.url, msg_count=len(messages))
            async with self.client.stream("POST", self.url, json=body, headers=self._headers()) as response:
                if not response.is_success:
                    error_text = (await response.aread()).decode("utf-8", errors="replace")
                    raise LLMAPIError(
                        f"Chat API error {response.status_code}: {error_text}",
                        status_code=response.status_code,
                    )

                content_type = response.headers.get("content-type", "")
                if "text/event-stream" not in content_type and "json" in content_type:
                    # Endpoint ignored the stream flag; treat as a single fragment batch.
                    payload = json.loads(await response.aread())
                    return accumulate_response(payload, on_content=on_content)

                accumulator = TurnAccumulator(on_content=on_content)
                async for line in response.aiter_lines():
                    for fragment in parse_sse_line(line):
                        accumulator.feed(fragment)
                    if accumulator.finished:
                        break
                return accumulator.build()

        except LLMError:
            raise
        except httpx.HTTPError as e:
            raise LLMAPIError(f"Chat streaming error: {e}")
        except json.JSONDecodeError as e:
            raise LLMError(f"Chat response decode error: {e}")

    async def complete_once(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
    ) -> Turn:
        """Generate a non-streamed completion."""
        body = self._build_body(messages, tools, stream=False)
        try:
            log.debug("Calling chat endpoint", model=self.model, url=self.url, stream=False)
            response = await self.client.post(self.url, json=body, headers=self._headers())

            if not response.is_success:
                raise LLMAPIError(
                    f"Chat API error {response.status_code}: {response.text}",
                    status_code=response.status_code,
                )

            return accumulate_response(response.json())

        except LLMError:
            raise
        except httpx.HTTPError as e:
            raise LLMAPIError(f"Chat HTTP error: {e}")
        except json.JSONDecodeError as e:
            raise LLMError(f"Chat response decode error: {e}")

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()


def create_provider(
    base_url: str,
    api_key: str,
    model: str,
    timeout: float = 60.0,
) -> LLMProvider:
    """Create a chat provider.

    Raises:
        ConfigurationError if the endpoint URL is missing
    """
    if not base_url:
        raise ConfigurationError(
            "No chat endpoint configured. Set model.base_url or OPENAI_BASE_URL."
        )
    return OpenAICompatibleProvider(
        base_url=base_url,
        api_key=api_key,
        model=model,
        timeout=timeout,
    )


# Global provider instance
_provider: LLMProvider | None = None


def get_provider() -> LLMProvider:
    """Get the global LLM provider instance."""
    global _provider
    if _provider is None:
        from termx.config import get_config

        cfg = get_config()
        _provider = create_provider(
            base_url=cfg.model.base_url,
            api_key=cfg.model.api_key,
            model=cfg.model.model,
            timeout=cfg.model.request_timeout,
        )
    return _provider


def set_provider(provider: LLMProvider | None) -> None:
    """Set the global LLM provider instance."""
    global _provider
    _provider = provider
