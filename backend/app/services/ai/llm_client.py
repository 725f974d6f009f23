"""
Provider-agnostic async LLM client.

Every vendor adapter exposes one capability:

    chat(messages, options) -> LLMResponse(text, usage)

Adapters talk to the vendor HTTP APIs with httpx (no vendor SDKs) and
normalize token usage to {prompt_tokens, completion_tokens, total_tokens}.
No retries happen at this layer: any transport, HTTP status or payload
failure is raised to the caller as ProviderError.
"""
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

import httpx
from pydantic import BaseModel

from app.core.logging import get_logger
from app.core.metrics import record_llm_error, record_llm_request, record_llm_tokens
from app.core.tracing import record_exception, span

logger = get_logger(__name__)

VALID_ROLES = ("system", "user", "assistant")


class LLMMessage(BaseModel):
    """A role-tagged chat turn."""

    role: Literal["system", "user", "assistant"]
    content: str


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class LLMResponse(BaseModel):
    text: str
    usage: Optional[TokenUsage] = None


@dataclass(frozen=True)
class ChatOptions:
    """Per-call generation options."""

    temperature: float = 0.7
    max_tokens: Optional[int] = None
    # Ask for a JSON object; honoured where the vendor supports it.
    json_mode: bool = False


class ProviderError(Exception):
    """Raised when a provider call fails (network, auth, rate limit, bad payload)."""

    def __init__(
        self,
        vendor: str,
        message: str,
        status_code: Optional[int] = None,
        error_type: str = "provider_error",
    ):
        super().__init__(f"{vendor}: {message}")
        self.vendor = vendor
        self.status_code = status_code
        self.error_type = error_type


def validate_messages(messages: Sequence[LLMMessage]) -> None:
    """
    Reject message lists no vendor would accept.

    Raises:
        ValueError for an empty list, an unknown role or blank content.
    """
    if not messages:
        raise ValueError("Messages list cannot be empty")

    for msg in messages:
        if msg.role not in VALID_ROLES:
            raise ValueError(f"Invalid message role: {msg.role}")
        if not isinstance(msg.content, str) or not msg.content.strip():
            raise ValueError("Message content must be a non-empty string")


class LLMProvider(ABC):
    """Base class for vendor adapters."""

    vendor: str = "abstract"
    chat_path: str = ""

    def __init__(
        self,
        model: str,
        api_key: str,
        api_base: str,
        timeout_seconds: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.model = model
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @abstractmethod
    def _headers(self) -> Dict[str, str]:
        """Vendor auth and content headers."""

    @abstractmethod
    def build_payload(self, messages: Sequence[LLMMessage], options: ChatOptions) -> Dict[str, Any]:
        """Translate chat turns and options into the vendor request body."""

    @abstractmethod
    def parse_response(self, data: Dict[str, Any]) -> Tuple[str, Optional[TokenUsage]]:
        """Extract text and normalized usage from the vendor response body."""

    async def _post(self, json_payload: Dict[str, Any]) -> httpx.Response:
        url = f"{self.api_base}{self.chat_path}"
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self._transport
        ) as client:
            return await client.post(url, headers=self._headers(), json=json_payload)

    async def chat(
        self,
        messages: List[LLMMessage],
        options: Optional[ChatOptions] = None,
    ) -> LLMResponse:
        """
        Send chat turns and return the generated text with token usage.

        Raises:
            ValueError if the messages are malformed (no request is made).
            ProviderError for any transport, HTTP or payload failure.
        """
        options = options or ChatOptions()
        validate_messages(messages)
        payload = self.build_payload(messages, options)

        with span(
            "llm.chat",
            **{"llm.vendor": self.vendor, "llm.model": self.model, "llm.json_mode": options.json_mode},
        ):
            start = time.time()
            try:
                response = await self._post(payload)
            except httpx.TimeoutException as exc:
                record_llm_error(self.vendor, "timeout")
                record_exception(exc)
                logger.warning("llm_timeout", vendor=self.vendor, model=self.model, error=str(exc))
                raise ProviderError(self.vendor, f"request timed out: {exc}", error_type="timeout") from exc
            except httpx.HTTPError as exc:
                record_llm_error(self.vendor, "http_error")
                record_exception(exc)
                logger.warning(
                    "llm_http_error",
                    vendor=self.vendor,
                    model=self.model,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise ProviderError(self.vendor, str(exc), error_type="http_error") from exc
            finally:
                latency_ms = (time.time() - start) * 1000.0
                record_llm_request(self.vendor, self.model, latency_ms)

            if response.status_code >= 400:
                record_llm_error(self.vendor, f"status_{response.status_code}")
                logger.error(
                    "llm_api_error",
                    vendor=self.vendor,
                    model=self.model,
                    status_code=response.status_code,
                    body=response.text[:500],
                )
                error = ProviderError(
                    self.vendor,
                    f"HTTP {response.status_code}: {response.text[:200]}",
                    status_code=response.status_code,
                    error_type="api_error",
                )
                record_exception(error)
                raise error

            try:
                text, usage = self.parse_response(response.json())
            except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
                record_llm_error(self.vendor, "invalid_payload")
                record_exception(exc)
                raise ProviderError(
                    self.vendor, f"unexpected response payload: {exc}", error_type="invalid_payload"
                ) from exc

        if usage is not None:
            record_llm_tokens(self.vendor, self.model, usage.prompt_tokens, usage.completion_tokens)

        logger.debug(
            "llm_completion",
            vendor=self.vendor,
            model=self.model,
            latency_ms=int(latency_ms),
            tokens=usage.model_dump() if usage else None,
        )
        return LLMResponse(text=text, usage=usage)
