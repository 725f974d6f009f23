"""
OpenAI chat completions adapter.

Uses POST {api_base}/chat/completions and the native JSON mode
(response_format={"type": "json_object"}) when requested.
"""
from typing import Any, Dict, Optional, Sequence, Tuple

from app.services.ai.llm_client import ChatOptions, LLMMessage, LLMProvider, TokenUsage


class OpenAIProvider(LLMProvider):
    vendor = "openai"
    chat_path = "/chat/completions"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def build_payload(self, messages: Sequence[LLMMessage], options: ChatOptions) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": options.temperature,
        }
        if options.max_tokens is not None:
            payload["max_tokens"] = options.max_tokens
        if options.json_mode:
            payload["response_format"] = {"type": "json_object"}
        return payload

    def parse_response(self, data: Dict[str, Any]) -> Tuple[str, Optional[TokenUsage]]:
        choices = data.get("choices") or [{}]
        text = (choices[0].get("message") or {}).get("content") or ""

        usage = None
        raw_usage = data.get("usage")
        if raw_usage:
            prompt_tokens = int(raw_usage.get("prompt_tokens") or 0)
            completion_tokens = int(raw_usage.get("completion_tokens") or 0)
            usage = TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=int(raw_usage.get("total_tokens") or prompt_tokens + completion_tokens),
            )
        return text, usage
