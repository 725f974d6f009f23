"""
Anthropic messages adapter.

The messages API has no system-role turn: all system messages are joined
into the top-level `system` parameter and only user/assistant turns are
sent as the conversation. There is no JSON-mode flag, so `json_mode` is
left to the prompt.
"""
from typing import Any, Dict, Optional, Sequence, Tuple

from app.services.ai.llm_client import ChatOptions, LLMMessage, LLMProvider, TokenUsage

DEFAULT_MAX_TOKENS = 4096


class AnthropicProvider(LLMProvider):
    vendor = "anthropic"
    chat_path = "/messages"

    def __init__(self, *args, api_version: str = "2023-06-01", **kwargs):
        super().__init__(*args, **kwargs)
        self.api_version = api_version

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
        }

    def build_payload(self, messages: Sequence[LLMMessage], options: ChatOptions) -> Dict[str, Any]:
        system_prompt = "\n\n".join(m.content for m in messages if m.role == "system")
        conversation = [
            {"role": "assistant" if m.role == "assistant" else "user", "content": m.content}
            for m in messages
            if m.role != "system"
        ]

        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": options.max_tokens or DEFAULT_MAX_TOKENS,
            "temperature": options.temperature,
            "messages": conversation,
        }
        if system_prompt:
            payload["system"] = system_prompt
        return payload

    def parse_response(self, data: Dict[str, Any]) -> Tuple[str, Optional[TokenUsage]]:
        text = "\n".join(
            block.get("text", "")
            for block in data.get("content") or []
            if block.get("type") == "text"
        )

        usage = None
        raw_usage = data.get("usage")
        if raw_usage:
            input_tokens = int(raw_usage.get("input_tokens") or 0)
            output_tokens = int(raw_usage.get("output_tokens") or 0)
            usage = TokenUsage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            )
        return text, usage
