"""
Shared fixtures for triage tests.

Providers are replaced by in-memory stubs; no test performs a real HTTP call.
"""
import json
from typing import Any, Dict, List, Optional, Sequence, Union

import pytest

from app.core.config import Settings
from app.services.ai.contract import REQUIRED_SECTIONS
from app.services.ai.llm_client import ChatOptions, LLMMessage, LLMResponse, TokenUsage


VALID_ROUTER_PAYLOAD: Dict[str, Any] = {
    "domain": "plumbing",
    "decision_type": "diagnose",
    "risk_level": "medium",
    "posture": ["explainer", "risk_manager"],
    "assumptions": ["Leak is under the kitchen sink"],
    "must_include": ["Shut off the water supply"],
    "clarifying_questions": ["How long has it been leaking?"],
    "tooling": {"needs_local_resources": False, "needs_citations": False},
}

FULL_ANSWER = "\n\n".join(f"{section}\nContent." for section in REQUIRED_SECTIONS)


class StubProvider:
    """
    Scripted stand-in for an LLMProvider.

    Each call pops the next scripted item: a string becomes the response text,
    an exception instance is raised.
    """

    vendor = "stub"
    model = "stub-model"

    def __init__(self, script: Sequence[Union[str, Exception]], usage: Optional[TokenUsage] = None):
        self._script = list(script)
        self._usage = usage
        self.calls: List[Dict[str, Any]] = []

    async def chat(self, messages: List[LLMMessage], options: Optional[ChatOptions] = None) -> LLMResponse:
        self.calls.append({"messages": list(messages), "options": options})
        if not self._script:
            raise AssertionError("StubProvider called more times than scripted")
        item = self._script.pop(0)
        if isinstance(item, Exception):
            raise item
        return LLMResponse(text=item, usage=self._usage)


@pytest.fixture
def settings():
    """Settings with an OpenAI key only; nothing is read from the environment."""
    return Settings(openai_api_key="sk-test")


@pytest.fixture
def valid_router_json():
    return json.dumps(VALID_ROUTER_PAYLOAD)
