"""
Provider factory keyed by (vendor, purpose).

`purpose` selects which configured model serves the call: a small, fast
model for the router pass and a larger one for the answer pass.
"""
from enum import Enum
from typing import Optional

import httpx

from app.core.config import Settings
from app.services.ai.anthropic_provider import AnthropicProvider
from app.services.ai.llm_client import LLMProvider
from app.services.ai.openai_provider import OpenAIProvider


class Vendor(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class ModelPurpose(str, Enum):
    ROUTER = "router"
    ANSWER = "answer"


class ProviderNotConfiguredError(RuntimeError):
    """Raised when the requested vendor has no API key."""


def create_provider(
    vendor: Vendor,
    purpose: ModelPurpose,
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> LLMProvider:
    """
    Build the adapter for a vendor and call purpose.

    Raises:
        ProviderNotConfiguredError if the vendor's API key is missing.
        ValueError for an unknown vendor.
    """
    vendor = Vendor(vendor)
    purpose = ModelPurpose(purpose)

    if vendor is Vendor.OPENAI:
        if not settings.openai_api_key:
            raise ProviderNotConfiguredError("OPENAI_API_KEY not configured")
        model = (
            settings.openai_router_model
            if purpose is ModelPurpose.ROUTER
            else settings.openai_answer_model
        )
        return OpenAIProvider(
            model=model,
            api_key=settings.openai_api_key,
            api_base=settings.openai_api_base,
            timeout_seconds=settings.llm_timeout_seconds,
            transport=transport,
        )

    if not settings.anthropic_api_key:
        raise ProviderNotConfiguredError("ANTHROPIC_API_KEY not configured")
    model = (
        settings.anthropic_router_model
        if purpose is ModelPurpose.ROUTER
        else settings.anthropic_answer_model
    )
    return AnthropicProvider(
        model=model,
        api_key=settings.anthropic_api_key,
        api_base=settings.anthropic_api_base,
        timeout_seconds=settings.llm_timeout_seconds,
        transport=transport,
        api_version=settings.anthropic_api_version,
    )
