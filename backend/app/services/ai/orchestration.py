"""
Triage orchestration: router pass, then answer pass.

Responsibilities:
- Reject blank messages before any provider call
- Build one provider per pass from the (vendor, purpose) factory
- Run router then answer sequentially (the answer prompt embeds the router output)
- Assemble the response envelope with per-pass latency, retries and token usage

NON-responsibilities:
- Does NOT persist anything
- Does NOT retry the answer pass
"""
import time
from typing import Callable, Optional

from app.core.cache import CacheAdapter
from app.core.config import Settings
from app.core.logging import bind_triage_context, get_logger
from app.models.triage import TriageMetadata, TriageRequest, TriageResponse
from app.services.ai.agents.answer import TriageAnswerAgent
from app.services.ai.agents.router import TriageRouterAgent
from app.services.ai.factory import ModelPurpose, Vendor, create_provider
from app.services.ai.llm_client import LLMProvider

logger = get_logger(__name__)

ProviderFactory = Callable[[Vendor, ModelPurpose, Settings], LLMProvider]


class TriageInputError(ValueError):
    """Raised for client input that must be rejected with a 400."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def validate_request(request: TriageRequest) -> str:
    """
    Return the message to triage.

    Raises:
        TriageInputError if the message is missing or blank.
    """
    if request.message is None or not request.message.strip():
        raise TriageInputError("message is required and cannot be empty")
    return request.message


def _elapsed_ms(start: float) -> int:
    return int((time.time() - start) * 1000)


class TriageOrchestrationService:
    """Sequences the two passes for one request at a time; holds no per-request state."""

    def __init__(
        self,
        settings: Settings,
        cache: Optional[CacheAdapter] = None,
        provider_factory: ProviderFactory = create_provider,
    ):
        self.settings = settings
        self._cache = cache
        self._provider_factory = provider_factory

    def _router_agent(self, vendor: Vendor) -> TriageRouterAgent:
        provider = self._provider_factory(vendor, ModelPurpose.ROUTER, self.settings)
        return TriageRouterAgent(
            provider,
            cache=self._cache if self.settings.router_cache_enabled else None,
            cache_ttl_seconds=self.settings.cache_ttl_seconds,
            repair_on_provider_error=self.settings.router_repair_on_provider_error,
        )

    def _answer_agent(self, vendor: Vendor) -> TriageAnswerAgent:
        provider = self._provider_factory(vendor, ModelPurpose.ANSWER, self.settings)
        return TriageAnswerAgent(provider)

    async def triage(self, request: TriageRequest, request_id: str) -> TriageResponse:
        """
        Run the full triage flow.

        Raises:
            TriageInputError for a blank message.
            Any provider/configuration error from the answer pass.
        """
        message = validate_request(request)
        vendor = Vendor(request.provider)
        bind_triage_context(provider=vendor.value, mode=request.mode)

        logger.info(
            "triage_request_received",
            request_id=request_id,
            provider=vendor.value,
            mode=request.mode,
            message_length=len(message),
            has_context=request.context is not None,
        )

        router_agent = self._router_agent(vendor)
        answer_agent = self._answer_agent(vendor)

        start = time.time()

        router_start = time.time()
        router_result = await router_agent.route(message, request.context)
        router_latency_ms = _elapsed_ms(router_start)

        answer_start = time.time()
        answer_result = await answer_agent.answer(
            message,
            router_result.output,
            request.context,
            request.mode,
        )
        answer_latency_ms = _elapsed_ms(answer_start)

        total_latency_ms = _elapsed_ms(start)

        response = TriageResponse(
            request_id=request_id,
            router=router_result.output,
            answer_markdown=answer_result.markdown,
            metadata=TriageMetadata(
                router_latency_ms=router_latency_ms,
                answer_latency_ms=answer_latency_ms,
                total_latency_ms=total_latency_ms,
                router_retries=router_result.retries,
                router_tokens=router_result.usage,
                answer_tokens=answer_result.usage,
            ),
        )

        logger.info(
            "triage_response_sent",
            request_id=request_id,
            provider=vendor.value,
            router_outcome=router_result.outcome.value,
            router_retries=router_result.retries,
            contract_valid=answer_result.validation.valid,
            router_latency_ms=router_latency_ms,
            answer_latency_ms=answer_latency_ms,
            total_latency_ms=total_latency_ms,
        )
        return response
