"""
Triage router agent: classify a message into a RouterOutput.

State machine:

    ATTEMPT --ok--> DONE (retries=0)
       | parse / schema failure
       v
    REPAIR  --ok--> DONE (retries=1)
       | any failure
       v
    FALLBACK -----> DONE with the safe default (retries=2)

A ProviderError on ATTEMPT goes straight to FALLBACK unless
`repair_on_provider_error` is set; a repair prompt cannot fix a transport
or auth failure. `route` never raises and always returns a schema-valid
RouterOutput.
"""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.core.cache import CacheAdapter, hash_key
from app.core.logging import get_logger
from app.core.metrics import record_cache_hit, record_cache_miss, record_router_outcome
from app.core.tracing import record_exception, span
from app.models.triage import UserContext
from app.services.ai.llm_client import (
    ChatOptions,
    LLMMessage,
    LLMProvider,
    ProviderError,
    TokenUsage,
)
from app.services.ai.prompts import (
    get_repair_system_prompt,
    get_repair_user_prompt,
    get_router_system_prompt,
    get_router_user_prompt,
)
from app.services.ai.schema import (
    RouterOutput,
    RouterValidationResult,
    get_safe_default_router_output,
    parse_router_output,
    validate_router_payload,
)
from app.services.ai.taxonomy import classify_risk

logger = get_logger(__name__)

ATTEMPT_OPTIONS = ChatOptions(temperature=0.3, max_tokens=1024, json_mode=True)
REPAIR_OPTIONS = ChatOptions(temperature=0.1, max_tokens=1024, json_mode=True)

ROUTER_CACHE_PREFIX = "triage:router"


class RouterOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    REPAIRED = "repaired"
    DEFAULTED = "defaulted"
    CACHED = "cached"


@dataclass
class RouterResult:
    output: RouterOutput
    retries: int
    outcome: RouterOutcome
    usage: Optional[TokenUsage] = None
    # Text of the first attempt when it failed validation, for debugging.
    raw_response: Optional[str] = None


@dataclass(frozen=True)
class _PassResult:
    validation: RouterValidationResult
    usage: Optional[TokenUsage] = None
    provider_failed: bool = False


def _add_usage(total: Optional[TokenUsage], usage: Optional[TokenUsage]) -> Optional[TokenUsage]:
    if usage is None:
        return total
    return usage if total is None else total + usage


def router_cache_key(message: str, user_context: Optional[UserContext] = None) -> str:
    context_json = (
        json.dumps(user_context.model_dump(mode="json", exclude_none=True), sort_keys=True)
        if user_context
        else ""
    )
    return f"{ROUTER_CACHE_PREFIX}:{hash_key(message.strip(), context_json)}"


class TriageRouterAgent:
    """Runs the router pass against one provider."""

    def __init__(
        self,
        provider: LLMProvider,
        cache: Optional[CacheAdapter] = None,
        cache_ttl_seconds: Optional[int] = None,
        repair_on_provider_error: bool = False,
    ):
        self._provider = provider
        self._cache = cache
        self._cache_ttl_seconds = cache_ttl_seconds
        self.repair_on_provider_error = repair_on_provider_error

    async def route(
        self,
        message: str,
        user_context: Optional[UserContext] = None,
    ) -> RouterResult:
        """Classify `message`. Never raises."""
        cached = await self._get_cached(message, user_context)
        if cached is not None:
            self._log_outcome(RouterOutcome.CACHED, message, cached, retries=0)
            return RouterResult(output=cached, retries=0, outcome=RouterOutcome.CACHED)

        # ATTEMPT
        attempt = await self._run_pass(
            "router.attempt",
            [
                LLMMessage(role="system", content=get_router_system_prompt()),
                LLMMessage(role="user", content=get_router_user_prompt(message, user_context)),
            ],
            ATTEMPT_OPTIONS,
        )
        usage = _add_usage(None, attempt.usage)

        if attempt.validation.ok:
            result = RouterResult(
                output=attempt.validation.output,
                retries=0,
                outcome=RouterOutcome.SUCCEEDED,
                usage=usage,
            )
            self._log_outcome(result.outcome, message, result.output, retries=0)
            await self._store_cached(message, user_context, result.output)
            return result

        raw_response = attempt.validation.raw_text

        if attempt.provider_failed and not self.repair_on_provider_error:
            return self._fallback(message, usage, raw_response, reason=attempt.validation.error)

        # REPAIR
        logger.warning(
            "router_validation_failed_attempting_repair",
            attempt=1,
            error=attempt.validation.error,
        )
        repair = await self._run_pass(
            "router.repair",
            [
                LLMMessage(role="system", content=get_repair_system_prompt()),
                LLMMessage(
                    role="user",
                    content=get_repair_user_prompt(raw_response, attempt.validation.error or ""),
                ),
            ],
            REPAIR_OPTIONS,
        )
        usage = _add_usage(usage, repair.usage)

        if repair.validation.ok:
            result = RouterResult(
                output=repair.validation.output,
                retries=1,
                outcome=RouterOutcome.REPAIRED,
                usage=usage,
                raw_response=raw_response,
            )
            self._log_outcome(result.outcome, message, result.output, retries=1)
            await self._store_cached(message, user_context, result.output)
            return result

        # FALLBACK
        return self._fallback(
            message,
            usage,
            raw_response,
            reason=f"Repair attempt failed: {repair.validation.error}",
        )

    async def _run_pass(
        self,
        span_name: str,
        messages,
        options: ChatOptions,
    ) -> _PassResult:
        with span(span_name) as current:
            try:
                response = await self._provider.chat(messages, options)
            except ProviderError as exc:
                record_exception(exc)
                return _PassResult(
                    validation=RouterValidationResult(error=f"Router error: {exc}"),
                    provider_failed=True,
                )
            except Exception as exc:
                record_exception(exc)
                logger.error(
                    "router_pass_unexpected_error",
                    stage=span_name,
                    error=str(exc),
                    error_type=type(exc).__name__,
                    exc_info=True,
                )
                return _PassResult(
                    validation=RouterValidationResult(error=f"Router error: {exc}"),
                )

            try:
                validation = parse_router_output(response.text)
            except Exception as exc:
                record_exception(exc)
                logger.error(
                    "router_output_unparseable",
                    stage=span_name,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                validation = RouterValidationResult(
                    error=f"Failed to parse router output: {exc}", raw_text=response.text
                )
            current.set_attribute("router.valid", validation.ok)
            return _PassResult(validation=validation, usage=response.usage)

    def _fallback(
        self,
        message: str,
        usage: Optional[TokenUsage],
        raw_response: Optional[str],
        reason: Optional[str],
    ) -> RouterResult:
        output = get_safe_default_router_output()
        logger.warning("router_fallback_to_safe_default", reason=reason)
        self._log_outcome(RouterOutcome.DEFAULTED, message, output, retries=2)
        return RouterResult(
            output=output,
            retries=2,
            outcome=RouterOutcome.DEFAULTED,
            usage=usage,
            raw_response=raw_response,
        )

    def _log_outcome(
        self,
        outcome: RouterOutcome,
        message: str,
        output: RouterOutput,
        retries: int,
    ) -> None:
        record_router_outcome(outcome.value)
        logger.info(
            f"router_pass_{outcome.value}",
            retries=retries,
            router_output=output.model_dump(mode="json"),
            keyword_risk=classify_risk(message).value,
        )

    async def _get_cached(
        self, message: str, user_context: Optional[UserContext]
    ) -> Optional[RouterOutput]:
        if self._cache is None:
            return None

        cached = await self._cache.get(router_cache_key(message, user_context))
        if cached is None:
            record_cache_miss("router")
            return None

        validation = validate_router_payload(cached)
        if not validation.ok:
            # Stale entry from an older taxonomy; treat as a miss.
            record_cache_miss("router")
            logger.warning("router_cache_schema_invalid", error=validation.error)
            return None

        record_cache_hit("router")
        return validation.output

    async def _store_cached(
        self, message: str, user_context: Optional[UserContext], output: RouterOutput
    ) -> None:
        if self._cache is None:
            return
        stored = await self._cache.set(
            router_cache_key(message, user_context),
            output.model_dump(mode="json"),
            self._cache_ttl_seconds,
        )
        if not stored:
            logger.warning("router_cache_set_failed")
