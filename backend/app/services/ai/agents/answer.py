"""
Answer agent: generate the user-facing markdown for a classified message.

One generation call, no repair loop. The result is checked against the
section contract; a broken contract is logged and flagged inline, but the
text is still returned. Provider errors propagate to the caller.
"""
from dataclasses import dataclass
from typing import Optional

from app.core.logging import get_logger
from app.core.metrics import record_contract_violation
from app.core.tracing import span
from app.models.triage import UserContext
from app.services.ai.contract import (
    ContractValidation,
    format_validation_warning,
    validate_response_contract,
)
from app.services.ai.llm_client import ChatOptions, LLMMessage, LLMProvider, TokenUsage
from app.services.ai.prompts import get_answer_system_prompt, get_answer_user_prompt
from app.services.ai.schema import RouterOutput

logger = get_logger(__name__)

ANSWER_OPTIONS = ChatOptions(temperature=0.7, max_tokens=3000)


@dataclass
class AnswerResult:
    markdown: str
    validation: ContractValidation
    usage: Optional[TokenUsage] = None


class TriageAnswerAgent:
    """Runs the answer pass against one provider."""

    def __init__(self, provider: LLMProvider):
        self._provider = provider

    async def answer(
        self,
        message: str,
        router_output: RouterOutput,
        user_context: Optional[UserContext] = None,
        mode: str = "homeowner",
    ) -> AnswerResult:
        """
        Generate the answer markdown.

        Raises:
            ProviderError (or any provider exception) unchanged.
        """
        messages = [
            LLMMessage(role="system", content=get_answer_system_prompt(mode)),
            LLMMessage(
                role="user",
                content=get_answer_user_prompt(message, router_output, user_context),
            ),
        ]

        with span("answer.generate", **{"answer.mode": mode}) as current:
            try:
                response = await self._provider.chat(messages, ANSWER_OPTIONS)
            except Exception as exc:
                logger.error(
                    "answer_pass_failed",
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise

            markdown = response.text
            validation = validate_response_contract(markdown)
            current.set_attribute("answer.contract_valid", validation.valid)

        if not validation.valid:
            record_contract_violation()
            logger.error(
                "answer_contract_violation",
                contract=validation.to_dict(),
            )
            markdown = markdown + format_validation_warning(validation)
        else:
            logger.info(
                "answer_pass_completed",
                tokens=response.usage.model_dump() if response.usage else None,
            )

        return AnswerResult(markdown=markdown, validation=validation, usage=response.usage)
