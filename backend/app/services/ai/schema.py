"""
Pydantic models and validation for the router pass output.

Router output schema:
{
  "domain": "<Domain>",
  "decision_type": "<DecisionType>",
  "risk_level": "low | medium | high",
  "posture": ["<Posture>", ...],          (at least one)
  "assumptions": ["..."],                 (max 10)
  "must_include": ["..."],                (max 10)
  "clarifying_questions": ["..."],        (max 5)
  "tooling": {"needs_local_resources": bool, "needs_citations": bool}
}

Unknown keys (e.g. a model-added "confidence") are dropped, not rejected.
Validation returns a RouterValidationResult instead of raising, so the
router state machine branches on a value.
"""
import json
import re
from dataclasses import dataclass
from typing import Any, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
    field_validator,
)

from app.services.ai.taxonomy import DecisionType, Domain, Posture, RiskLevel

MAX_ASSUMPTIONS = 10
MAX_MUST_INCLUDE = 10
MAX_CLARIFYING_QUESTIONS = 5

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*\})\s*```", re.DOTALL)


class Tooling(BaseModel):
    model_config = ConfigDict(extra="ignore")

    needs_local_resources: StrictBool
    needs_citations: StrictBool


class RouterOutput(BaseModel):
    """Structured decision profile produced by the router pass."""

    model_config = ConfigDict(extra="ignore")

    domain: Domain
    decision_type: DecisionType
    risk_level: RiskLevel
    posture: List[Posture] = Field(..., min_length=1)
    assumptions: List[StrictStr] = Field(..., max_length=MAX_ASSUMPTIONS)
    must_include: List[StrictStr] = Field(..., max_length=MAX_MUST_INCLUDE)
    clarifying_questions: List[StrictStr] = Field(..., max_length=MAX_CLARIFYING_QUESTIONS)
    tooling: Tooling

    @field_validator("posture")
    @classmethod
    def dedupe_posture(cls, value: List[Posture]) -> List[Posture]:
        seen: List[Posture] = []
        for posture in value:
            if posture not in seen:
                seen.append(posture)
        return seen


def get_safe_default_router_output() -> RouterOutput:
    """Conservative profile used when the router output cannot be salvaged."""
    return RouterOutput(
        domain=Domain.GENERAL,
        decision_type=DecisionType.DIAGNOSE,
        risk_level=RiskLevel.MEDIUM,
        posture=[Posture.EXPLAINER, Posture.RISK_MANAGER],
        assumptions=["User needs general guidance"],
        must_include=["Safety warnings", "Recommendation to consult professional"],
        clarifying_questions=[],
        tooling=Tooling(needs_local_resources=False, needs_citations=False),
    )


@dataclass(frozen=True)
class RouterValidationResult:
    """Outcome of parsing and validating one router response."""

    output: Optional[RouterOutput] = None
    error: Optional[str] = None
    raw_text: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.output is not None


def validate_router_payload(payload: Any, raw_text: Optional[str] = None) -> RouterValidationResult:
    """Validate an already-parsed payload against the router schema."""
    try:
        return RouterValidationResult(
            output=RouterOutput.model_validate(payload), raw_text=raw_text
        )
    except ValidationError as exc:
        return RouterValidationResult(
            error=f"Router validation failed: {exc}", raw_text=raw_text
        )


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        # Models without a JSON mode sometimes wrap the object in a code fence.
        match = _FENCED_JSON.search(text)
        if match is None:
            raise
        return json.loads(match.group(1))


def parse_router_output(text: Optional[str]) -> RouterValidationResult:
    """Parse raw model text as JSON and validate it against the router schema."""
    if text is None or not text.strip():
        return RouterValidationResult(error="Empty router response", raw_text=text)

    try:
        payload = _load_json(text)
    except (ValueError, RecursionError) as exc:
        return RouterValidationResult(
            error=f"Failed to parse router JSON: {exc}", raw_text=text
        )

    return validate_router_payload(payload, raw_text=text)
