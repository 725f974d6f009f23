"""
Request and response models for the triage endpoint.
"""
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.ai.llm_client import TokenUsage
from app.services.ai.schema import RouterOutput


class UserContext(BaseModel):
    """
    Optional property/user context supplied by the calling application.

    Only types are checked; unknown keys are kept and passed through.
    Accepts camelCase keys (yearBuilt, propertyType, ...) as sent by the web app.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    location: Optional[str] = None
    year_built: Optional[int] = Field(None, alias="yearBuilt")
    property_type: Optional[str] = Field(None, alias="propertyType")
    diy_level: Optional[str] = Field(None, alias="diyLevel")
    budget_band: Optional[str] = Field(None, alias="budgetBand")


class TriageRequest(BaseModel):
    """Inbound triage request. `message` is checked for blankness by the service."""

    model_config = ConfigDict(frozen=True)

    message: Optional[str] = None
    context: Optional[UserContext] = None
    provider: Literal["openai", "anthropic"] = "openai"
    mode: Literal["homeowner", "contractor"] = "homeowner"


class TriageMetadata(BaseModel):
    router_latency_ms: int
    answer_latency_ms: int
    total_latency_ms: int
    router_retries: int
    router_tokens: Optional[TokenUsage] = None
    answer_tokens: Optional[TokenUsage] = None


class TriageResponse(BaseModel):
    request_id: str
    router: RouterOutput
    answer_markdown: str
    metadata: TriageMetadata


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None
    request_id: Optional[str] = None
