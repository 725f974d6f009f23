"""Pydantic models for API requests and responses."""

from .triage import ErrorResponse, TriageMetadata, TriageRequest, TriageResponse, UserContext

__all__ = ["ErrorResponse", "TriageMetadata", "TriageRequest", "TriageResponse", "UserContext"]
