"""
Triage endpoint.

POST /triage
Body: {"message": str, "context"?: {...}, "provider"?: "openai"|"anthropic",
       "mode"?: "homeowner"|"contractor"}
"""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.logging import generate_request_id, get_logger, get_request_id
from app.models.triage import ErrorResponse, TriageRequest, TriageResponse
from app.services.ai.orchestration import TriageInputError, TriageOrchestrationService

logger = get_logger(__name__)

router = APIRouter()

GENERIC_ERROR_MESSAGE = "An unexpected error occurred while processing the request."


def get_triage_service(request: Request) -> TriageOrchestrationService:
    """Service built at startup, or a cache-less one if startup did not run."""
    service = getattr(request.app.state, "triage_service", None)
    if service is None:
        settings = getattr(request.app.state, "settings", None) or get_settings()
        service = TriageOrchestrationService(settings)
        request.app.state.triage_service = service
    return service


def _request_id(request: Request) -> str:
    return (
        get_request_id()
        or getattr(request.state, "request_id", None)
        or generate_request_id()
    )


@router.post(
    "",
    response_model=TriageResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def triage(request: Request, body: TriageRequest):
    """
    Classify the problem (router pass) and generate the sectioned answer.

    Blank messages are rejected with 400 before any provider call. Any other
    failure becomes a generic 500 carrying the request id.
    """
    request_id = _request_id(request)
    service = get_triage_service(request)

    try:
        return await service.triage(body, request_id)
    except TriageInputError:
        raise
    except Exception as exc:
        logger.error(
            "triage_request_failed",
            request_id=request_id,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="Internal server error",
                message=GENERIC_ERROR_MESSAGE,
                request_id=request_id,
            ).model_dump(),
        )
