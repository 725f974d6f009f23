from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.cache import create_cache
from .core.config import Settings, get_settings
from .core.logging import configure_logging, get_logger, get_request_id
from .core.middleware import RequestIDMiddleware, REQUEST_ID_HEADER
from .core.tracing import configure_tracing, instrument_fastapi, shutdown_tracing
from .routes import health, metrics, triage
from .services.ai.orchestration import TriageInputError, TriageOrchestrationService

_settings = get_settings()

# JSON output in production (containerized), console output in development
configure_logging(log_level=_settings.log_level, json_output=_settings.log_json)

logger = get_logger(__name__)

configure_tracing()


def _request_id(request: Request) -> Optional[str]:
    return get_request_id() or getattr(request.state, "request_id", None)


def _error_response(request: Request, status_code: int, content: dict) -> JSONResponse:
    request_id = _request_id(request)
    content["request_id"] = request_id
    response = JSONResponse(status_code=status_code, content=content)
    if request_id:
        response.headers[REQUEST_ID_HEADER] = request_id
    return response


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[TriageOrchestrationService] = None,
) -> FastAPI:
    """
    Build the API application.

    `service` may be supplied (tests); otherwise it is built at startup with
    the configured cache and disposed of at shutdown.
    """
    settings = settings or _settings

    app = FastAPI(
        title="HomeProHub Triage API",
        description="Two-pass home repair triage: classification router plus sectioned answer",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.cache = None
    app.state.triage_service = service

    # CORS for local dev; restrict in production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    instrument_fastapi(app)

    @app.on_event("startup")
    async def startup_event():
        """Construct the cache and triage service."""
        logger.info("app_startup_started")

        if app.state.triage_service is None:
            cache = await create_cache(settings)
            app.state.cache = cache
            app.state.triage_service = TriageOrchestrationService(settings, cache=cache)
            logger.info("app_startup_cache_ready", backend=cache.backend)

        logger.info("app_startup_completed")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Dispose of the cache and flush traces."""
        logger.info("app_shutdown_started")
        if app.state.cache is not None:
            await app.state.cache.close()
            app.state.cache = None
        shutdown_tracing()
        logger.info("app_shutdown_completed")

    @app.exception_handler(TriageInputError)
    async def triage_input_error_handler(request: Request, exc: TriageInputError):
        logger.warning("triage_input_rejected", error=exc.message, path=request.url.path)
        return _error_response(request, 400, {"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg", "invalid request") if errors else "invalid request"
        logger.warning("request_validation_failed", errors=len(errors), path=request.url.path)
        return _error_response(request, 400, {"error": "Invalid request body", "message": detail})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=exc.detail,
            path=request.url.path,
            method=request.method,
        )
        return _error_response(request, exc.status_code, {"error": exc.detail})

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )
        return _error_response(request, 500, {
            "error": "Internal server error",
            "message": triage.GENERIC_ERROR_MESSAGE,
        })

    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(triage.router, prefix="/triage", tags=["Triage"])
    app.include_router(metrics.router, prefix="/metrics", tags=["Metrics"])

    return app


app = create_app()
