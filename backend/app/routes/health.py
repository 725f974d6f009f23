"""
Health check endpoint.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from app.core.config import get_settings, validate_config
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.get("")
async def health_check(request: Request):
    """
    Liveness plus configuration check.

    `config.valid` is false when no provider API key is configured; the
    service still answers so orchestrators can surface the misconfiguration.
    """
    settings = getattr(request.app.state, "settings", None) or get_settings()
    config_validation = validate_config(settings)

    if not config_validation["valid"]:
        logger.warning("health_config_invalid", errors=config_validation["errors"])

    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "config": config_validation,
    }
