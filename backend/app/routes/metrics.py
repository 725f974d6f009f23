"""
GET /metrics: Prometheus scrape target.
"""
from fastapi import APIRouter, Response

from app.core.logging import get_logger
from app.core.metrics import get_metrics, get_metrics_content_type

logger = get_logger(__name__)
router = APIRouter()


@router.get("")
async def metrics() -> Response:
    """Current metrics in Prometheus text exposition format."""
    try:
        body = get_metrics()
    except Exception as e:
        logger.error("metrics_collection_failed", error=str(e), exc_info=True)
        body = b"# metrics collection failed\n"
    return Response(content=body, media_type=get_metrics_content_type())
