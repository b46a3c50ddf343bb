"""
GET /metrics: Prometheus scrape endpoint (text exposition format).
"""
from fastapi import APIRouter, Request, Response

from podsearch.core.logging import get_logger
from podsearch.core.metrics import get_metrics, get_metrics_content_type, update_cache_size

logger = get_logger(__name__)
router = APIRouter()


@router.get("")
async def metrics(request: Request) -> Response:
    # Sweeps only run periodically, so refresh the live entry count per scrape.
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is not None:
        update_cache_size(len(orchestrator.cache))

    try:
        payload = get_metrics()
    except Exception as e:
        logger.error("metrics_collection_failed", error=str(e), error_type=type(e).__name__, exc_info=True)
        payload = b"# metrics collection failed\n"
    return Response(content=payload, media_type=get_metrics_content_type())
