import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import Settings, get_settings
from .core.errors import SearchFailure
from .core.logging import configure_logging, get_logger, get_trace_id
from .core.middleware import TraceIDMiddleware
from .core.rate_limit import RateLimitMiddleware
from .models.responses import ErrorDetail, ErrorEnvelope
from .routes import health, metrics, search
from .services.search.orchestrator import SearchOrchestrator, build_orchestrator

settings = get_settings()

# JSON output in production (containerized), console output in development
configure_logging(log_level=settings.log_level, json_output=settings.log_json)

logger = get_logger(__name__)

HTTP_ERROR_TYPES = {
    400: "ValidationError",
    404: "NotFound",
    405: "MethodNotAllowed",
    429: "RateLimitExceeded",
}


def error_response(status_code: int, message: str, error_type: str) -> JSONResponse:
    content = ErrorEnvelope(error=ErrorDetail(message=message, type=error_type)).model_dump(by_alias=True)
    response = JSONResponse(status_code=status_code, content=content)
    trace_id = get_trace_id()
    if trace_id:
        response.headers["X-Trace-ID"] = trace_id
    return response


def create_app(
    app_settings: Optional[Settings] = None,
    orchestrator: Optional[SearchOrchestrator] = None,
) -> FastAPI:
    """
    Build the API application.

    The orchestrator (cache, search client, intent analyzer) is owned by the
    app and started/stopped with it. Tests pass a prebuilt one.
    """
    app_settings = app_settings or settings

    app = FastAPI(
        title="Podcast Search API",
        description="AI-assisted search proxy for podcast research",
        version="1.0.0",
    )
    app.state.orchestrator = orchestrator or build_orchestrator(app_settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(RateLimitMiddleware, max_requests=app_settings.max_requests_per_minute)
    # Added last so it wraps the rate limiter and sees every request.
    app.add_middleware(TraceIDMiddleware)

    @app.on_event("startup")
    async def startup_event():
        logger.info("app_startup_started")
        await app.state.orchestrator.start()
        logger.info(
            "app_startup_completed",
            ai_backend=app.state.orchestrator.analyzer.state.value,
            cache_ttl=app.state.orchestrator.cache.default_ttl,
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("app_shutdown_started")
        await app.state.orchestrator.close()
        logger.info("app_shutdown_completed")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if exc.status_code != 404 else "Endpoint not found"
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=exc.detail,
            path=request.url.path,
            method=request.method,
        )
        return error_response(
            exc.status_code,
            str(message),
            HTTP_ERROR_TYPES.get(exc.status_code, "HTTPException"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request body")
        if location:
            message = f"{location}: {message}"
        logger.warning("request_validation_failed", path=request.url.path, errors=len(errors))
        return error_response(400, message, "ValidationError")

    @app.exception_handler(SearchFailure)
    async def search_failure_handler(request: Request, exc: SearchFailure):
        start_time = getattr(request.state, "start_time", time.time())
        logger.error(
            "search_failed",
            path=request.url.path,
            error=exc.message,
            cause_type=type(exc.cause).__name__ if exc.cause else None,
            latency_ms=int((time.time() - start_time) * 1000),
        )
        return error_response(500, exc.message, "SearchFailure")

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
        return error_response(500, "Internal server error", "InternalServerError")

    @app.get("/")
    async def root():
        return {
            "message": "AI-Powered Podcast Search Backend",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "health": "/api/health",
                "search": "/api/search/intelligent (POST)",
                "basicSearch": "/api/search/basic (POST)",
                "suggestions": "/api/search/suggestions (POST)",
                "metrics": "/metrics",
            },
        }

    app.include_router(health.router, prefix="/api/health", tags=["Health"])
    app.include_router(search.router, prefix="/api/search", tags=["Search"])
    app.include_router(metrics.router, prefix="/metrics", tags=["Metrics"])

    return app


app = create_app()
