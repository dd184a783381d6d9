from __future__ import annotations

from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from humanivio.api import health
from humanivio.api.router import router as api_router
from humanivio.core.config import Settings, get_settings
from humanivio.core.errors import HumanivioError, QuotaExceededError
from humanivio.core.logging import configure_logging, get_logger
from humanivio.core.rate_limit import InMemoryQuotaStore, QuotaStore, RedisQuotaStore
from humanivio.core.redis import close_redis, get_redis
from humanivio.schemas.common import ErrorResponse
from humanivio.services.rewriter import RewriteService
from humanivio.utils.trace import get_trace_id, trace_context_middleware

logger = get_logger(__name__)


def build_quota_store(settings: Settings) -> QuotaStore:
    if settings.quota_backend == "redis":
        if settings.redis_url:
            return RedisQuotaStore(
                get_redis(settings.redis_url),
                limit=settings.daily_request_limit,
                window_seconds=settings.quota_window_seconds,
            )
        logger.warning("quota_backend_redis_without_url", fallback="memory")
    return InMemoryQuotaStore(
        limit=settings.daily_request_limit,
        window_seconds=settings.quota_window_seconds,
    )


def cors_error_headers(settings: Settings, request: Request) -> dict[str, str]:
    origin = request.headers.get("origin")
    if not origin:
        return {}
    allowed = settings.cors_origins
    if "*" in allowed:
        return {"Access-Control-Allow-Origin": "*"}
    if origin in allowed:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    return {}


def create_app(
    settings: Settings | None = None,
    *,
    quota_store: QuotaStore | None = None,
    rewrite_service: RewriteService | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    if settings.sentry_dsn:
        sentry_sdk.init(dsn=settings.sentry_dsn, environment=settings.environment)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        base_url = f"http://localhost:{settings.port}"
        logger.info(
            "startup_complete",
            environment=settings.environment,
            port=settings.port,
            humanize_endpoint=f"{base_url}{settings.api_prefix}/humanize",
            health_endpoint=f"{base_url}{settings.api_prefix}/health",
            quota_backend=type(app.state.quota_store).__name__,
            daily_request_limit=settings.daily_request_limit,
        )
        yield
        await close_redis()

    app = FastAPI(title=settings.app_name, default_response_class=ORJSONResponse, lifespan=lifespan)
    app.state.settings = settings
    app.state.quota_store = quota_store if quota_store is not None else build_quota_store(settings)
    app.state.rewrite_service = rewrite_service if rewrite_service is not None else RewriteService(settings)

    app.middleware("http")(trace_context_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["x-trace-id", "Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining"],
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    @app.exception_handler(HumanivioError)
    async def humanivio_error_handler(_: Request, exc: HumanivioError):
        headers = None
        if isinstance(exc, QuotaExceededError):
            headers = {"Retry-After": str(exc.retry_after)}
        return ORJSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.message).model_dump(),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_: Request, exc: RequestValidationError):
        return ORJSONResponse(
            status_code=422,
            content=ErrorResponse(error=str(exc)).model_dump(),
        )

    # Runs in ServerErrorMiddleware, outside the CORS and trace middleware.
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        trace_id = getattr(request.state, "trace_id", None) or get_trace_id()
        logger.exception("unhandled_exception", error=str(exc), trace_id=trace_id)
        headers = {"x-trace-id": trace_id}
        headers.update(cors_error_headers(settings, request))
        return ORJSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal server error").model_dump(),
            headers=headers,
        )

    if settings.metrics_enabled:
        Instrumentator().instrument(app).expose(app, include_in_schema=False)

    app.include_router(health.root_router, tags=["health"])
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()
