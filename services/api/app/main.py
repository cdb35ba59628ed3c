"""FastAPI application entry point.

Ads API - classified-ad CRUD with a Redis cache-aside layer over PostgreSQL.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import SpanKind, Status, StatusCode

from app.observability.logs import configure_logging
from app.observability.metrics import STATUS_ERROR, STATUS_NOT_FOUND, STATUS_SUCCESS, Metrics
from app.observability.tracing import (
    TRACER_HANDLER,
    TRACER_REPOSITORY,
    TRACER_SERVICE,
    build_tracer_provider,
)
from app.repositories.ads import AdRepository
from app.routes import api_router
from app.schemas.common import (
    CODE_AD_NOT_FOUND,
    CODE_INTERNAL_ERROR,
    CODE_INVALID_ID,
    CODE_INVALID_PAGINATION,
    CODE_INVALID_REQUEST,
    ErrorResponse,
)
from app.services.ads import AdNotFoundError, AdService, InvalidAdIdError, InvalidPaginationError
from app.settings import Settings, get_settings
from app.stores.ad_store import PostgresAdStore
from app.stores.base import AdStore, CacheError, KeyValueCache, StoreError
from app.stores.postgres import Database
from app.stores.redis import RedisCache, create_redis_client

logger = logging.getLogger("uvicorn.error")


def wire_ad_service(
    store: AdStore,
    cache: KeyValueCache,
    *,
    metrics: Metrics,
    tracer_provider: TracerProvider,
    ttl: int,
) -> AdService:
    """Build repository and service on top of a store and a cache."""
    repository = AdRepository(
        store,
        cache,
        metrics=metrics.repository,
        cache_metrics=metrics.cache,
        tracer=tracer_provider.get_tracer(TRACER_REPOSITORY),
        ttl=ttl,
    )
    return AdService(
        repository,
        metrics=metrics.service,
        tracer=tracer_provider.get_tracer(TRACER_SERVICE),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events. When an AdService was injected
    (tests), no infrastructure is created.
    """
    settings: Settings = app.state.settings

    if app.state.ad_service is not None:
        yield
        return

    # Startup
    db = Database.from_settings(settings)
    try:
        await db.ping()
        logger.info("Postgres connected")
    except Exception:
        logger.exception("Postgres init failed")

    # The cache degrades to misses when Redis is down, so startup continues
    cache = RedisCache(create_redis_client(settings))
    try:
        await cache.ping()
    except CacheError:
        logger.exception("Redis init failed")

    app.state.ad_service = wire_ad_service(
        PostgresAdStore(db),
        cache,
        metrics=app.state.metrics,
        tracer_provider=app.state.tracer_provider,
        ttl=settings.cache_ttl_seconds,
    )
    logger.info("Service and repository layers initialized")

    yield

    # Shutdown
    app.state.ad_service = None
    await cache.close()
    await db.close()
    app.state.tracer_provider.shutdown()
    logger.info("Shutdown complete")


def _route_template(request: Request) -> str | None:
    """Path template of the route that handled this request.

    The router stores the matched route in the scope; unmatched requests
    (404 from routing) have none.
    """
    route = request.scope.get("route")
    return getattr(route, "path", None)


def _status_label(status_code: int) -> str:
    if status_code == 404:
        return STATUS_NOT_FOUND
    if status_code >= 400:
        return STATUS_ERROR
    return STATUS_SUCCESS


def create_app(
    settings: Settings | None = None,
    *,
    ad_service: AdService | None = None,
    metrics: Metrics | None = None,
    tracer_provider: TracerProvider | None = None,
) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Classified ads CRUD API with a cache-aside read path",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.ad_service = ad_service
    app.state.metrics = metrics or Metrics()
    app.state.tracer_provider = tracer_provider or build_tracer_provider(settings)

    handler_tracer = app.state.tracer_provider.get_tracer(TRACER_HANDLER)
    handler_metrics = app.state.metrics.handler

    @app.middleware("http")
    async def observe_requests(request: Request, call_next):
        """Span and request metrics per matched route template."""
        started = time.perf_counter()
        status = STATUS_ERROR
        with handler_tracer.start_as_current_span(
            request.method,
            kind=SpanKind.SERVER,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            span.set_attribute("http.method", request.method)
            try:
                response = await call_next(request)
                status = _status_label(response.status_code)
                span.set_attribute("http.status_code", response.status_code)
                if response.status_code >= 500:
                    span.set_status(Status(StatusCode.ERROR))
                return response
            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise
            finally:
                span.set_attribute("outcome", status)
                # Raw paths would give one label set per ad id
                endpoint = _route_template(request)
                if endpoint is not None:
                    span.update_name(f"{request.method} {endpoint}")
                    span.set_attribute("http.route", endpoint)
                    handler_metrics.observe(request.method, endpoint, status, time.perf_counter() - started)

    # Exception handlers for structured error format
    @app.exception_handler(InvalidAdIdError)
    async def invalid_id_handler(request: Request, exc: InvalidAdIdError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse.build(CODE_INVALID_ID, "invalid id parameter", {"id": exc.ad_id}),
        )

    @app.exception_handler(InvalidPaginationError)
    async def invalid_pagination_handler(request: Request, exc: InvalidPaginationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse.build(CODE_INVALID_PAGINATION, str(exc)),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
        if any(field.startswith("path") for field in fields):
            content = ErrorResponse.build(CODE_INVALID_ID, "invalid id parameter", {"fields": fields})
        else:
            content = ErrorResponse.build(CODE_INVALID_REQUEST, "invalid request payload", {"fields": fields})
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(AdNotFoundError)
    async def not_found_handler(request: Request, exc: AdNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content=ErrorResponse.build(CODE_AD_NOT_FOUND, "ad not found", {"id": exc.ad_id}),
        )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse.build(CODE_INTERNAL_ERROR, str(exc) if settings.debug else "internal server error"),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse.build(CODE_INTERNAL_ERROR, str(exc) if settings.debug else "internal server error"),
        )

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    # Prometheus exposition of this app's registry
    @app.get("/metrics", include_in_schema=False)
    async def prometheus_metrics() -> Response:
        payload, content_type = app.state.metrics.render()
        return Response(content=payload, media_type=content_type)

    # Include API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level,
        timeout_keep_alive=settings.http_timeout_seconds,
    )
