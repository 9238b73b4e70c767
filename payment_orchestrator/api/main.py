"""
Main FastAPI application.

Card payment orchestration API over Authorize.Net with:
- CORS configuration
- Request ID propagation (X-Request-ID in, X-Request-ID out)
- Structured request logging and per-route HTTP metrics
- JSON error bodies for unhandled faults
"""
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payment_orchestrator import __version__
from payment_orchestrator.config import Settings, get_settings
from payment_orchestrator.core.exceptions import PaymentRequestError
from payment_orchestrator.database.connection import close_db, init_db
from payment_orchestrator.monitoring.logging import setup_logging
from payment_orchestrator.monitoring.metrics import metrics

from .auth import auth_router
from .dependencies import close_gateway_client
from .routes import diagnostics_router, monitoring_router, order_router, payment_router

REQUEST_ID_HEADER = "X-Request-ID"

setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
    """Create tables on startup; release the gateway client and pool on shutdown."""
    settings = get_settings()
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        env=settings.app_env,
        gateway_environment=settings.authorize_net_environment,
        gateway_configured=settings.gateway_configured,
    )
    if not settings.gateway_configured:
        logger.warning("gateway_credentials_missing")

    try:
        await init_db()
    except Exception as e:
        logger.error("database_initialization_failed", error=str(e))
        raise
    logger.info("database_initialized")

    yield

    logger.info("application_shutdown")
    await close_gateway_client()
    try:
        await close_db()
    except Exception as e:
        logger.error("database_shutdown_error", error=str(e))
    else:
        logger.info("database_connections_closed")


async def request_context_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """
    Bind the request id to every log event of the request.

    An incoming X-Request-ID is reused; otherwise a fresh UUID is issued.
    HTTP metrics are labelled by route template, not by raw path.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    started = time.time()
    structlog.contextvars.bind_contextvars(
        request_id=request_id, method=request.method, path=request.url.path
    )
    logger.info("request_started", client_host=request.client.host if request.client else None)

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error("request_failed", error=str(e), duration_seconds=time.time() - started)
        raise
    else:
        response.headers[REQUEST_ID_HEADER] = request_id
        route_path = getattr(request.scope.get("route"), "path", "unmatched")
        metrics.record_http_request(request.method, route_path, response.status_code)
        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_seconds=time.time() - started,
        )
        return response
    finally:
        structlog.contextvars.clear_contextvars()


async def payment_request_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning("payment_request_rejected", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid payment request", "message": str(exc)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


def service_info(settings: Settings) -> Dict[str, Any]:
    return {
        "service": settings.app_name,
        "version": __version__,
        "status": "operational",
        "environment": settings.app_env,
        "gateway_environment": settings.authorize_net_environment,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics",
    }


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings used for CORS and the root endpoint
            (defaults to the cached environment settings)

    Returns:
        FastAPI: Configured application with all routers mounted
    """
    settings = settings or get_settings()
    application = FastAPI(
        title="Payment Orchestrator",
        description=(
            "Card payment orchestration over Authorize.Net: purchase, authorize, "
            "capture, void and refund with an auditable order and transaction ledger."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.middleware("http")(request_context_middleware)
    application.add_exception_handler(PaymentRequestError, payment_request_error_handler)
    application.add_exception_handler(Exception, unhandled_exception_handler)

    for router in (auth_router, payment_router, order_router, diagnostics_router, monitoring_router):
        application.include_router(router)

    @application.get("/", tags=["root"])
    async def root() -> Dict[str, Any]:
        """Service name, version and useful links."""
        return service_info(settings)

    return application


app = create_app()


def run() -> None:
    """Console entry point."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "payment_orchestrator.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.api_workers,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
