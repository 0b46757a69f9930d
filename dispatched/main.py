"""
FastAPI application module.
Application factory wiring the job lifecycle engine, middleware, error handling and health checks.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
from contextlib import asynccontextmanager
from typing import Optional

from dispatched import __version__
from dispatched.api import api_router
from dispatched.config import ServerConfig
from dispatched.exceptions import DispatchedError
from dispatched.integrations.base import WebhookTransport
from dispatched.integrations.webhook import AiohttpWebhookTransport
from dispatched.jobs.dispatcher import Dispatcher
from dispatched.jobs.scheduler import ReadinessScanner
from dispatched.jobs.service import JobService
from dispatched.jobs.store import JobStore
from dispatched.utils import get_logger
from dispatched.utils.observability import REQUEST_ID_HEADER, ensure_request_id

logger = get_logger(__name__)


def _error_body(code: str, message: str, request_id: str, details: Optional[dict] = None) -> dict:
    body = {"success": False, "error": code, "message": message, "request_id": request_id}
    if details:
        body["details"] = details
    return body


def create_app(config: ServerConfig, transport: Optional[WebhookTransport] = None) -> FastAPI:
    """Build the application for one server process.

    Args:
        config: Validated runtime settings.
        transport: Outbound transport; defaults to an aiohttp transport honouring
            ``config.forward_timeout``. Tests inject a recording fake here.
    """
    store = JobStore()
    transport = transport or AiohttpWebhookTransport(timeout=config.forward_timeout)
    dispatcher = Dispatcher(
        store,
        transport,
        forward_url=config.forward_url,
        webhook_secret=config.webhook_secret,
    )
    scanner = ReadinessScanner(store, dispatcher, scheduled_delay=config.scheduled_delay)
    service = JobService(store, dispatcher, dispatch_lookahead=config.dispatch_lookahead)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.
        Starts the readiness scanner; on shutdown stops it and lets in-flight deliveries finish.
        """
        logger.info("Application startup initiated", **config.summary())
        scanner.start()
        try:
            yield
        finally:
            logger.info("Application shutdown initiated")
            scanner.stop()
            await dispatcher.drain()
            await transport.close()
            logger.info("Application shutdown completed")

    app = FastAPI(
        title="Dispatched Local",
        description="""
    Local stand-in for a scheduled webhook delivery platform.

    Submit a job with an optional `scheduledFor` time and an opaque `payload`;
    at that time (plus the configured scheduling delay) the service POSTs a
    signed envelope to the configured forward URL:
    ```
    Authorization: Bearer <webhook secret>
    ```
    Delivery is attempted exactly once; poll the job to see the outcome.
    """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.job_store = store
    app.state.dispatcher = dispatcher
    app.state.scanner = scanner
    app.state.job_service = service

    @app.middleware("http")
    async def add_request_context_and_logging(request: Request, call_next):
        """
        Add request ID, timing, and request/response logging.
        """
        request_id = ensure_request_id(request.headers)
        request.state.request_id = request_id
        request.state.start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            url=str(request.url),
            remote_addr=request.client.host if request.client else "unknown",
            request_id=request_id
        )

        response = await call_next(request)

        process_time = time.time() - request.state.start_time
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))

        logger.info(
            "Request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            process_time_ms=round(process_time * 1000, 2),
            request_id=request_id
        )
        return response

    @app.exception_handler(DispatchedError)
    async def dispatched_exception_handler(request: Request, exc: DispatchedError):
        """Handle NotFound / InvalidState / InvalidRequest raised by the job service."""
        request_id = getattr(request.state, "request_id", "unknown")

        logger.warning(
            "Job operation rejected",
            error=exc.code,
            error_message=exc.message,
            details=exc.details or None,
            request_id=request_id,
            url=str(request.url),
            method=request.method
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message, request_id, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors."""
        request_id = getattr(request.state, "request_id", "unknown")

        logger.warning(
            "Request validation failed",
            errors=exc.errors(),
            request_id=request_id,
            url=str(request.url),
            method=request.method
        )

        return JSONResponse(
            status_code=422,
            content=_error_body(
                "VALIDATION_ERROR",
                "Request validation failed",
                request_id,
                {"errors": jsonable_encoder(exc.errors())},
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        request_id = getattr(request.state, "request_id", "unknown")

        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            request_id=request_id,
            url=str(request.url),
            method=request.method
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body("HTTP_ERROR", str(exc.detail), request_id),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions without leaking internals."""
        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            request_id=request_id,
            url=str(request.url),
            method=request.method,
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content=_error_body("INTERNAL_ERROR", "Internal server error", request_id),
        )

    @app.get("/health", tags=["health"], summary="Basic health check")
    async def health_check():
        return {
            "status": "healthy",
            "service": "dispatched-local",
            "version": __version__,
            "timestamp": time.time(),
            "scanner_running": scanner.is_running,
        }

    @app.get("/health/detailed", tags=["health"], summary="Detailed health check")
    async def detailed_health_check():
        """Store counts, scanner state and a masked config summary."""
        health_status = {
            "status": "healthy" if scanner.is_running else "degraded",
            "service": "dispatched-local",
            "version": __version__,
            "timestamp": time.time(),
            "checks": {
                "scanner": {"running": scanner.is_running, "ticks": scanner.ticks, "period": scanner.period},
                "jobs": store.snapshot(),
                "inflight_dispatches": dispatcher.inflight,
            },
            "config": config.summary(),
        }
        return health_status

    @app.get("/", tags=["root"])
    async def root():
        return {
            "message": "Dispatched local webhook server",
            "version": __version__,
            "documentation": "/docs",
            "health_check": "/health",
            "api_base": "/api/jobs",
            "forward_url": config.forward_url,
        }

    app.include_router(api_router, prefix="/api")
    return app


def create_app_from_env() -> FastAPI:
    """Factory for ``uvicorn --factory dispatched.main:create_app_from_env``."""
    return create_app(ServerConfig.from_env())


__all__ = ["create_app", "create_app_from_env"]
