from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import StoreSettings, format_duration
from app.errors import ApiError
from app.eviction import EvictionWorker
from app.logging_setup import configure_logging
from app.resource_service import ResourceService
from app.routes import internal, resources, token
from app.routes._deps import error_response, request_id_from_request, trace_id_from_request
from app.store import DocumentStore, StorePreconditionError
from app.tokens import TokenIssuer

logger = logging.getLogger(__name__)


def create_app(
    settings: StoreSettings | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> FastAPI:
    settings = settings or StoreSettings.from_env()
    configure_logging(settings.log_level)

    document_store = DocumentStore(ttl_seconds=settings.ttl_seconds, clock=clock)
    eviction_worker = EvictionWorker(store=document_store, interval_seconds=settings.sweep_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "document_store_started ttl=%s sweep=%s",
            format_duration(settings.ttl_ms),
            format_duration(settings.sweep_interval_ms),
        )
        eviction_worker.start()
        try:
            yield
        finally:
            eviction_worker.stop()
            logger.info("document_store_stopped")

    app = FastAPI(title="Resource Mock Server", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.document_store = document_store
    app.state.eviction_worker = eviction_worker
    app.state.resource_service = ResourceService(store=document_store, settings=settings)
    app.state.token_issuer = TokenIssuer(secret=settings.token_signing_secret, issuer=settings.token_issuer)

    @app.middleware("http")
    async def add_trace_id(request: Request, call_next):
        incoming_trace_id = request.headers.get("x-trace-id", "").strip()
        request.state.trace_id = incoming_trace_id or uuid.uuid4().hex
        request.state.request_id = request.headers.get("x-request-id", f"req_{uuid.uuid4().hex[:12]}")
        response = await call_next(request)
        response.headers["x-trace-id"] = trace_id_from_request(request)
        response.headers["x-request-id"] = request_id_from_request(request)
        return response

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        logger.info(
            "request_rejected method=%s path=%s class=%s status=%d",
            request.method,
            request.url.path,
            exc.error_class,
            exc.http_status,
        )
        return error_response(status_code=exc.http_status, message=exc.message, reason=exc.reason)

    @app.exception_handler(StorePreconditionError)
    async def handle_precondition_error(request: Request, exc: StorePreconditionError):
        logger.error("store_precondition_violated path=%s", request.url.path, exc_info=exc)
        return error_response(status_code=500, message=str(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return error_response(status_code=400, message="invalid payload")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return error_response(status_code=exc.status_code, message=str(exc.detail))

    @app.get("/healthz")
    def healthz() -> dict[str, object]:
        return {"status": "ok"}

    app.include_router(token.router)
    app.include_router(internal.router)
    # catch-all document routes go last
    app.include_router(resources.router)
    return app
