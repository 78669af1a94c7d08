from __future__ import annotations

import json
import uuid
from collections.abc import Callable
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from app.errors import ApiError
from app.eviction import EvictionWorker
from app.resource_service import ResourceService
from app.schemas import error_body
from app.store import DocumentStore
from app.tokens import TokenIssuer


def trace_id_from_request(request: Request) -> str:
    trace_id = getattr(request.state, "trace_id", None)
    if trace_id:
        return trace_id
    return uuid.uuid4().hex


def request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return request_id
    return f"req_{uuid.uuid4().hex[:12]}"


def service_from_request(request: Request) -> ResourceService:
    return request.app.state.resource_service


def store_from_request(request: Request) -> DocumentStore:
    return request.app.state.document_store


def eviction_worker_from_request(request: Request) -> EvictionWorker:
    return request.app.state.eviction_worker


def token_issuer_from_request(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def error_response(
    *,
    status_code: int,
    message: str,
    reason: str | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_body(http_status=status_code, message=message, reason=reason),
    )


async def read_json_body(request: Request, *, on_error: Callable[[str], ApiError]) -> Any:
    """Decode the raw request body; ``None`` when empty.

    ``on_error`` builds the ApiError raised for undecodable input.
    """
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise on_error(str(exc)) from exc
