from __future__ import annotations

from http import HTTPStatus
from typing import Any

from pydantic import BaseModel, Field


class ErrorBody(BaseModel):
    code: int
    message: str
    reason: str | None = None
    status: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_token: str
    id_token: str
    scope: str


class TokenErrorBody(BaseModel):
    error: str
    error_description: str
    error_uri: str = ""


class DomainOut(BaseModel):
    domain: str
    size: int = Field(ge=0)


class EvictionOut(BaseModel):
    evicted: int = Field(ge=0)


def _status_phrase(http_status: int) -> str:
    try:
        return HTTPStatus(http_status).phrase
    except ValueError:
        return "Error"


def error_body(*, http_status: int, message: str, reason: str | None = None) -> dict[str, Any]:
    return ErrorBody(
        code=http_status,
        message=message,
        reason=reason,
        status=_status_phrase(http_status),
    ).model_dump(exclude_none=True)
