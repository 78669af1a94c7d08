from __future__ import annotations

from fastapi import APIRouter, Form, Request
from fastapi.responses import JSONResponse

from app.routes._deps import token_issuer_from_request
from app.tokens import TokenRequestError

router = APIRouter(prefix="/oauth", tags=["token"])

_NO_CACHE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}


@router.post("/token")
def issue_token(
    request: Request,
    grant_type: str | None = Form(default=None),
    username: str | None = Form(default=None),
    password: str | None = Form(default=None),
    refresh_token: str | None = Form(default=None),
    client_id: str | None = Form(default=None),
    scope: str | None = Form(default=None),
):
    issuer = token_issuer_from_request(request)
    try:
        token = issuer.issue(
            grant_type=grant_type,
            username=username,
            password=password,
            refresh_token=refresh_token,
            client_id=client_id,
            scope=scope,
        )
    except TokenRequestError as exc:
        return JSONResponse(
            status_code=exc.http_status,
            content=exc.body().model_dump(),
            headers=_NO_CACHE_HEADERS,
        )
    return JSONResponse(content=token.model_dump(), headers=_NO_CACHE_HEADERS)
