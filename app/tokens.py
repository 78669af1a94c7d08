from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

import jwt

from app.schemas import TokenErrorBody, TokenResponse

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 3599
SUPPORTED_GRANT_TYPES = ("client_credentials", "password", "refresh_token")
DEFAULT_SCOPE = "openid"


class TokenRequestError(Exception):
    def __init__(self, *, error: str, description: str, http_status: int = 400) -> None:
        super().__init__(description)
        self.error = error
        self.description = description
        self.http_status = http_status

    def body(self) -> TokenErrorBody:
        return TokenErrorBody(error=self.error, error_description=self.description)


def validate_grant(
    *,
    grant_type: str | None,
    username: str | None = None,
    password: str | None = None,
    refresh_token: str | None = None,
) -> str:
    grant = (grant_type or "").strip()
    if not grant:
        raise TokenRequestError(error="invalid_request", description="grant_type is required")
    if grant not in SUPPORTED_GRANT_TYPES:
        raise TokenRequestError(error="unsupported_grant_type", description=f"Unsupported grant_type: {grant}")
    if grant == "password" and (not (username or "").strip() or not (password or "").strip()):
        raise TokenRequestError(
            error="invalid_request",
            description="username and password are required for the password grant",
        )
    if grant == "refresh_token" and not (refresh_token or "").strip():
        raise TokenRequestError(
            error="invalid_request",
            description="refresh_token is required for the refresh_token grant",
        )
    return grant


class TokenIssuer:
    """Mints bearer tokens that look real; nothing in this service checks them."""

    def __init__(self, *, secret: str, issuer: str) -> None:
        self._secret = secret
        self.issuer = issuer

    def _encode(self, claims: dict[str, object]) -> str:
        return jwt.encode(claims, self._secret, algorithm="HS256")

    def issue(
        self,
        *,
        grant_type: str | None,
        username: str | None = None,
        password: str | None = None,
        refresh_token: str | None = None,
        client_id: str | None = None,
        scope: str | None = None,
    ) -> TokenResponse:
        grant = validate_grant(
            grant_type=grant_type,
            username=username,
            password=password,
            refresh_token=refresh_token,
        )
        issued_at = int(datetime.now(UTC).timestamp())
        subject = (username or "").strip() or (client_id or "").strip() or uuid.uuid4().hex
        granted_scope = (scope or "").strip() or DEFAULT_SCOPE
        base_claims: dict[str, object] = {
            "iss": self.issuer,
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + TOKEN_TTL_SECONDS,
        }
        access_token = self._encode({**base_claims, "jti": uuid.uuid4().hex, "scope": granted_scope})
        id_token = self._encode({**base_claims, "aud": (client_id or "").strip() or self.issuer})
        logger.info("token_issued grant_type=%s subject=%s", grant, subject)
        return TokenResponse(
            access_token=access_token,
            expires_in=TOKEN_TTL_SECONDS,
            refresh_token=str(uuid.uuid4()),
            id_token=id_token,
            scope=granted_scope,
        )
