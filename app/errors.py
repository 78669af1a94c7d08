from __future__ import annotations

NOT_FOUND_MESSAGE = "Repeat the request with new or updated Request-URI"
NOT_FOUND_REASON = "The server has not found anything matching the Request-URI"


class ApiError(Exception):
    def __init__(
        self,
        *,
        message: str,
        error_class: str,
        http_status: int,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_class = error_class
        self.http_status = http_status
        self.reason = reason


def not_found() -> ApiError:
    return ApiError(
        message=NOT_FOUND_MESSAGE,
        reason=NOT_FOUND_REASON,
        error_class="not_found",
        http_status=404,
    )


def conflict(key: str) -> ApiError:
    return ApiError(
        message=f"[{key}] already exists.",
        error_class="conflict",
        http_status=400,
    )


def invalid_patch(message: str) -> ApiError:
    return ApiError(
        message=message,
        error_class="invalid_patch",
        http_status=400,
    )


def invalid_query(message: str) -> ApiError:
    return ApiError(
        message=message,
        error_class="invalid_query",
        http_status=400,
    )


def invalid_body(message: str) -> ApiError:
    return ApiError(
        message=message,
        error_class="validation",
        http_status=400,
    )
