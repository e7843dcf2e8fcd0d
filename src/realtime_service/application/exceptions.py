from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    code = "app_error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    code = "not_found"


class ForbiddenError(AppError):
    code = "forbidden"


class ConflictError(AppError):
    code = "conflict"


class ValidationError(AppError):
    code = "validation_error"


class RateLimitedError(AppError):
    code = "rate_limited"

    def __init__(self, detail: str = "", retry_after: int = 0) -> None:
        super().__init__(detail)
        self.retry_after = retry_after
