"""Application error taxonomy.

Every error a handler or request gate raises on purpose is an ``AppError``.
They are ``HTTPException`` subclasses so FastAPI routes them to the central
HTTP exception handler in ``main.py``, which renders ``detail`` and, for
validation failures, the per-field ``errors`` mapping.
"""

from typing import Any

from fastapi import HTTPException


class AppError(HTTPException):
    """Base class for expected, client-facing errors."""

    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(
        self,
        detail: str | None = None,
        errors: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail, headers=headers)
        self.errors = errors or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "detail": self.detail}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(AppError):
    status_code = 400
    default_detail = "Validation Error"


class DuplicateKeyError(AppError):
    status_code = 400
    default_detail = "Duplicate field value entered"


class UnauthenticatedError(AppError):
    status_code = 401
    default_detail = "Not authenticated"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    status_code = 403
    default_detail = "You do not have permission to perform this action"


class NotFoundError(AppError):
    status_code = 404
    default_detail = "Not found"


class InvalidOrExpiredTokenError(AppError):
    status_code = 400
    default_detail = "Password reset token is invalid or has expired"


class UpstreamFailureError(AppError):
    status_code = 500
    default_detail = "Upstream service unavailable"
