# app/core/errors.py
"""
Application error taxonomy.

Every error is an HTTPException carrying its own status code, so services
raise them directly and FastAPI renders them through the handlers
registered in app.main:

  ValidationError      400  malformed / out-of-range input, invalid state
  AuthenticationError  401  no or invalid identity
  AuthorizationError   403  identity valid but not allowed
  NotFoundError        404  entity does not exist
  ConflictError        409  state changed concurrently / duplicate
  RateLimitError       429  too many requests in the current window
  InternalError        500  unexpected failure
"""
from typing import Any

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base class; subclasses fix the status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(
        self,
        detail: Any = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(
            status_code=self.status_code,
            detail=detail if detail is not None else self.default_detail,
            headers=headers,
        )


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Validation failed"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"

    def __init__(self, detail: Any = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class RateLimitError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Too many requests. Please try again later."

    def __init__(self, retry_after: int):
        super().__init__(headers={"Retry-After": str(retry_after)})


class InternalError(AppError):
    pass
