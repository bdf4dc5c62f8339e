# products_api/exceptions.py
from typing import Any, List, Optional


class AppError(Exception):
    """Base application error carrying an HTTP status and a stable code."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str = "INTERNAL_ERROR",
        details: Optional[List[Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details


class ValidationFailed(AppError):
    """Raised when request input violates its schema."""

    def __init__(self, messages: List[str]):
        super().__init__(
            "Validation failed",
            status_code=400,
            code="VALIDATION_ERROR",
            details=list(messages),
        )
        self.messages = list(messages)


class AuthenticationError(AppError):
    """Raised when a request cannot be authenticated."""

    def __init__(self, message: str = "Authentication failed", code: str = "AUTH_FAILED"):
        super().__init__(message, status_code=401, code=code)


class TokenExpired(AuthenticationError):
    def __init__(self, message: str = "Token has expired"):
        super().__init__(message, code="TOKEN_EXPIRED")


class TokenInvalid(AuthenticationError):
    def __init__(self, message: str = "Invalid token provided"):
        super().__init__(message, code="TOKEN_INVALID")


class NotFoundError(AppError):
    """Raised when a requested resource does not exist."""

    def __init__(self, message: str, code: str = "NOT_FOUND"):
        super().__init__(message, status_code=404, code=code)


class ConflictError(AppError):
    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(message, status_code=409, code=code)


class RateLimitError(AppError):
    """Raised when a client exceeds a rate limit."""

    def __init__(self, message: str, retry_after: int):
        super().__init__(
            message,
            status_code=429,
            code="RATE_LIMITED",
            details=["Please try again later"],
        )
        self.retry_after = retry_after


class DatabaseError(AppError):
    """Raised by the database layer when a call fails.

    ``sqlstate`` keeps the PostgreSQL error class so callers can recognise
    constraint violations without depending on the driver.
    """

    def __init__(self, message: str, sqlstate: Optional[str] = None):
        super().__init__(message, status_code=500, code="DB_ERROR")
        self.sqlstate = sqlstate

    def is_unique_violation(self) -> bool:
        return self.sqlstate == "23505"
