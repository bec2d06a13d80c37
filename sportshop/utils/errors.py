from typing import Any, List, Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base for domain errors; ``code`` and ``details`` end up in the JSON body."""

    code = "Internal"

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: Optional[Any] = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    code = "ValidationError"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


class NotFoundError(AppError):
    code = "NotFound"

    def __init__(self, message: str):
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class InvalidTransitionError(AppError):
    code = "InvalidTransition"

    def __init__(self, current: str, requested: str):
        super().__init__(f"Invalid status transition from {current} to {requested}")
        self.current = current
        self.requested = requested


class InvalidStateError(AppError):
    code = "InvalidState"

    def __init__(self, message: str):
        super().__init__(message)


class InsufficientStockError(AppError):
    code = "InsufficientStock"

    def __init__(self, shortfalls: List[dict]):
        super().__init__(
            "Cannot confirm order. Some products have insufficient stock.",
            status.HTTP_409_CONFLICT,
            {"insufficientStockProducts": shortfalls},
        )
        self.shortfalls = shortfalls


class ConflictError(AppError):
    code = "Conflict"

    def __init__(self, message: str = "Order was modified concurrently, retry the request"):
        super().__init__(message, status.HTTP_409_CONFLICT)


class GatewayError(AppError):
    code = "GatewayError"

    def __init__(self, message: str):
        super().__init__(message, status.HTTP_502_BAD_GATEWAY)


class AuthError(AppError):
    code = "Unauthorized"

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(AppError):
    code = "Forbidden"

    def __init__(self, message: str = "Admin access required"):
        super().__init__(message, status.HTTP_403_FORBIDDEN)
