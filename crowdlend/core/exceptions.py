"""
Error taxonomy shared by every service.

Services raise these; the handler registered in ``main.py`` turns them into
``{"detail": ..., "code": ...}`` responses with the matching status code.
"""
from typing import Optional


class AppError(Exception):
    """Base class for errors scoped to a single request"""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __repr__(self):
        return f"<{type(self).__name__}(code={self.code}, message={self.message!r})>"


class ValidationError(AppError):
    """Malformed input that passed schema validation"""
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(AppError):
    """Actor lacks ownership or role"""
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    """Uniqueness violation"""
    status_code = 409
    code = "CONFLICT"


class InvalidStateError(AppError):
    """Operation not permitted in the current lifecycle state"""
    status_code = 400
    code = "INVALID_STATUS"


class InvalidAmountError(AppError):
    """Value violates a numeric constraint"""
    status_code = 400
    code = "INVALID_AMOUNT"


class ExpiredError(AppError):
    status_code = 400
    code = "EXPIRED"
