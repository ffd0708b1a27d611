"""Typed engine errors and their client-facing envelope"""

import enum
from typing import Optional

from homedelivery.schemas.responses import ErrorDetail, ErrorResponse


class ErrorKind(str, enum.Enum):
    """Machine-checkable error categories"""
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class HomeDeliveryError(Exception):
    """
    Base class for every failure an engine operation reports to its caller.

    Carries a stable ``code`` and a user-facing ``message``. The message must
    not contain stack traces or internal identifiers.
    """
    kind: ErrorKind = ErrorKind.INTERNAL
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(error=ErrorDetail(code=self.code, message=self.message))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.code}: {self.message}>"


class NotFoundError(HomeDeliveryError):
    """A referenced entity does not exist"""
    kind = ErrorKind.NOT_FOUND
    code = "RESOURCE_NOT_FOUND"
    default_message = "Resource not found"


class ForbiddenError(HomeDeliveryError):
    """Area or role authorization failure"""
    kind = ErrorKind.FORBIDDEN
    code = "FORBIDDEN"
    default_message = "Not authorized to perform this action"


class ValidationFailedError(HomeDeliveryError):
    """Malformed or out-of-range input"""
    kind = ErrorKind.VALIDATION
    code = "VALIDATION_ERROR"
    default_message = "Invalid input"


class NoValidAddressError(ValidationFailedError):
    code = "NO_VALID_ADDRESS"
    default_message = "No valid address found for user in this area"


class ConflictError(HomeDeliveryError):
    """Duplicate unique key or a state that no longer allows the operation"""
    kind = ErrorKind.CONFLICT
    code = "CONFLICT"
    default_message = "The operation conflicts with the current state"


class InternalError(HomeDeliveryError):
    """Storage or transaction failure"""
    kind = ErrorKind.INTERNAL
    code = "INTERNAL_ERROR"
    default_message = "Internal error"
