from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Sequence

from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

if TYPE_CHECKING:
    from faultline.diagnostics.models import FailureItem


class FailureKind(str, Enum):
    """Closed set of failure categories, declared in classification order."""

    AUTHENTICATION_FAILURE = "authentication_failure"
    UNAUTHENTICATED_ACCESS = "unauthenticated_access"
    UNAUTHORIZED_ACCESS = "unauthorized_access"
    FORBIDDEN_ACCESS = "forbidden_access"
    GENERIC_SECURITY = "generic_security"
    CONFLICT = "conflict"
    ALREADY_EXISTS = "already_exists"
    BAD_REQUEST = "bad_request"
    MALFORMED_REQUEST = "malformed_request"
    BATCH_OPERATION_FAILURE = "batch_operation_failure"
    CONCURRENCY_CONFLICT = "concurrency_conflict"
    NOT_FOUND = "not_found"
    KEY_NOT_FOUND = "key_not_found"
    VALIDATION_FAILURE = "validation_failure"
    UNKNOWN = "unknown"


class ServiceError(Exception):
    kind: FailureKind = FailureKind.UNKNOWN

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class AuthenticationFailedError(ServiceError):
    kind = FailureKind.AUTHENTICATION_FAILURE

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class UnauthenticatedAccessError(ServiceError):
    kind = FailureKind.UNAUTHENTICATED_ACCESS

    def __init__(self, message: str = "The caller is not authenticated") -> None:
        super().__init__(message)


class UnauthorizedAccessError(ServiceError):
    kind = FailureKind.UNAUTHORIZED_ACCESS

    def __init__(self, message: str = "The caller is not authorized") -> None:
        super().__init__(message)


class ForbiddenAccessError(ServiceError):
    kind = FailureKind.FORBIDDEN_ACCESS

    def __init__(self, message: str = "Access to the resource is forbidden") -> None:
        super().__init__(message)


class SecurityError(ServiceError):
    kind = FailureKind.GENERIC_SECURITY


class ConflictError(ServiceError):
    kind = FailureKind.CONFLICT


class AlreadyExistsError(ServiceError):
    """Raised when a resource already exists.

    Chain the conflicting field messages as the cause, separated by ``;``::

        raise AlreadyExistsError("User exists") from ValueError("email taken;name taken")
    """

    kind = FailureKind.ALREADY_EXISTS


class BadRequestError(ServiceError):
    kind = FailureKind.BAD_REQUEST


class MalformedRequestError(ServiceError):
    kind = FailureKind.MALFORMED_REQUEST


class BatchOperationError(ServiceError):
    kind = FailureKind.BATCH_OPERATION_FAILURE

    def __init__(self, message: str = "", status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConcurrencyError(ServiceError):
    kind = FailureKind.CONCURRENCY_CONFLICT


class NotFoundError(ServiceError):
    kind = FailureKind.NOT_FOUND


class ValidationFailedError(ServiceError):
    kind = FailureKind.VALIDATION_FAILURE

    def __init__(
        self,
        message: str = "One or more validation failures have occurred",
        failures: Sequence[FailureItem] = (),
    ) -> None:
        super().__init__(message)
        self.failures = list(failures)


# Foreign exception types, checked in order after the ``kind`` tag.
_FOREIGN_KINDS: tuple[tuple[type[BaseException], FailureKind], ...] = (
    (PermissionError, FailureKind.UNAUTHORIZED_ACCESS),
    (ValidationError, FailureKind.VALIDATION_FAILURE),
    (RequestValidationError, FailureKind.VALIDATION_FAILURE),
    (KeyError, FailureKind.KEY_NOT_FOUND),
)


def kind_of(error: BaseException) -> FailureKind:
    kind = getattr(error, "kind", None)
    if isinstance(kind, FailureKind):
        return kind
    for error_type, foreign_kind in _FOREIGN_KINDS:
        if isinstance(error, error_type):
            return foreign_kind
    return FailureKind.UNKNOWN


def error_message(error: BaseException) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str):
        return message
    if isinstance(error, KeyError) and error.args:
        # str(KeyError) wraps the key in quotes
        return str(error.args[0])
    return str(error)
