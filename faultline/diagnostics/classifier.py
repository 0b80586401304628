from __future__ import annotations

from typing import Any, Callable

from faultline.diagnostics.models import (
    FailureItem,
    FailureSeverity,
    ProblemDetails,
    failure_items_from_errors,
)
from faultline.diagnostics.taxonomy import BLANK_TYPE, PROBLEM_DEFAULTS, reason_phrase
from faultline.utils.errors import FailureKind, error_message, kind_of


AUTHENTICATION_REQUIRED = "Authentication required"
ACCESS_DENIED = "Access denied"
UNABLE_TO_PROCESS = "Unable to process the request"

_Builder = Callable[[BaseException, int, bool], ProblemDetails]


def classify(error: BaseException, ambient_status: int, is_development: bool) -> ProblemDetails:
    """Map an error to its canonical problem model.

    Never raises: anything that is not a recognised kind lands in the
    unknown branch, which trusts ``ambient_status`` only when it is already
    an error status.
    """
    kind = kind_of(error)
    builder = _BUILDERS.get(kind, _from_unknown)
    return builder(error, ambient_status, is_development)


def apply_defaults(
    model: ProblemDetails, request_path: str, request_id: str | None = None
) -> ProblemDetails:
    defaults = PROBLEM_DEFAULTS.get(model.status)
    if defaults is not None:
        if model.title is None:
            model.title = defaults.title
        if model.type is None:
            model.type = defaults.type
    else:
        if model.title is None:
            model.title = reason_phrase(model.status)
        if model.type is None:
            model.type = BLANK_TYPE
    if model.instance is None:
        model.instance = request_path
    if model.request_id is None and request_id:
        model.request_id = request_id
    return model


def classify_for_request(
    context: Any, error: BaseException, ambient_status: int, is_development: bool
) -> ProblemDetails:
    """Classify once per request; later calls for the same error reuse the model.

    ``context`` is anything carrying the request-scoped ``state`` (a Starlette
    request or a failure transport).
    """
    memo: dict[int, tuple[BaseException, ProblemDetails]] | None = getattr(
        context.state, "problem_classifications", None
    )
    if memo is None:
        memo = {}
        context.state.problem_classifications = memo
    cached = memo.get(id(error))
    if cached is not None and cached[0] is error:
        return cached[1]
    model = classify(error, ambient_status, is_development)
    memo[id(error)] = (error, model)
    return model


def normalize_status(status: int | None) -> int:
    if status is None or status < 400 or status > 599:
        return 500
    return status


def _from_unknown(error: BaseException, ambient_status: int, is_development: bool) -> ProblemDetails:
    return ProblemDetails(
        status=normalize_status(ambient_status),
        detail=error_message(error) if is_development else "",
    )


def _authentication_required(
    error: BaseException, _ambient_status: int, is_development: bool
) -> ProblemDetails:
    return ProblemDetails(
        status=401,
        detail=error_message(error) if is_development else AUTHENTICATION_REQUIRED,
    )


def _access_denied(error: BaseException, _ambient_status: int, is_development: bool) -> ProblemDetails:
    return ProblemDetails(
        status=403,
        detail=error_message(error) if is_development else ACCESS_DENIED,
    )


def _with_status(status: int) -> _Builder:
    def _builder(error: BaseException, _ambient_status: int, _is_development: bool) -> ProblemDetails:
        return ProblemDetails(status=status, detail=error_message(error))

    return _builder


def _from_already_exists(
    error: BaseException, _ambient_status: int, _is_development: bool
) -> ProblemDetails:
    inner = error.__cause__
    fragments = error_message(inner).split(";") if inner is not None else []
    return ProblemDetails(
        status=409,
        detail=error_message(error),
        failures=[
            FailureItem(
                error_message=fragment,
                error_code="Conflict",
                severity=FailureSeverity.ERROR,
            )
            for fragment in fragments
        ],
    )


def _from_malformed_request(
    error: BaseException, _ambient_status: int, is_development: bool
) -> ProblemDetails:
    return ProblemDetails(
        status=400,
        detail=error_message(error) if is_development else UNABLE_TO_PROCESS,
    )


def _from_batch_operation(
    error: BaseException, _ambient_status: int, _is_development: bool
) -> ProblemDetails:
    return ProblemDetails(
        status=normalize_status(getattr(error, "status_code", None)),
        detail=error_message(error),
    )


def _from_validation(error: BaseException, _ambient_status: int, _is_development: bool) -> ProblemDetails:
    failures = getattr(error, "failures", None)
    if failures is None and callable(getattr(error, "errors", None)):
        failures = failure_items_from_errors(error.errors())
    return ProblemDetails(
        status=422,
        detail=error_message(error),
        failures=list(failures or []),
    )


_BUILDERS: dict[FailureKind, _Builder] = {
    FailureKind.AUTHENTICATION_FAILURE: _authentication_required,
    FailureKind.UNAUTHENTICATED_ACCESS: _authentication_required,
    FailureKind.UNAUTHORIZED_ACCESS: _access_denied,
    FailureKind.FORBIDDEN_ACCESS: _access_denied,
    FailureKind.GENERIC_SECURITY: _access_denied,
    FailureKind.CONFLICT: _with_status(409),
    FailureKind.ALREADY_EXISTS: _from_already_exists,
    FailureKind.BAD_REQUEST: _with_status(400),
    FailureKind.MALFORMED_REQUEST: _from_malformed_request,
    FailureKind.BATCH_OPERATION_FAILURE: _from_batch_operation,
    FailureKind.CONCURRENCY_CONFLICT: _with_status(412),
    FailureKind.NOT_FOUND: _with_status(404),
    FailureKind.KEY_NOT_FOUND: _with_status(400),
    FailureKind.VALIDATION_FAILURE: _from_validation,
    FailureKind.UNKNOWN: _from_unknown,
}
