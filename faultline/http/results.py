from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Awaitable, Callable

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from faultline.core.environment import EnvironmentFlags, HostEnvironment
from faultline.core.metrics import RESULT_FAILURE_COUNT
from faultline.diagnostics.classifier import apply_defaults, classify, classify_for_request
from faultline.http.transport import ProblemJsonOptions
from faultline.results import Failure, Success
from faultline.utils.errors import kind_of
from faultline.utils.request_id import get_request_id


logger = logging.getLogger("faultline.results")

_REQUEST_PARAM = "_result_request"
_RESPONSE_PARAM = "_result_response"


class ResultResponder:
    """Maps ``Success``/``Failure`` values returned by application code to responses.

    Failures are classified and written as problem bodies; there is no
    challenge/forbid handshake on this path.
    """

    def __init__(
        self,
        *,
        environment: EnvironmentFlags,
        json_options: ProblemJsonOptions | None = None,
    ) -> None:
        self._environment = environment
        self._json_options = json_options or ProblemJsonOptions()

    @classmethod
    def from_settings(cls) -> "ResultResponder":
        return cls(environment=HostEnvironment.from_settings())

    def to_response(
        self,
        result: Success[Any] | Failure,
        *,
        path: str,
        ambient_status: int = 200,
        context: Any = None,
    ) -> Response:
        if isinstance(result, Success):
            if result.value is None:
                return Response(status_code=204)
            return JSONResponse(status_code=200, content=jsonable_encoder(result.value))
        return self.failure_response(
            result.error, path=path, ambient_status=ambient_status, context=context
        )

    def failure_response(
        self,
        error: BaseException,
        *,
        path: str,
        ambient_status: int = 200,
        context: Any = None,
    ) -> Response:
        is_development = self._environment.is_development_like()
        if context is not None:
            model = classify_for_request(context, error, ambient_status, is_development)
        else:
            model = classify(error, ambient_status, is_development)
        apply_defaults(model, path, get_request_id() or None)
        kind = kind_of(error)
        RESULT_FAILURE_COUNT.labels(kind=kind.value, status=str(model.status)).inc()
        logger.error(
            "result_failure",
            extra={
                "failure_kind": kind.value,
                "exception_type": type(error).__name__,
                "status": model.status,
                "path": path,
            },
        )
        return Response(
            content=self._json_options.dumps(model.to_payload()),
            status_code=model.status,
            media_type=self._json_options.content_type,
        )


def result_endpoint(func: Callable[..., Any]) -> Callable[..., Awaitable[Any]]:
    """Decorate a FastAPI endpoint so returned results become HTTP responses.

    ``Response`` objects and plain values pass through untouched. Errors
    raised by the endpoint are converted like ``Failure`` results, except
    Starlette ``HTTPException`` which keeps its own handling.
    """
    signature = inspect.signature(func, eval_str=True)
    parameters = [
        param for param in signature.parameters.values() if param.kind != param.VAR_KEYWORD
    ]
    parameters.extend(
        [
            inspect.Parameter(_REQUEST_PARAM, inspect.Parameter.KEYWORD_ONLY, annotation=Request),
            inspect.Parameter(_RESPONSE_PARAM, inspect.Parameter.KEYWORD_ONLY, annotation=Response),
        ]
    )
    is_coroutine = inspect.iscoroutinefunction(func)

    @functools.wraps(func)
    async def wrapper(**kwargs: Any) -> Any:
        request: Request = kwargs.pop(_REQUEST_PARAM)
        sub_response: Response = kwargs.pop(_RESPONSE_PARAM)
        responder = _responder_for(request)
        ambient_status = sub_response.status_code or 200
        try:
            if is_coroutine:
                value = await func(**kwargs)
            else:
                value = await run_in_threadpool(func, **kwargs)
        except StarletteHTTPException:
            raise
        except Exception as exc:
            return responder.failure_response(
                exc, path=request.url.path, ambient_status=ambient_status, context=request
            )
        if isinstance(value, Response):
            return value
        if isinstance(value, (Success, Failure)):
            return responder.to_response(
                value, path=request.url.path, ambient_status=ambient_status, context=request
            )
        return value

    wrapper.__signature__ = signature.replace(  # type: ignore[attr-defined]
        parameters=parameters, return_annotation=inspect.Signature.empty
    )
    return wrapper


def _responder_for(request: Request) -> ResultResponder:
    responder = getattr(request.app.state, "result_responder", None)
    if isinstance(responder, ResultResponder):
        return responder
    return ResultResponder.from_settings()
