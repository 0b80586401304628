from __future__ import annotations

import logging
from typing import Mapping

from fastapi import FastAPI, Request
from fastapi.exception_handlers import (
    http_exception_handler,
    request_validation_exception_handler,
)
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from faultline.auth.handshake import AuthenticationHandler, HeaderAuthenticationHandler
from faultline.auth.policy import PolicyProvider, StaticPolicyProvider
from faultline.core.environment import EnvironmentFlags, HostEnvironment
from faultline.core.settings import get_settings
from faultline.diagnostics.handler import GlobalFailureHandler, HandlingOutcome
from faultline.http.results import ResultResponder
from faultline.http.transport import ProblemJsonOptions, StarletteTransport
from faultline.utils.request_id import set_request_id


class FailureHandlingMiddleware:
    """Runs the global failure handler for errors escaping the application.

    Errors raised after the response has started, and errors the handler
    declines, are re-raised so Starlette's server error handling applies.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                raise
            request = Request(scope, receive)
            handler = _failure_handler(request)
            if handler is None:
                raise
            transport = StarletteTransport(request)
            outcome = await handler.try_handle(transport, exc)
            if not outcome.handled:
                raise
            response = transport.to_response()
            await response(scope, receive, send)


def install_problem_details(
    app: FastAPI,
    *,
    environment: EnvironmentFlags | None = None,
    authentication: AuthenticationHandler | None = None,
    policy_provider: PolicyProvider | None = None,
    json_options: ProblemJsonOptions | None = None,
) -> GlobalFailureHandler:
    settings = get_settings()
    environment = environment or HostEnvironment.from_settings(settings)
    json_options = json_options or ProblemJsonOptions(content_type=settings.problem_content_type)
    handler = GlobalFailureHandler(
        environment=environment,
        authentication=authentication
        or HeaderAuthenticationHandler(
            default_scheme=next(iter(settings.default_authentication_schemes), None)
        ),
        policy_provider=policy_provider or StaticPolicyProvider.from_settings(settings),
    )
    app.state.problem_json = json_options
    app.state.failure_handler = handler
    app.state.result_responder = ResultResponder(
        environment=environment, json_options=json_options
    )

    app.add_middleware(FailureHandlingMiddleware)

    @app.exception_handler(StarletteHTTPException)
    async def problem_http_exception_handler(request: Request, exc: StarletteHTTPException):
        transport = StarletteTransport(request, status_code=exc.status_code)
        outcome = await handler.try_handle(transport, exc)
        if not outcome.handled:
            return await http_exception_handler(request, exc)
        response = transport.to_response()
        if exc.headers:
            _merge_exception_headers(response, exc.headers, outcome)
        return response

    @app.exception_handler(RequestValidationError)
    async def problem_validation_handler(request: Request, exc: RequestValidationError):
        transport = StarletteTransport(request)
        outcome = await handler.try_handle(transport, exc)
        if not outcome.handled:
            return await request_validation_exception_handler(request, exc)
        return transport.to_response()

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = set_request_id(request.headers.get(settings.request_id_header))
        response = await call_next(request)
        response.headers[settings.request_id_header] = request_id
        response.headers["X-Correlation-Id"] = request_id
        return response

    logging.getLogger("faultline.startup").info(
        "problem_details_installed",
        extra={"development": environment.is_development_like()},
    )
    return handler


def _merge_exception_headers(
    response: Response, headers: Mapping[str, str], outcome: HandlingOutcome
) -> None:
    if outcome is HandlingOutcome.PROBLEM:
        for name, value in headers.items():
            response.headers[name] = value
        return
    if outcome is not HandlingOutcome.CHALLENGE:
        return
    # challenges raised by FastAPI security dependencies survive the handshake
    existing = response.headers.getlist("www-authenticate")
    for name, value in headers.items():
        if name.lower() == "www-authenticate" and value not in existing:
            response.headers.append(name, value)


def _failure_handler(request: Request) -> GlobalFailureHandler | None:
    handler = getattr(request.app.state, "failure_handler", None)
    if isinstance(handler, GlobalFailureHandler):
        return handler
    return None

