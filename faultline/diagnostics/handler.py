from __future__ import annotations

import asyncio
import logging
from enum import Enum

import anyio

from faultline.auth.handshake import AuthenticationHandler
from faultline.auth.policy import AuthorizationPolicy, PolicyProvider, resolve_policy
from faultline.core.environment import EnvironmentFlags
from faultline.core.metrics import (
    AUTH_HANDSHAKE_COUNT,
    FAILURE_BYPASS_COUNT,
    PROBLEM_RESPONSE_COUNT,
)
from faultline.diagnostics.classifier import apply_defaults, classify_for_request
from faultline.diagnostics.negotiation import can_write_structured_body
from faultline.http.transport import FailureTransport
from faultline.utils.errors import kind_of


logger = logging.getLogger("faultline.failures")


class HandlingOutcome(str, Enum):
    BYPASS = "bypass"
    CHALLENGE = "challenge"
    FORBID = "forbid"
    PROBLEM = "problem"

    @property
    def handled(self) -> bool:
        return self is not HandlingOutcome.BYPASS


class GlobalFailureHandler:
    """Turns an unhandled error into a problem body or an auth handshake.

    401 and 403 are handshakes rather than representations: the response is
    cleared and each authentication scheme of the effective policy is
    challenged (or forbidden) so the scheme can add its own headers. Every
    other status gets an ``application/problem+json`` body.
    """

    def __init__(
        self,
        *,
        environment: EnvironmentFlags,
        authentication: AuthenticationHandler | None = None,
        policy_provider: PolicyProvider | None = None,
    ) -> None:
        self._environment = environment
        self._authentication = authentication
        self._policy_provider = policy_provider

    async def try_handle(self, transport: FailureTransport, error: BaseException) -> HandlingOutcome:
        if _is_cancellation(error) or await transport.is_aborted():
            return _bypass("cancelled")
        if not can_write_structured_body(transport.accept):
            return _bypass("not_acceptable")
        options = transport.json_options
        if options is None:
            return _bypass("json_options_missing")

        model = classify_for_request(
            transport,
            error,
            transport.status_code,
            self._environment.is_development_like(),
        )
        kind = kind_of(error)

        if model.status == 401:
            policy = await resolve_policy(self._policy_provider, transport.authorize_data)
            await self._handshake(transport, "challenge", policy)
            return HandlingOutcome.CHALLENGE

        if model.status == 403:
            policy = await resolve_policy(self._policy_provider, transport.authorize_data)
            await self._handshake(transport, "forbid", policy)
            return HandlingOutcome.FORBID

        apply_defaults(model, transport.path, transport.request_id)
        transport.set_status(model.status)
        transport.write_json(model.to_payload(), options.content_type)
        PROBLEM_RESPONSE_COUNT.labels(kind=kind.value, status=str(model.status)).inc()
        if model.status >= 500:
            logger.error(
                "unhandled_error",
                exc_info=(type(error), error, error.__traceback__),
                extra={"failure_kind": kind.value, "status": model.status, "path": transport.path},
            )
        else:
            logger.warning(
                "handled_failure",
                extra={"failure_kind": kind.value, "status": model.status, "path": transport.path},
            )
        return HandlingOutcome.PROBLEM

    async def _handshake(
        self, transport: FailureTransport, action: str, policy: AuthorizationPolicy | None
    ) -> None:
        status = 401 if action == "challenge" else 403
        transport.clear()
        transport.set_status(status)
        schemes = sorted(policy.authentication_schemes) if policy else []
        logger.info(
            "auth_handshake",
            extra={"action": action, "schemes": schemes, "path": transport.path},
        )
        AUTH_HANDSHAKE_COUNT.labels(action=action).inc()
        if self._authentication is None:
            return
        trigger = (
            self._authentication.challenge
            if action == "challenge"
            else self._authentication.forbid
        )
        if not schemes:
            await trigger(transport, None)
            return
        for scheme in schemes:
            await trigger(transport, scheme)


def _is_cancellation(error: BaseException) -> bool:
    if isinstance(error, asyncio.CancelledError):
        return True
    try:
        return isinstance(error, anyio.get_cancelled_exc_class())
    except RuntimeError:
        # no async library detected
        return False


def _bypass(reason: str) -> HandlingOutcome:
    FAILURE_BYPASS_COUNT.labels(reason=reason).inc()
    return HandlingOutcome.BYPASS
