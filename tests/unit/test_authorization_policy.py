from __future__ import annotations

from types import SimpleNamespace

import pytest

from faultline.auth import policy as policy_module
from faultline.auth.handshake import HeaderAuthenticationHandler
from faultline.auth.policy import (
    AuthorizationPolicy,
    AuthorizeData,
    StaticPolicyProvider,
    authorize,
    authorize_data_for,
    resolve_policy,
)
from tests.utils.transport import FakeTransport


def test_authorize_decorator_accumulates_route_data() -> None:
    @authorize("Bearer")
    @authorize(policy="admins")
    def endpoint() -> None:
        return None

    assert authorize_data_for(endpoint) == (
        AuthorizeData(policy="admins"),
        AuthorizeData(schemes=("Bearer",)),
    )
    assert authorize_data_for(None) == ()


@pytest.mark.anyio
async def test_route_policy_combines_named_and_explicit_schemes() -> None:
    provider = StaticPolicyProvider(
        policies={"admins": AuthorizationPolicy.of(["Cookie"])},
        default=AuthorizationPolicy.of(["Default"]),
    )
    data = (AuthorizeData(policy="admins"), AuthorizeData(schemes=("Bearer", "ApiKey")))

    policy = await resolve_policy(provider, data)

    assert policy.authentication_schemes == {"Cookie", "Bearer", "ApiKey"}


@pytest.mark.anyio
async def test_bare_route_requirement_uses_default_policy() -> None:
    provider = StaticPolicyProvider(default=AuthorizationPolicy.of(["Bearer"]))

    policy = await resolve_policy(provider, (AuthorizeData(),))

    assert policy.authentication_schemes == {"Bearer"}


@pytest.mark.anyio
async def test_unknown_named_policy_is_ignored() -> None:
    provider = StaticPolicyProvider()

    policy = await resolve_policy(provider, (AuthorizeData(policy="missing"),))

    assert policy.authentication_schemes == frozenset()


@pytest.mark.anyio
async def test_no_provider_resolves_nothing() -> None:
    assert await resolve_policy(None, (AuthorizeData(schemes=("Bearer",)),)) is None


@pytest.mark.anyio
async def test_provider_from_settings(monkeypatch) -> None:
    monkeypatch.setattr(
        policy_module,
        "get_settings",
        lambda: SimpleNamespace(
            authorization_policies={"admins": ["Cookie"]},
            default_authentication_schemes=["Bearer"],
            fallback_authentication_schemes=[],
        ),
    )
    provider = StaticPolicyProvider.from_settings()

    assert (await provider.get_policy("admins")).authentication_schemes == {"Cookie"}
    assert (await provider.default_policy()).authentication_schemes == {"Bearer"}
    assert await provider.fallback_policy() is None


@pytest.mark.anyio
async def test_header_handler_challenges_with_realm() -> None:
    transport = FakeTransport()
    handler = HeaderAuthenticationHandler(default_scheme="Bearer", realm="api")

    await handler.challenge(transport, "ApiKey")
    await handler.challenge(transport, None)

    assert transport.status_code == 401
    assert ("WWW-Authenticate", 'ApiKey realm="api"') in transport.headers
    assert ("WWW-Authenticate", 'Bearer realm="api"') in transport.headers


@pytest.mark.anyio
async def test_header_handler_forbid_sets_status_only() -> None:
    transport = FakeTransport()
    transport.clear()

    await HeaderAuthenticationHandler().forbid(transport, "Bearer")

    assert transport.status_code == 403
    assert transport.headers == []


@pytest.mark.anyio
async def test_empty_default_schemes_defer_to_fallback(monkeypatch) -> None:
    monkeypatch.setattr(
        policy_module,
        "get_settings",
        lambda: SimpleNamespace(
            authorization_policies={},
            default_authentication_schemes=[],
            fallback_authentication_schemes=["Basic"],
        ),
    )
    provider = StaticPolicyProvider.from_settings()

    assert await provider.default_policy() is None
    assert (await resolve_policy(provider, ())).authentication_schemes == {"Basic"}
