from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Protocol, Sequence, TypeVar

from faultline.core.settings import Settings, get_settings


_F = TypeVar("_F", bound=Callable[..., Any])

AUTHORIZE_DATA_ATTR = "__authorize_data__"


@dataclass(frozen=True)
class AuthorizationPolicy:
    authentication_schemes: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, schemes: Iterable[str]) -> "AuthorizationPolicy":
        return cls(authentication_schemes=frozenset(s for s in schemes if s))

    @staticmethod
    def combine(policies: Iterable["AuthorizationPolicy"]) -> "AuthorizationPolicy":
        schemes: set[str] = set()
        for policy in policies:
            schemes.update(policy.authentication_schemes)
        return AuthorizationPolicy(authentication_schemes=frozenset(schemes))


@dataclass(frozen=True)
class AuthorizeData:
    """Authorization requirement declared on a route endpoint."""

    policy: str | None = None
    schemes: tuple[str, ...] = ()


class PolicyProvider(Protocol):
    async def get_policy(self, name: str) -> AuthorizationPolicy | None: ...

    async def default_policy(self) -> AuthorizationPolicy | None: ...

    async def fallback_policy(self) -> AuthorizationPolicy | None: ...


class StaticPolicyProvider:
    def __init__(
        self,
        *,
        policies: Mapping[str, AuthorizationPolicy] | None = None,
        default: AuthorizationPolicy | None = None,
        fallback: AuthorizationPolicy | None = None,
    ) -> None:
        self._policies = dict(policies or {})
        self._default = default
        self._fallback = fallback

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "StaticPolicyProvider":
        settings = settings or get_settings()
        return cls(
            policies={
                name: AuthorizationPolicy.of(schemes)
                for name, schemes in settings.authorization_policies.items()
            },
            default=(
                AuthorizationPolicy.of(settings.default_authentication_schemes)
                if settings.default_authentication_schemes
                else None
            ),
            fallback=(
                AuthorizationPolicy.of(settings.fallback_authentication_schemes)
                if settings.fallback_authentication_schemes
                else None
            ),
        )

    async def get_policy(self, name: str) -> AuthorizationPolicy | None:
        return self._policies.get(name)

    async def default_policy(self) -> AuthorizationPolicy | None:
        return self._default

    async def fallback_policy(self) -> AuthorizationPolicy | None:
        return self._fallback


def authorize(*schemes: str, policy: str | None = None) -> Callable[[_F], _F]:
    """Declare the authorization requirement of an endpoint.

    Stacking the decorator accumulates requirements, mirroring multiple
    authorize attributes on a single route.
    """

    def _decorator(func: _F) -> _F:
        existing: tuple[AuthorizeData, ...] = getattr(func, AUTHORIZE_DATA_ATTR, ())
        setattr(func, AUTHORIZE_DATA_ATTR, existing + (AuthorizeData(policy, tuple(schemes)),))
        return func

    return _decorator


def authorize_data_for(endpoint: Any) -> tuple[AuthorizeData, ...]:
    if endpoint is None:
        return ()
    return tuple(getattr(endpoint, AUTHORIZE_DATA_ATTR, ()))


async def resolve_policy(
    provider: PolicyProvider | None, authorize_data: Sequence[AuthorizeData]
) -> AuthorizationPolicy | None:
    """Resolve the policy in effect: route requirements, then default, then fallback."""
    if provider is None:
        return None
    if authorize_data:
        return await _combine_route_policy(provider, authorize_data)
    default = await provider.default_policy()
    if default is not None:
        return default
    return await provider.fallback_policy()


async def _combine_route_policy(
    provider: PolicyProvider, authorize_data: Sequence[AuthorizeData]
) -> AuthorizationPolicy:
    parts: list[AuthorizationPolicy] = []
    for data in authorize_data:
        if data.policy:
            named = await provider.get_policy(data.policy)
            if named is None:
                logging.getLogger("faultline.auth").warning(
                    "authorization_policy_missing", extra={"policy": data.policy}
                )
            else:
                parts.append(named)
        if data.schemes:
            parts.append(AuthorizationPolicy.of(data.schemes))
        if not data.policy and not data.schemes:
            default = await provider.default_policy()
            if default is not None:
                parts.append(default)
    return AuthorizationPolicy.combine(parts)
