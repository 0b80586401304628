from __future__ import annotations

from fastapi import FastAPI

from faultline.auth.handshake import AuthenticationHandler
from faultline.auth.policy import PolicyProvider
from faultline.caching.service import CacheableQueryService, CacheStore
from faultline.core.environment import EnvironmentFlags
from faultline.core.logging import configure_logging
from faultline.core.settings import get_settings
from faultline.http.middleware import install_problem_details


def create_app(
    *,
    environment: EnvironmentFlags | None = None,
    authentication: AuthenticationHandler | None = None,
    policy_provider: PolicyProvider | None = None,
    cache_store: CacheStore | None = None,
) -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, service=settings.app_name)

    app = FastAPI(title=settings.app_name, version="1.0.0")
    install_problem_details(
        app,
        environment=environment,
        authentication=authentication,
        policy_provider=policy_provider,
    )
    if cache_store is not None:
        app.state.query_cache = CacheableQueryService(cache_store)
    return app
