from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from faultline.caching.dependencies import get_query_cache
from faultline.caching.service import CacheableQueryService
from faultline.caching.settings import QueryCacheSettings
from faultline.http.results import result_endpoint
from faultline.main import create_app
from faultline.results import Failure, Success
from faultline.utils.errors import NotFoundError
from tests.utils.cache import ManualClock, MemoryCacheStore
from tests.utils.transport import StaticEnvironment


CACHE_SETTINGS = QueryCacheSettings(
    expiration=timedelta(minutes=5),
    local_expiration=timedelta(minutes=1),
    failure_expiration=timedelta(seconds=10),
)


def _build_app(store: MemoryCacheStore | None) -> FastAPI:
    app = create_app(environment=StaticEnvironment(False), cache_store=store)

    @app.get("/things/{thing_id}")
    @result_endpoint
    async def get_thing(
        thing_id: int, cache: CacheableQueryService = Depends(get_query_cache)
    ):
        async def load():
            if thing_id == 404:
                return Failure(NotFoundError("thing 404 not found"))
            return Success({"id": thing_id})

        return await cache.get_or_create(f"thing:{thing_id}", load, CACHE_SETTINGS)

    return app


def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    )


@pytest.mark.anyio
async def test_cached_failure_is_served_as_problem_until_it_expires() -> None:
    clock = ManualClock()
    store = MemoryCacheStore(clock)

    async with _client(_build_app(store)) as client:
        first = await client.get("/things/404")
        clock.advance(timedelta(seconds=5))
        second = await client.get("/things/404")
        found = await client.get("/things/1")

    assert first.status_code == second.status_code == 404
    assert second.json()["detail"] == "thing 404 not found"
    assert found.json() == {"id": 1}
    assert store.factory_calls == 2
    assert store.expires_at("thing:404") == clock.now + timedelta(seconds=10)


@pytest.mark.anyio
async def test_missing_cache_store_is_server_error() -> None:
    async with _client(_build_app(None)) as client:
        response = await client.get("/things/1")

    assert response.status_code == 500
    assert response.headers["content-type"] == "application/problem+json"
