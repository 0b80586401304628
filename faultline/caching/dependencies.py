from __future__ import annotations

from fastapi import Request

from faultline.caching.service import CacheableQueryService


def get_query_cache(request: Request) -> CacheableQueryService:
    cache = getattr(request.app.state, "query_cache", None)
    if not isinstance(cache, CacheableQueryService):
        raise RuntimeError("No cache store configured for this application")
    return cache
