from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Iterable, Protocol, Sequence, TypeVar

from faultline.caching.settings import CacheEntryOptions, QueryCacheSettings
from faultline.core.metrics import CACHE_FAILURE_RESTAMP_COUNT
from faultline.results import is_failed_result


T = TypeVar("T")

Factory = Callable[[], Awaitable[T]]


class CacheStore(Protocol):
    """Two-level get-or-populate cache owned by the host application."""

    async def get_or_create(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        options: CacheEntryOptions,
        tags: Sequence[str] | None = None,
    ) -> Any: ...

    async def set(
        self,
        key: str,
        value: Any,
        options: CacheEntryOptions,
        tags: Sequence[str] | None = None,
    ) -> None: ...

    async def remove(self, key: str) -> None: ...

    async def remove_by_tag(self, tag: str) -> None: ...


class CacheableQueryService:
    """Get-or-create wrapper that keeps failed results for a shorter time."""

    def __init__(self, store: CacheStore) -> None:
        self._store = store

    async def get_or_create(
        self,
        key: str,
        factory: Factory[T],
        settings: QueryCacheSettings,
        tags: Sequence[str] | None = None,
    ) -> T:
        value = await self._store.get_or_create(
            key, factory, settings.entry_options(), tags=tags
        )
        # Re-stamped on every read of a failed value, not only on creation.
        if is_failed_result(value) and settings.failure_expiration is not None:
            await self._store.set(
                key,
                value,
                settings.entry_options(use_failure_expiration=True),
                tags=tags,
            )
            CACHE_FAILURE_RESTAMP_COUNT.inc()
            logging.getLogger("faultline.cache").debug(
                "cache_failure_restamped",
                extra={"cache_key": key, "ttl_seconds": settings.failure_expiration.total_seconds()},
            )
        return value

    async def remove(self, key: str) -> None:
        await self._store.remove(key)

    async def remove_by_tag(self, tag: str) -> None:
        await self._store.remove_by_tag(tag)

    async def remove_by_tags(self, tags: Iterable[str]) -> None:
        for tag in tags:
            await self._store.remove_by_tag(tag)
