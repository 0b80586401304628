from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Sequence

from faultline.caching.settings import CacheEntryOptions


class ManualClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def advance(self, delta: timedelta) -> None:
        self.now += delta

    def __call__(self) -> datetime:
        return self.now


@dataclass
class _Entry:
    value: Any
    expires_at: datetime
    tags: tuple[str, ...]


class MemoryCacheStore:
    """In-process store used to exercise the cache wrapper in tests."""

    def __init__(self, clock: ManualClock) -> None:
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self.factory_calls = 0
        self.sets: list[tuple[str, CacheEntryOptions]] = []

    async def get_or_create(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        options: CacheEntryOptions,
        tags: Sequence[str] | None = None,
    ) -> Any:
        entry = self._live(key)
        if entry is not None:
            return entry.value
        self.factory_calls += 1
        value = await factory()
        self._store(key, value, options, tags)
        return value

    async def set(
        self,
        key: str,
        value: Any,
        options: CacheEntryOptions,
        tags: Sequence[str] | None = None,
    ) -> None:
        self.sets.append((key, options))
        self._store(key, value, options, tags)

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    async def remove_by_tag(self, tag: str) -> None:
        for key in [k for k, entry in self._entries.items() if tag in entry.tags]:
            self._entries.pop(key, None)

    def expires_at(self, key: str) -> datetime | None:
        entry = self._entries.get(key)
        return entry.expires_at if entry else None

    def _live(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry

    def _store(
        self, key: str, value: Any, options: CacheEntryOptions, tags: Sequence[str] | None
    ) -> None:
        # local tier shares the entry; the shorter of the two durations wins
        ttl = min(options.expiration, options.local_expiration)
        self._entries[key] = _Entry(value, self._clock() + ttl, tuple(tags or ()))
