from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from faultline.core.settings import Settings, get_settings


@dataclass(frozen=True)
class CacheEntryOptions:
    expiration: timedelta
    local_expiration: timedelta


@dataclass(frozen=True)
class QueryCacheSettings:
    expiration: timedelta
    local_expiration: timedelta
    failure_expiration: timedelta | None = None

    def __post_init__(self) -> None:
        for name in ("expiration", "local_expiration", "failure_expiration"):
            value = getattr(self, name)
            if value is not None and value <= timedelta(0):
                raise ValueError(f"{name} must be positive")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "QueryCacheSettings":
        settings = settings or get_settings()
        failure_seconds = settings.cache_failure_expiration_seconds
        return cls(
            expiration=timedelta(seconds=settings.cache_expiration_seconds),
            local_expiration=timedelta(seconds=settings.cache_local_expiration_seconds),
            failure_expiration=(
                timedelta(seconds=failure_seconds) if failure_seconds else None
            ),
        )

    def entry_options(self, use_failure_expiration: bool = False) -> CacheEntryOptions:
        if use_failure_expiration and self.failure_expiration is not None:
            return CacheEntryOptions(
                expiration=self.failure_expiration,
                local_expiration=self.failure_expiration,
            )
        return CacheEntryOptions(
            expiration=self.expiration,
            local_expiration=self.local_expiration,
        )
