from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

from faultline.core.settings import Settings, get_settings


class EnvironmentFlags(Protocol):
    def is_development_like(self) -> bool: ...


@dataclass(frozen=True)
class HostEnvironment:
    name: str
    development_names: frozenset[str]

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "HostEnvironment":
        settings = settings or get_settings()
        return cls(
            name=settings.env,
            development_names=_normalize(settings.development_environments),
        )

    def is_development_like(self) -> bool:
        return self.name.strip().lower() in self.development_names


def _normalize(names: Iterable[str]) -> frozenset[str]:
    return frozenset(name.strip().lower() for name in names if name.strip())
