from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union


T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T = None  # type: ignore[assignment]

    @property
    def is_success(self) -> bool:
        return True

    @property
    def is_failure(self) -> bool:
        return False


@dataclass(frozen=True)
class Failure:
    error: BaseException

    @property
    def is_success(self) -> bool:
        return False

    @property
    def is_failure(self) -> bool:
        return True


Result = Union[Success[Any], Failure]


def is_failed_result(value: Any) -> bool:
    return isinstance(value, Failure)
