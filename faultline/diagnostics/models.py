from __future__ import annotations

from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FailureSeverity(str, Enum):
    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"


class ProblemSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FailureItem(ProblemSchema):
    property_name: str = ""
    error_message: str = ""
    error_code: str = ""
    severity: FailureSeverity = FailureSeverity.ERROR
    attempted_value: str = ""
    custom_state: str = ""


class ProblemDetails(ProblemSchema):
    """RFC 7807 problem representation written for every non-handshake failure."""

    status: int = 500
    title: str | None = None
    type: str | None = None
    detail: str | None = None
    instance: str | None = None
    failures: list[FailureItem] = Field(default_factory=list)
    request_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        if not payload.get("failures"):
            payload.pop("failures", None)
        return payload


def failure_items_from_errors(errors: Iterable[dict[str, Any]]) -> list[FailureItem]:
    """Map pydantic-style error dicts (``ValidationError.errors()``) to failure items."""
    items: list[FailureItem] = []
    for error in errors:
        loc = error.get("loc") or ()
        items.append(
            FailureItem(
                property_name=".".join(str(part) for part in loc),
                error_message=str(error.get("msg", "")),
                error_code=str(error.get("type", "")),
                severity=FailureSeverity.ERROR,
                attempted_value=_as_text(error.get("input")),
                custom_state=_as_text(error.get("ctx")),
            )
        )
    return items


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)
