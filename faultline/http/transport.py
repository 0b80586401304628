from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol

from starlette.requests import Request
from starlette.responses import Response

from faultline.auth.policy import AuthorizeData, authorize_data_for
from faultline.diagnostics.negotiation import PROBLEM_JSON_MEDIA_TYPE, parse_accept
from faultline.utils.request_id import get_request_id


@dataclass(frozen=True)
class ProblemJsonOptions:
    content_type: str = PROBLEM_JSON_MEDIA_TYPE
    ensure_ascii: bool = False

    def dumps(self, payload: Any) -> bytes:
        return json.dumps(
            payload,
            ensure_ascii=self.ensure_ascii,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
        ).encode("utf-8")


class FailureTransport(Protocol):
    """What the failure handler needs from the HTTP layer."""

    path: str
    status_code: int
    accept: list[str]
    authorize_data: tuple[AuthorizeData, ...]
    json_options: ProblemJsonOptions | None
    request_id: str | None
    state: Any

    async def is_aborted(self) -> bool: ...

    def clear(self) -> None: ...

    def set_status(self, status_code: int) -> None: ...

    def append_header(self, name: str, value: str) -> None: ...

    def write_json(self, payload: Any, content_type: str) -> None: ...


class StarletteTransport:
    def __init__(self, request: Request, *, status_code: int = 200) -> None:
        self.request = request
        self.path = request.url.path
        self.status_code = status_code
        self.accept = parse_accept(request.headers.get("accept"))
        route = request.scope.get("route")
        self.authorize_data = authorize_data_for(getattr(route, "endpoint", None))
        app = request.scope.get("app")
        self.json_options: ProblemJsonOptions | None = (
            getattr(app.state, "problem_json", None) if app is not None else None
        )
        self.request_id = get_request_id() or None
        self.state = request.state
        self._headers: list[tuple[str, str]] = []
        self._body: bytes | None = None
        self._media_type: str | None = None

    async def is_aborted(self) -> bool:
        return await self.request.is_disconnected()

    def clear(self) -> None:
        self._headers.clear()
        self._body = None
        self._media_type = None

    def set_status(self, status_code: int) -> None:
        self.status_code = status_code

    def append_header(self, name: str, value: str) -> None:
        self._headers.append((name, value))

    def write_json(self, payload: Any, content_type: str) -> None:
        options = self.json_options or ProblemJsonOptions()
        self._body = options.dumps(payload)
        self._media_type = content_type

    def to_response(self) -> Response:
        response = Response(
            content=self._body,
            status_code=self.status_code,
            media_type=self._media_type,
        )
        for name, value in self._headers:
            response.headers.append(name, value)
        return response
