from __future__ import annotations

import re
import uuid
from contextvars import ContextVar


_request_id: ContextVar[str] = ContextVar("request_id", default="")

# Echoed into response headers and problem bodies, so only plain tokens are trusted.
_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")


def set_request_id(value: str | None = None) -> str:
    """Bind the request id for the current context.

    An incoming id that is missing or not a plain token is replaced by a
    generated one.
    """
    candidate = (value or "").strip()
    request_id = candidate if _ACCEPTED_ID.match(candidate) else uuid.uuid4().hex
    _request_id.set(request_id)
    return request_id


def get_request_id() -> str:
    return _request_id.get()
