from __future__ import annotations

from http import HTTPStatus
from types import MappingProxyType
from typing import Mapping, NamedTuple


class ProblemDefault(NamedTuple):
    type: str
    title: str


_RFC9110 = "https://tools.ietf.org/html/rfc9110"

PROBLEM_DEFAULTS: Mapping[int, ProblemDefault] = MappingProxyType(
    {
        400: ProblemDefault(f"{_RFC9110}#section-15.5.1", "Bad Request"),
        401: ProblemDefault(f"{_RFC9110}#section-15.5.2", "Unauthorized"),
        403: ProblemDefault(f"{_RFC9110}#section-15.5.4", "Forbidden"),
        404: ProblemDefault(f"{_RFC9110}#section-15.5.5", "Not Found"),
        405: ProblemDefault(f"{_RFC9110}#section-15.5.6", "Method Not Allowed"),
        406: ProblemDefault(f"{_RFC9110}#section-15.5.7", "Not Acceptable"),
        408: ProblemDefault(f"{_RFC9110}#section-15.5.9", "Request Timeout"),
        409: ProblemDefault(f"{_RFC9110}#section-15.5.10", "Conflict"),
        412: ProblemDefault(f"{_RFC9110}#section-15.5.13", "Precondition Failed"),
        415: ProblemDefault(f"{_RFC9110}#section-15.5.16", "Unsupported Media Type"),
        422: ProblemDefault(f"{_RFC9110}#section-15.5.21", "Unprocessable Entity"),
        426: ProblemDefault(f"{_RFC9110}#section-15.5.22", "Upgrade Required"),
        500: ProblemDefault(
            f"{_RFC9110}#section-15.6.1",
            "An error occurred while processing your request.",
        ),
        502: ProblemDefault(f"{_RFC9110}#section-15.6.3", "Bad Gateway"),
        503: ProblemDefault(f"{_RFC9110}#section-15.6.4", "Service Unavailable"),
        504: ProblemDefault(f"{_RFC9110}#section-15.6.5", "Gateway Timeout"),
    }
)

# RFC 7807 default type when no specific category applies.
BLANK_TYPE = "about:blank"


def reason_phrase(status: int) -> str | None:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return None
