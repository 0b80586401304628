from __future__ import annotations

from prometheus_client import Counter


PROBLEM_RESPONSE_COUNT = Counter(
    "problem_responses_total",
    "Problem detail responses written",
    ["kind", "status"],
)

RESULT_FAILURE_COUNT = Counter(
    "result_failures_total",
    "Failure results converted to problem responses",
    ["kind", "status"],
)

AUTH_HANDSHAKE_COUNT = Counter(
    "auth_handshake_total",
    "Authentication handshake actions triggered by failures",
    ["action"],
)

FAILURE_BYPASS_COUNT = Counter(
    "failure_bypass_total",
    "Failures left to the runtime default handler",
    ["reason"],
)

CACHE_FAILURE_RESTAMP_COUNT = Counter(
    "cache_failure_restamp_total",
    "Failed cache values re-stored with the failure expiration",
)
