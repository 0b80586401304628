from __future__ import annotations

import json
import logging
import sys

from faultline.core.logging import JsonFormatter
from faultline.utils.request_id import get_request_id, set_request_id


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("faultline.failures", logging.ERROR, __file__, 1, "unhandled_error", (), None)
    record.__dict__.update(extra)
    return record


def test_formatter_emits_service_request_id_and_extra() -> None:
    set_request_id("req-77")

    payload = json.loads(JsonFormatter("orders").format(_record(failure_kind="not_found", status=404)))

    assert payload["service"] == "orders"
    assert payload["message"] == "unhandled_error"
    assert payload["request_id"] == "req-77"
    assert payload["failure_kind"] == "not_found"
    assert payload["status"] == 404
    assert "lineno" not in payload


def test_formatter_splits_exception_fields() -> None:
    try:
        raise RuntimeError("db down")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonFormatter().format(record))

    assert payload["exception"]["type"] == "RuntimeError"
    assert payload["exception"]["message"] == "db down"
    assert "Traceback" in payload["exception"]["traceback"]


def test_untrusted_request_id_is_replaced() -> None:
    assert set_request_id("  abc-123  ") == "abc-123"
    generated = set_request_id("bad id\r\nX-Injected: 1")

    assert generated != "bad id\r\nX-Injected: 1"
    assert len(generated) == 32
    assert get_request_id() == generated
    assert set_request_id("x" * 200) != "x" * 200
