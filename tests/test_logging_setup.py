import json
import logging
import sys

from pos_backend.core.config import STAFF_SESSION_COOKIE
from pos_backend.core.logging_setup import JsonFormatter, configure_logging
from pos_backend.core.request_context import (
    clear_request_context,
    get_request_id,
    get_user_id,
    request_scope,
    set_request_context,
)


def _record(message, *args, **extra):
    record = logging.LogRecord(
        name="pos_backend.routers.modifiers",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_json_with_request_context():
    set_request_context(request_id="req-1", user_id="7")
    try:
        line = JsonFormatter("%(message)s").format(
            _record("order line rejected for %s", "Pad Thai", product_id=42, error_code="too_many_choices")
        )
    finally:
        clear_request_context()

    payload = json.loads(line)
    assert payload["message"] == "order line rejected for Pad Thai"
    assert payload["level"] == "INFO"
    assert payload["module"] == "pos_backend.routers.modifiers"
    assert payload["request_id"] == "req-1"
    assert payload["user_id"] == "7"
    assert payload["product_id"] == 42
    assert payload["error_code"] == "too_many_choices"
    assert "modifier_id" not in payload


def test_formatter_masks_secrets():
    line = JsonFormatter("%(message)s").format(_record("login password=hunter2 token=abc123"))

    message = json.loads(line)["message"]
    assert "hunter2" not in message
    assert "abc123" not in message
    assert "password=***" in message


def test_formatter_includes_exception_text():
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record("startup failed")
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonFormatter("%(message)s").format(record))
    assert "ValueError: boom" in payload["exception"]


def test_session_cookie_value_is_masked():
    line = JsonFormatter().format(_record(f"cookie: {STAFF_SESSION_COOKIE}=eyJ1c2VyX2lkIjo3fQ.sig; theme=dark"))

    message = json.loads(line)["message"]
    assert "eyJ1c2VyX2lkIjo3fQ" not in message
    assert "theme=dark" in message


def test_request_scope_restores_outer_context():
    set_request_context(request_id="outer")
    try:
        with request_scope("inner"):
            set_request_context(user_id="7")
            assert get_request_id() == "inner"
            assert get_user_id() == "7"
        assert get_request_id() == "outer"
        assert get_user_id() is None
    finally:
        clear_request_context()


def test_configure_logging_installs_single_json_handler():
    root_logger = logging.getLogger()
    previous_handlers, previous_level = root_logger.handlers[:], root_logger.level
    try:
        configure_logging("debug")
        configure_logging("warning")

        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, JsonFormatter)
        assert root_logger.level == logging.WARNING
    finally:
        root_logger.handlers[:] = previous_handlers
        root_logger.setLevel(previous_level)
