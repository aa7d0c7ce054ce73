"""Tests for log redaction and log file naming helpers."""

import logging

from nuggets.core.logging import _build_structured_json_payload, _redact_value, _sanitize_filename


def test_redacts_sensitive_keys_recursively():
    value = {
        "name": "tech",
        "headers": {"Authorization": "Bearer abc", "X-Api-Key": "k"},
        "items": [{"password": "p"}, ("token", {"session_token": "t"})],
    }

    redacted = _redact_value(value)

    assert redacted["name"] == "tech"
    assert redacted["headers"] == {"Authorization": "<redacted>", "X-Api-Key": "<redacted>"}
    assert redacted["items"][0] == {"password": "<redacted>"}
    assert redacted["items"][1] == ("token", {"session_token": "<redacted>"})


def test_redacts_bearer_tokens_in_strings():
    assert _redact_value("call failed with bearer abc.def-123") == "call failed with Bearer <redacted>"
    assert _redact_value(42) == 42


def test_message_is_redacted_in_payload():
    record = logging.LogRecord(
        name="error.media_enrichment",
        level=logging.ERROR,
        pathname="http.py",
        lineno=1,
        msg="Upstream rejected Bearer secret-token",
        args=(),
        exc_info=None,
    )
    record.context_data = {"url": "https://oembed.test", "api_key": "k"}

    payload = _build_structured_json_payload(record)

    assert payload["message"] == "Upstream rejected Bearer <redacted>"
    assert payload["context_data"] == {"url": "https://oembed.test", "api_key": "<redacted>"}


def test_sanitize_filename():
    assert _sanitize_filename(" Nuggets API ") == "nuggets_api"
    assert _sanitize_filename("../..") == "nuggets"
