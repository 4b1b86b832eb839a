from __future__ import annotations

from pyfresh._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "id": "ISSUE-1",
        "access_token": "abc",
        "Authorization": "Bearer xyz",
        "password": "pw",
        "nested": {"api-key": "k", "title": "Login Bug"},
    }

    redacted = redact_for_log(payload)
    assert redacted["id"] == "ISSUE-1"
    assert redacted["access_token"] == "<redacted>"
    assert redacted["Authorization"] == "<redacted>"
    assert redacted["password"] == "<redacted>"
    assert redacted["nested"]["api-key"] == "<redacted>"
    assert redacted["nested"]["title"] == "Login Bug"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_bounds_collections() -> None:
    redacted = redact_for_log(list(range(30)), max_items=5)
    assert redacted[:5] == [0, 1, 2, 3, 4]
    assert redacted[-1] == "<25 more>"
