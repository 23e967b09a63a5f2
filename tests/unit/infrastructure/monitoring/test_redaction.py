import pytest

from bamboocli.infrastructure.monitoring.redaction import REDACTED, is_sensitive_key, redact, redact_text


@pytest.mark.parametrize("key", ["api_key", "apiKey", "API-KEY", "password", "client_secret", "access_token", "Authorization", "auth"])
def test_sensitive_keys(key):
    assert is_sensitive_key(key)


@pytest.mark.parametrize("key", ["employeeId", "fields", "author", "start", 42])
def test_ordinary_keys(key):
    assert not is_sensitive_key(key)


def test_redact_nested_structures_without_mutating_input():
    params = {
        "employeeId": "42",
        "headers": {"Authorization": "Basic dGVzdC1rZXk6eA=="},
        "filters": [{"token": "t-1"}, ("password", "hunter2")],
    }
    redacted = redact(params)

    assert redacted["employeeId"] == "42"
    assert redacted["headers"]["Authorization"] == REDACTED
    assert redacted["filters"][0]["token"] == REDACTED
    assert isinstance(redacted["filters"][1], tuple)
    assert params["headers"]["Authorization"] == "Basic dGVzdC1rZXk6eA=="


def test_redact_text_masks_credentials_in_messages():
    text = "Authorization: Bearer abc.def.ghi failed; api_key=sk-123 and Basic dGVzdC1rZXk6eDEyMzQ1"
    masked = redact_text(text)
    assert "abc.def.ghi" not in masked
    assert "sk-123" not in masked
    assert "dGVzdC1rZXk6eDEyMzQ1" not in masked
    assert "Bearer [REDACTED]" in masked


def test_redact_text_leaves_ordinary_text_alone():
    assert redact_text("basic settings for employee 42") == "basic settings for employee 42"


def test_redact_stops_at_max_depth():
    deep = current = {}
    for _ in range(15):
        current["child"] = {}
        current = current["child"]
    result = redact(deep)
    for _ in range(10):
        result = result["child"]
    assert result == "[MAX_DEPTH_EXCEEDED]"
