from talenthr.logging_config import add_service_context, redact_secrets


def test_secrets_are_redacted():
    event = {"event": "login_failed", "email": "a@acme.io", "password": "hunter2", "otp_code": "123456"}
    out = redact_secrets(None, "warning", dict(event))
    assert out["password"] == "***"
    assert out["otp_code"] == "***"
    assert out["email"] == "a@acme.io"


def test_error_code_is_not_redacted():
    out = redact_secrets(None, "error", {"event": "api_error", "code": "NOT_FOUND"})
    assert out["code"] == "NOT_FOUND"


def test_service_context_added_without_overriding():
    out = add_service_context(None, "info", {"event": "x"})
    assert out["service"] == "talenthr"
    assert out["env"] == "development"

    out = add_service_context(None, "info", {"event": "x", "env": "custom"})
    assert out["env"] == "custom"
