from app.core.jwt import create_signing_token
from app.testing_dependencies import blob_store, client, db_session, email_service  # noqa: F401
from app.utils.logger import _redact_token


def test_signing_tokens_are_redacted_from_paths():
    token = create_signing_token("env123", "a@x.com", 0)
    assert _redact_token(f"/envelopes/{token}/complete") == "/envelopes/<token>/complete"
    assert _redact_token(f"/sign/{token}") == "/sign/<token>"
    assert _redact_token("/envelopes") == "/envelopes"


def test_request_id_is_echoed(client):
    response = client.get("/", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"
    assert client.get("/").headers["X-Request-ID"]
