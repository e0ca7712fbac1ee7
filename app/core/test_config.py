import pytest
from pydantic import ValidationError

from app.core.config import DEVELOPMENT_SECRET_KEY, Settings

OPTIONAL_FIELDS = [
    "log_file", "aws_access_key_id", "aws_secret_access_key",
    "aws_ses_sender_email", "aws_ses_configuration_set",
    "s3_bucket_name", "s3_public_base_url",
]


@pytest.fixture()
def clean_env(monkeypatch):
    for field in OPTIONAL_FIELDS + [
        "environment", "secret_key", "signing_token_expire_minutes",
        "app_base_url", "allowed_cors_urls", "storage_backend",
    ]:
        monkeypatch.delenv(field.upper(), raising=False)
        monkeypatch.delenv(field, raising=False)
    return monkeypatch


def test_defaults_load_without_any_environment(clean_env):
    config = Settings(_env_file=None)

    for field in OPTIONAL_FIELDS:
        assert getattr(config, field) is None
    assert config.signing_token_expire_minutes == 60 * 24 * 7
    assert config.storage_backend == "local"
    assert config.storage_base_url == "http://localhost:8000/storage"
    assert config.cors_origins == ["http://localhost:3000"]


def test_optional_values_are_read_from_environment(clean_env):
    clean_env.setenv("AWS_SES_SENDER_EMAIL", "noreply@x.com")
    clean_env.setenv("LOG_FILE", "/tmp/envelopes.log")

    config = Settings(_env_file=None)
    assert config.aws_ses_sender_email == "noreply@x.com"
    assert config.log_file == "/tmp/envelopes.log"


def test_production_refuses_development_secret(clean_env):
    clean_env.setenv("ENVIRONMENT", "production")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)

    clean_env.setenv("SECRET_KEY", "a-real-secret")
    assert Settings(_env_file=None).secret_key != DEVELOPMENT_SECRET_KEY


@pytest.mark.parametrize("minutes", ["0", "-5"])
def test_token_window_must_be_positive(clean_env, minutes):
    clean_env.setenv("SIGNING_TOKEN_EXPIRE_MINUTES", minutes)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
