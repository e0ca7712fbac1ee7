## app/core/config.py

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEVELOPMENT_SECRET_KEY = "supersecret"


class Settings(BaseSettings):
    """
    Settings for the application
    """

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", case_sensitive=False
    )

    environment: str = "development"
    allowed_cors_urls: str = "http://localhost:3000"
    log_file: Optional[str] = None

    database_url: str = "sqlite:///./envelopes.db"

    # Signing links
    app_base_url: str = "http://localhost:8000"
    secret_key: str = DEVELOPMENT_SECRET_KEY
    algorithm: str = "HS256"
    signing_token_expire_minutes: int = Field(default=60 * 24 * 7, gt=0)

    # Blob storage
    storage_backend: str = "local"
    storage_dir: str = "storage"
    allowed_file_types: str = "pdf"
    allowed_file_size: int = 20480

    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    aws_ses_sender_email: Optional[str] = None
    aws_ses_configuration_set: Optional[str] = None
    s3_bucket_name: Optional[str] = None
    s3_public_base_url: Optional[str] = None
    s3_object_acl: Optional[str] = "public-read"

    email_subject: str = "Documents ready for signature"

    @model_validator(mode="after")
    def check_secret_key(self) -> "Settings":
        """Refuse the development secret outside development"""
        if (
            self.environment.lower() == "production"
            and self.secret_key == DEVELOPMENT_SECRET_KEY
        ):
            raise ValueError("SECRET_KEY must be set in production")
        return self

    @property
    def cors_origins(self) -> list:
        """
        Allowed CORS origins
        """
        return [url.strip() for url in self.allowed_cors_urls.split(",") if url.strip()]

    @property
    def storage_base_url(self) -> str:
        """
        Public URL prefix for files in the local blob store
        """
        return f"{self.app_base_url.rstrip('/')}/storage"


settings = Settings()
