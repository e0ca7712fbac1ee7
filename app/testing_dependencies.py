import logging

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .core.db import Base, get_db
from .envelopes import models  # noqa: F401
from .main import envelope_app as fast_api_app
from .utils.email_service import DeliveryError, EmailService, get_email_service
from .utils.storage import LocalBlobStore, get_blob_store

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

DATABASE_URL = "sqlite://"


@pytest.fixture()
def db_session():
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestSessionLocal()
    try:
        yield db
        logger.info("Committing Test DB Transaction")
        db.commit()
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


# Simulating the mail provider for test cases

class RecordingEmailService(EmailService):
    """Keeps sent messages in memory; fails for addresses in `failing`."""

    def __init__(self, failing=()):
        super().__init__()
        self.failing = set(failing)
        self.sent = []

    async def send_email(self, to_email: str, subject: str, html_body: str) -> None:
        if to_email in self.failing:
            raise DeliveryError(f"Mailbox unavailable: {to_email}")
        self.sent.append({"to": to_email, "subject": subject, "html": html_body})


@pytest.fixture()
def email_service():
    return RecordingEmailService()


@pytest.fixture()
def blob_store(tmp_path):
    return LocalBlobStore(root=str(tmp_path / "storage"), base_url="http://testserver/storage")


@pytest.fixture()
def client(db_session, email_service, blob_store):

    # Override FastAPI's dependencies to use the test database and collaborators
    def override_get_db():
        yield db_session

    fast_api_app.dependency_overrides[get_db] = override_get_db
    fast_api_app.dependency_overrides[get_email_service] = lambda: email_service
    fast_api_app.dependency_overrides[get_blob_store] = lambda: blob_store
    yield TestClient(fast_api_app)
    fast_api_app.dependency_overrides.clear()
