"""
Pytest configuration and fixtures.
"""
import os

# Keep the application's own engine off the filesystem during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import filingdesk.models  # noqa: F401
from filingdesk.api.routes.filings import get_filing_service
from filingdesk.config import Settings
from filingdesk.database import Base, get_db
from filingdesk.main import app
from filingdesk.services.dispatchers import (
    DispatcherRegistry,
    DocumentDispatcher,
    EmailDispatcher,
    SmsDispatcher,
)
from filingdesk.services.filing_service import FilingService
from filingdesk.services.pdf_layout import PdfReceiptLayout
from filingdesk.services.transports import MailTransport, SmsGateway


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeMailTransport(MailTransport):
    """Mail transport that records messages instead of sending them."""

    def __init__(self):
        self.sent: List[Dict[str, str]] = []
        self.error: Optional[Exception] = None

    def send(self, to: str, subject: str, html_body: str, text_body: str) -> str:
        if self.error is not None:
            raise self.error
        self.sent.append({"to": to, "subject": subject, "html": html_body, "text": text_body})
        return f"<msg-{len(self.sent)}@filingdesk.test>"


class FakeSmsGateway(SmsGateway):
    """SMS gateway that records messages instead of sending them."""

    def __init__(self):
        self.sent: List[Dict[str, str]] = []
        self.error: Optional[Exception] = None

    def send(self, to: str, text: str) -> str:
        if self.error is not None:
            raise self.error
        self.sent.append({"to": to, "text": text})
        return f"sms-{len(self.sent)}"


class RecordingNotifier:
    """Stands in for the submission notice task."""

    def __init__(self):
        self.calls: List[str] = []
        self.error: Optional[Exception] = None

    def __call__(self, filing_id: str) -> None:
        if self.error is not None:
            raise self.error
        self.calls.append(filing_id)


class RecordingQueue:
    """Stands in for the queued receipt delivery task."""

    def __init__(self):
        self.calls: List[tuple] = []

    def __call__(self, filing_id: str, channel: str, destination: Optional[str]) -> str:
        self.calls.append((filing_id, channel, destination))
        return f"task-{len(self.calls)}"


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the developer's environment."""
    return Settings(_env_file=None, payment_payee_vpa=None, currency_code="INR")


@pytest.fixture
def mail_transport() -> FakeMailTransport:
    return FakeMailTransport()


@pytest.fixture
def sms_gateway() -> FakeSmsGateway:
    return FakeSmsGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def receipt_queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def dispatchers(mail_transport: FakeMailTransport, sms_gateway: FakeSmsGateway) -> DispatcherRegistry:
    return DispatcherRegistry([
        EmailDispatcher(mail_transport),
        SmsDispatcher(sms_gateway),
        DocumentDispatcher(PdfReceiptLayout("A4")),
    ])


@pytest.fixture
def service(
    db_session: Session,
    settings: Settings,
    dispatchers: DispatcherRegistry,
    notifier: RecordingNotifier,
    receipt_queue: RecordingQueue,
) -> FilingService:
    return FilingService(
        db_session,
        settings=settings,
        dispatchers=dispatchers,
        notifier=notifier,
        receipt_queue=receipt_queue,
    )


@pytest.fixture(scope="function")
def client(db_session: Session, service: FilingService) -> Generator[TestClient, None, None]:
    """Create a test client with database and service overrides."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_filing_service] = lambda: service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def sample_filing_data() -> Dict[str, Any]:
    """One widget line worth 50 against a declared value of 100."""
    return {
        "shipment_id": "SHP1",
        "invoice_no": "INV1",
        "port": "MUM",
        "value": 100,
        "items": [{"description": "Widget", "quantity": 2, "price": 25}],
    }


@pytest.fixture
def many_items_data() -> Dict[str, Any]:
    """A filing with 50 numbered item lines."""
    return {
        "shipment_id": "SHP50",
        "invoice_no": "INV50",
        "port": "NSA",
        "value": 1275,
        "items": [
            {"description": f"Part-{n:03d}", "quantity": 1, "price": n}
            for n in range(1, 51)
        ],
    }
