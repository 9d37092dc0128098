"""
Tests for filing background tasks.

Tasks run eagerly with apply(); no broker is needed.
"""
import json
import uuid

import httpx
import pytest

from filingdesk.config import Settings
from filingdesk.tasks import filing_tasks
from filingdesk.tasks.filing_tasks import deliver_receipt, notify_filing_submitted


class RetryRequested(Exception):
    """Raised by the patched Task.retry."""

    def __init__(self, exc):
        super().__init__(str(exc))
        self.exc = exc


@pytest.fixture
def task_env(monkeypatch, db_session, dispatchers, settings):
    """Point the tasks at the test session, transports and settings."""
    monkeypatch.setattr(filing_tasks, "get_db_session", lambda: db_session)
    monkeypatch.setattr(filing_tasks, "get_dispatchers", lambda: dispatchers)
    monkeypatch.setattr(filing_tasks, "get_settings", lambda: settings)
    return settings


@pytest.fixture
def fake_retry(monkeypatch):
    def retry(exc=None, **kwargs):
        raise RetryRequested(exc)

    monkeypatch.setattr(notify_filing_submitted, "retry", retry)
    monkeypatch.setattr(deliver_receipt, "retry", retry)


@pytest.fixture
def webhook(monkeypatch, task_env):
    """Route the webhook POST to a mock transport."""
    task_env.submission_webhook_url = "https://hooks.example.com/filings"
    requests = []
    responses = {"status": 200}

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(responses["status"], json={"ok": True})

    real_client = httpx.Client
    monkeypatch.setattr(httpx, "Client", lambda *args, **kwargs: real_client(transport=httpx.MockTransport(handler)))
    return requests, responses


class TestNotifyFilingSubmitted:
    """Tests for the submission notice task."""

    def test_logs_without_webhook(self, task_env, service, sample_filing_data):
        filing = service.create(sample_filing_data)

        result = notify_filing_submitted.apply(args=[str(filing.id)])

        assert result.successful()
        assert result.get() == {"filing_id": str(filing.id), "status": "logged"}

    def test_skips_deleted_filing(self, task_env):
        result = notify_filing_submitted.apply(args=[str(uuid.uuid4())])

        assert result.get()["status"] == "skipped"

    def test_posts_submission_event(self, webhook, service, sample_filing_data):
        """Test the webhook receives the filing.submitted event."""
        requests, _ = webhook
        filing = service.create(sample_filing_data)

        result = notify_filing_submitted.apply(args=[str(filing.id)])

        assert result.get()["status"] == "delivered"
        body = json.loads(requests[0].content)
        assert body["event"] == "filing.submitted"
        assert body["filing_id"] == str(filing.id)
        assert body["shipment_id"] == "SHP1"
        assert body["invoice_no"] == "INV1"
        assert body["submission_date"] == filing.submission_date.isoformat()

    def test_webhook_failure_retries(self, webhook, fake_retry, service, sample_filing_data):
        """Test an HTTP error status schedules a retry."""
        _, responses = webhook
        responses["status"] = 503
        filing = service.create(sample_filing_data)

        result = notify_filing_submitted.apply(args=[str(filing.id)])

        assert result.failed()
        assert isinstance(result.result, RetryRequested)
        assert isinstance(result.result.exc, httpx.HTTPStatusError)


class TestDeliverReceipt:
    """Tests for the queued receipt delivery task."""

    def test_delivers_sms(self, task_env, service, sms_gateway, sample_filing_data):
        filing = service.create(sample_filing_data)

        result = deliver_receipt.apply(args=[str(filing.id), "sms", "+910000000000"])

        assert result.successful()
        assert result.get()["channel"] == "sms"
        assert "Total: 50.00" in sms_gateway.sent[0]["text"]

    def test_delivery_error_retries(self, task_env, fake_retry, service, sms_gateway, sample_filing_data):
        """Test transport failures are retried."""
        sms_gateway.error = ConnectionError("gateway unreachable")
        filing = service.create(sample_filing_data)

        result = deliver_receipt.apply(args=[str(filing.id), "sms", "+910000000000"])

        assert isinstance(result.result, RetryRequested)

    def test_validation_error_not_retried(self, task_env, fake_retry, service, sms_gateway, sample_filing_data):
        """Test a bad destination fails without a retry."""
        filing = service.create(sample_filing_data)

        result = deliver_receipt.apply(args=[str(filing.id), "sms", "not-a-number"])

        assert result.failed()
        assert not isinstance(result.result, RetryRequested)
        assert sms_gateway.sent == []

    def test_missing_filing_not_retried(self, task_env, fake_retry):
        result = deliver_receipt.apply(args=[str(uuid.uuid4()), "email", "ops@example.com"])

        assert result.failed()
        assert not isinstance(result.result, RetryRequested)
