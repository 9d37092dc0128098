"""
Outbound transports for receipt delivery.

Mail and SMS collaborators behind narrow interfaces. Credentials and
endpoints are passed in at construction; transports raise on failure and
leave wrapping to the dispatchers.
"""
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from typing import Optional

import httpx
import structlog

from filingdesk.config import Settings

logger = structlog.get_logger(__name__)


class TransportNotConfiguredError(RuntimeError):
    """Raised when a transport is used without its endpoint configured."""


class MailTransport(ABC):
    """Hands formatted messages to a mail system."""

    @abstractmethod
    def send(self, to: str, subject: str, html_body: str, text_body: str) -> str:
        """
        Send a message.

        Returns:
            Acknowledgement reference (e.g. Message-ID)
        """


class SmsGateway(ABC):
    """Posts plain text to a messaging gateway."""

    @abstractmethod
    def send(self, to: str, text: str) -> str:
        """
        Send a text message.

        Returns:
            Acknowledgement reference from the gateway
        """


class DocumentRenderer(ABC):
    """Lays out a receipt as a downloadable document."""

    @abstractmethod
    def layout(self, receipt) -> bytes:
        """Render the receipt and return the document bytes."""


class SmtpMailTransport(MailTransport):
    """Mail transport over SMTP with optional STARTTLS and login."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        from_email: str = "noreply@filingdesk.local",
        from_name: str = "FilingDesk",
        use_tls: bool = True,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_email = from_email
        self.from_name = from_name
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpMailTransport":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            from_email=settings.mail_from_email,
            from_name=settings.mail_from_name,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout_seconds,
        )

    def build_message(self, to: str, subject: str, html_body: str, text_body: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = formataddr((self.from_name, self.from_email))
        msg["To"] = to
        msg["Message-ID"] = make_msgid(domain=self.from_email.split("@")[-1])

        # Plain text first so clients prefer the HTML part
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def send(self, to: str, subject: str, html_body: str, text_body: str) -> str:
        msg = self.build_message(to, subject, html_body, text_body)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.user:
                server.login(self.user, self.password)
            refused = server.send_message(msg)
        if refused:
            raise smtplib.SMTPRecipientsRefused(refused)

        logger.info("email_sent", to=to, subject=subject, message_id=msg["Message-ID"])
        return msg["Message-ID"]


class HttpSmsGateway(SmsGateway):
    """SMS gateway client posting JSON over HTTP with a bearer token."""

    def __init__(
        self,
        url: Optional[str],
        api_key: str = "",
        sender_id: str = "FILING",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.sender_id = sender_id
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpSmsGateway":
        return cls(
            url=settings.sms_gateway_url,
            api_key=settings.sms_gateway_api_key,
            sender_id=settings.sms_sender_id,
            timeout=settings.sms_timeout_seconds,
        )

    def _post(self, payload: dict, headers: dict) -> httpx.Response:
        if self._client is not None:
            return self._client.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        with httpx.Client() as client:
            return client.post(self.url, json=payload, headers=headers, timeout=self.timeout)

    def send(self, to: str, text: str) -> str:
        if not self.url:
            raise TransportNotConfiguredError("SMS gateway URL is not configured")

        headers = {"User-Agent": "FilingDesk-SMS/1.0"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        payload = {"to": to, "from": self.sender_id, "text": text}

        response = self._post(payload, headers)
        response.raise_for_status()

        reference = str(response.status_code)
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            reference = str(body.get("message_id") or body.get("id") or reference)

        logger.info("sms_sent", to=to, status_code=response.status_code, reference=reference)
        return reference
