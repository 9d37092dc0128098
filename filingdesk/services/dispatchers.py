"""
Receipt delivery dispatchers.

Each dispatcher delivers a ReceiptModel through one channel. Transport
failures are caught here and re-raised as DeliveryError so no transport
specific exception reaches the caller.
"""
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional

import structlog

from filingdesk.config import Settings
from filingdesk.exceptions import DeliveryError, UnsupportedChannelError, ValidationError
from filingdesk.services import receipt_formats
from filingdesk.services.payment_link import PaymentLinkGenerator
from filingdesk.services.pdf_layout import PdfReceiptLayout
from filingdesk.services.receipt_renderer import ReceiptModel
from filingdesk.services.transports import (
    DocumentRenderer,
    HttpSmsGateway,
    MailTransport,
    SmsGateway,
    SmtpMailTransport,
)

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^\+[1-9]\d{7,14}$")
PHONE_SEPARATORS = re.compile(r"[\s\-().]")


class Channel(str, Enum):
    """Receipt delivery channels."""
    EMAIL = "email"
    SMS = "sms"
    DOCUMENT = "document"


CHANNEL_ALIASES = {"pdf": Channel.DOCUMENT}


def resolve_channel(name: Any) -> Channel:
    """
    Map a channel name to a Channel.

    Raises:
        UnsupportedChannelError: If the name is not a known channel
    """
    if isinstance(name, Channel):
        return name
    key = str(name or "").strip().lower()
    if key in CHANNEL_ALIASES:
        return CHANNEL_ALIASES[key]
    try:
        return Channel(key)
    except ValueError:
        raise UnsupportedChannelError(str(name), [c.value for c in Channel]) from None


@dataclass
class DeliveryResult:
    """Outcome of a receipt delivery."""
    channel: str
    destination: Optional[str]
    accepted: bool
    reference: Optional[str] = None
    delivered_at: datetime = field(default_factory=datetime.utcnow)
    document: Optional[bytes] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel": self.channel,
            "destination": self.destination,
            "accepted": self.accepted,
            "reference": self.reference,
            "delivered_at": self.delivered_at.isoformat(),
        }


class ReceiptDispatcher(ABC):
    """Delivers rendered receipts through a single channel."""

    channel: Channel

    def accepts(self, channel: Any) -> bool:
        try:
            return resolve_channel(channel) == self.channel
        except UnsupportedChannelError:
            return False

    def dispatch(self, channel: Any, receipt: ReceiptModel, destination: Optional[str] = None) -> DeliveryResult:
        """Deliver after checking the requested channel is this dispatcher's."""
        if not self.accepts(channel):
            raise UnsupportedChannelError(str(channel), [self.channel.value])
        return self.deliver(receipt, destination)

    @abstractmethod
    def deliver(self, receipt: ReceiptModel, destination: Optional[str] = None) -> DeliveryResult:
        """Deliver a receipt to a destination."""

    def _failed(self, receipt: ReceiptModel, destination: Optional[str], exc: Exception) -> DeliveryError:
        logger.error(
            "receipt_delivery_failed",
            channel=self.channel.value,
            filing_id=receipt.filing_id,
            destination=destination,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return DeliveryError(self.channel.value, exc)


class EmailDispatcher(ReceiptDispatcher):
    """Sends the receipt as an HTML email with a plain-text alternative."""

    channel = Channel.EMAIL

    def __init__(self, transport: MailTransport, payment_links: Optional[PaymentLinkGenerator] = None):
        self.transport = transport
        self.payment_links = payment_links

    def deliver(self, receipt: ReceiptModel, destination: Optional[str] = None) -> DeliveryResult:
        address = (destination or "").strip()
        if not EMAIL_PATTERN.match(address):
            raise ValidationError(
                "Invalid email address",
                errors=[{"field": "destination", "message": "must be an email address"}],
            )

        payment_uri = qr_image = None
        if self.payment_links is not None and self.payment_links.enabled:
            payment_uri = self.payment_links.build_uri(receipt)
            qr_image = self.payment_links.encode(payment_uri)

        subject = receipt_formats.email_subject(receipt)
        html_body = receipt_formats.render_html(receipt, payment_uri=payment_uri, qr_image=qr_image)
        text_body = receipt_formats.render_text(receipt, payment_uri=payment_uri)

        try:
            reference = self.transport.send(address, subject, html_body, text_body)
        except Exception as exc:
            raise self._failed(receipt, address, exc) from exc

        logger.info("receipt_delivered", channel=self.channel.value, filing_id=receipt.filing_id, to=address)
        return DeliveryResult(self.channel.value, address, accepted=True, reference=reference)


class SmsDispatcher(ReceiptDispatcher):
    """Posts the SMS rendering of the receipt to a messaging gateway."""

    channel = Channel.SMS

    def __init__(self, gateway: SmsGateway):
        self.gateway = gateway

    def deliver(self, receipt: ReceiptModel, destination: Optional[str] = None) -> DeliveryResult:
        number = PHONE_SEPARATORS.sub("", destination or "")
        if not PHONE_PATTERN.match(number):
            raise ValidationError(
                "Invalid phone number",
                errors=[{"field": "destination", "message": "must be an E.164 phone number"}],
            )

        text = receipt_formats.render_sms(receipt)
        try:
            reference = self.gateway.send(number, text)
        except Exception as exc:
            raise self._failed(receipt, number, exc) from exc

        logger.info("receipt_delivered", channel=self.channel.value, filing_id=receipt.filing_id, to=number)
        return DeliveryResult(self.channel.value, number, accepted=True, reference=reference)


class DocumentDispatcher(ReceiptDispatcher):
    """Renders the receipt as a PDF and hands the bytes back."""

    channel = Channel.DOCUMENT

    def __init__(self, renderer: DocumentRenderer):
        self.renderer = renderer

    def deliver(self, receipt: ReceiptModel, destination: Optional[str] = None) -> DeliveryResult:
        document = self.renderer.layout(receipt)
        return DeliveryResult(
            self.channel.value,
            None,
            accepted=True,
            reference=f"{len(document)} bytes",
            document=document,
        )


class DispatcherRegistry:
    """Looks up the dispatcher for a channel name."""

    def __init__(self, dispatchers: Iterable[ReceiptDispatcher]):
        self._dispatchers: Dict[Channel, ReceiptDispatcher] = {d.channel: d for d in dispatchers}

    @classmethod
    def from_settings(cls, settings: Settings) -> "DispatcherRegistry":
        payment_links = PaymentLinkGenerator.from_settings(settings)
        return cls([
            EmailDispatcher(SmtpMailTransport.from_settings(settings), payment_links),
            SmsDispatcher(HttpSmsGateway.from_settings(settings)),
            DocumentDispatcher(PdfReceiptLayout(settings.pdf_page_size, payment_links)),
        ])

    @property
    def channels(self) -> list:
        return [channel.value for channel in self._dispatchers]

    def get(self, channel: Any) -> ReceiptDispatcher:
        """
        Dispatcher for a channel.

        Raises:
            UnsupportedChannelError: For unknown or unregistered channels
        """
        resolved = resolve_channel(channel)
        dispatcher = self._dispatchers.get(resolved)
        if dispatcher is None:
            raise UnsupportedChannelError(str(channel), self.channels)
        return dispatcher
