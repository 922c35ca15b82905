"""
Notification Service — WhatsApp messages to donors via Twilio.
Failures are logged and reported as False; nothing is retried.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

import requests
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from temple_donations.config import Settings
from temple_donations.utils.validators import normalize_phone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReceiptDetails:
    txnid: str
    invoice_number: str
    name: str
    amount: Decimal
    purpose: str
    payment_method: str = "Online Payment"


def _rupees(amount: Any) -> str:
    try:
        value = Decimal(str(amount))
    except ArithmeticError:
        return str(amount)
    if value == value.to_integral_value():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


class NotificationService:
    """Sends donor messages over the Twilio WhatsApp channel."""

    def __init__(self, settings: Settings, client: Optional[Client] = None):
        self.enabled = settings.WHATSAPP_ENABLED
        self.from_number = settings.TWILIO_PHONE_NUMBER
        self.website = settings.PUBLIC_BASE_URL
        self.support_phone = settings.SUPPORT_PHONE
        self.client = client
        token = settings.TWILIO_AUTH_TOKEN.get_secret_value()
        if self.client is None and settings.TWILIO_ACCOUNT_SID and token:
            self.client = Client(settings.TWILIO_ACCOUNT_SID, token)

    @property
    def configured(self) -> bool:
        return self.enabled and self.client is not None and bool(self.from_number)

    def send_whatsapp(self, phone: str, body: str) -> bool:
        if not self.configured:
            logger.warning("Twilio not configured - WhatsApp message not sent")
            return False

        to_number = normalize_phone(phone)
        if not to_number:
            logger.error("Invalid phone number format: %r", phone)
            return False

        try:
            message = self.client.messages.create(
                from_=f"whatsapp:{self.from_number}",
                to=f"whatsapp:{to_number}",
                body=body,
            )
        except (TwilioException, requests.RequestException) as exc:
            logger.error("Error sending WhatsApp message to %s: %s", to_number, exc)
            return False

        logger.info("WhatsApp message %s sent to %s", getattr(message, "sid", "?"), to_number)
        return True

    def send_failed_payment_notification(self, phone: str, donor_name: str, amount: Any, purpose: str) -> bool:
        body = (
            f"Hare Krishna, {donor_name}! 🙏\n\n"
            f"We noticed there was an issue with your donation payment of ₹{_rupees(amount)} towards {purpose}.\n\n"
            f"Please try again or contact our support team if you need assistance. "
            f"You can visit our website at {self.website} or call us at {self.support_phone}.\n\n"
            f"Thank you for your support."
        )
        return self.send_whatsapp(phone, body)

    def send_receipt(self, phone: str, receipt: ReceiptDetails) -> bool:
        body = (
            f"Hare Krishna, {receipt.name}! 🙏\n\n"
            f"Thank you for your donation of ₹{_rupees(receipt.amount)} towards {receipt.purpose}.\n\n"
            f"Receipt No: {receipt.invoice_number}\n"
            f"Transaction ID: {receipt.txnid}\n"
            f"Payment Method: {receipt.payment_method}\n\n"
            f"Download your 80G receipt: {self.website.rstrip('/')}/api/payments/receipt/{receipt.txnid}"
        )
        return self.send_whatsapp(phone, body)
