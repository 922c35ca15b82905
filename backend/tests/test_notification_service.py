from decimal import Decimal

import pytest
import requests
from twilio.base.exceptions import TwilioException

from conftest import FakeTwilio
from temple_donations.config import Settings
from temple_donations.services.notification_service import NotificationService, ReceiptDetails


@pytest.fixture
def twilio_settings(tmp_path):
    return Settings(
        _env_file=None,
        TWILIO_PHONE_NUMBER="+14155238886",
        PUBLIC_BASE_URL="https://iskconjuhu.in",
        LOG_DIR=str(tmp_path),
    )


def test_failed_payment_message(twilio_settings):
    twilio = FakeTwilio()
    service = NotificationService(twilio_settings, client=twilio)

    assert service.send_failed_payment_notification("9876543210", "Radha", Decimal("1500.00"), "Annadaan")

    message = twilio.messages.sent[0]
    assert message["to"] == "whatsapp:+919876543210"
    assert message["from_"] == "whatsapp:+14155238886"
    assert "Radha" in message["body"]
    assert "₹1,500" in message["body"]
    assert "Annadaan" in message["body"]


def test_receipt_message(twilio_settings):
    twilio = FakeTwilio()
    service = NotificationService(twilio_settings, client=twilio)
    receipt = ReceiptDetails(
        txnid="TXN_1", invoice_number="INV-2610-0042", name="Radha",
        amount=Decimal("251.50"), purpose="Gau Seva", payment_method="UPI",
    )

    assert service.send_receipt("+919876543210", receipt)
    body = twilio.messages.sent[0]["body"]
    assert "INV-2610-0042" in body
    assert "₹251.50" in body


def test_invalid_phone_aborts(twilio_settings):
    twilio = FakeTwilio()
    service = NotificationService(twilio_settings, client=twilio)
    assert not service.send_failed_payment_notification("12345", "Radha", 100, "Seva")
    assert twilio.messages.sent == []


def test_twilio_error_reports_failure(twilio_settings):
    service = NotificationService(twilio_settings, client=FakeTwilio(TwilioException("boom")))
    assert not service.send_failed_payment_notification("9876543210", "Radha", 100, "Seva")


def test_unconfigured(tmp_path):
    settings = Settings(_env_file=None, LOG_DIR=str(tmp_path))
    service = NotificationService(settings)
    assert not service.configured
    assert not service.send_whatsapp("9876543210", "hello")


def test_disabled(twilio_settings):
    twilio_settings.WHATSAPP_ENABLED = False
    service = NotificationService(twilio_settings, client=FakeTwilio())
    assert not service.send_whatsapp("9876543210", "hello")


@pytest.mark.parametrize("error", [
    requests.exceptions.ConnectionError("connection refused"),
    requests.exceptions.Timeout("read timed out"),
])
def test_network_error_reports_failure(twilio_settings, error):
    service = NotificationService(twilio_settings, client=FakeTwilio(error))
    assert not service.send_receipt("9876543210", ReceiptDetails(
        txnid="TXN_1", invoice_number="INV-2610-0001", name="Radha",
        amount=Decimal("10"), purpose="Seva",
    ))


def test_receipt_links_to_pdf(twilio_settings):
    twilio = FakeTwilio()
    service = NotificationService(twilio_settings, client=twilio)
    receipt = ReceiptDetails(
        txnid="TXN_1", invoice_number="INV-2610-0001", name="Radha", amount=Decimal("10"), purpose="Seva",
    )
    service.send_receipt("9876543210", receipt)
    assert "https://iskconjuhu.in/api/payments/receipt/TXN_1" in twilio.messages.sent[0]["body"]
