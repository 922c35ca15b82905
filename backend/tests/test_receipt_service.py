from datetime import datetime
from decimal import Decimal

import pytest

from temple_donations.models.donation import Donation
from temple_donations.services.receipt_service import ReceiptDocument, ReceiptService, format_inr


@pytest.mark.parametrize("amount, expected", [
    (Decimal("501"), "501.00"),
    (Decimal("1500"), "1,500.00"),
    (Decimal("150000"), "1,50,000.00"),
    (Decimal("1234567.5"), "12,34,567.50"),
])
def test_format_inr(amount, expected):
    assert format_inr(amount) == expected


def _receipt(**overrides):
    fields = dict(
        invoice_number="INV-2610-0042",
        txnid="TXN_ABC123",
        date=datetime(2026, 10, 18, 9, 30),
        name="Radha Devi",
        email="radha@example.com",
        phone="9876543210",
        purpose="Annadaan Seva",
        amount=Decimal("150000.00"),
        pan_card="ABCPK1234F",
    )
    fields.update(overrides)
    return ReceiptDocument(**fields)


def test_render_contains_donation_details(settings):
    pdf = ReceiptService(settings).render(_receipt(), compress=False)

    assert pdf.startswith(b"%PDF")
    assert b"INV-2610-0042" in pdf
    assert b"TXN_ABC123" in pdf
    assert b"18/10/2026" in pdf
    assert b"ABCPK1234F" in pdf
    assert b"Annadaan Seva" in pdf
    assert b"INR 1,50,000.00" in pdf
    assert b"DONATION RECEIPT" in pdf


def test_render_omits_pan_row_when_absent(settings):
    pdf = ReceiptService(settings).render(_receipt(pan_card=None), compress=False)
    assert b"PAN Card" not in pdf


def test_render_compressed(settings):
    assert ReceiptService(settings).render(_receipt()).startswith(b"%PDF")


def test_from_donation():
    donation = Donation(
        txnid="TXN_ABC123", name="Radha Devi", email="radha@example.com", phone="9876543210",
        amount=Decimal("501.00"), purpose="Govardhan Puja", invoice_number="INV-2610-0042",
        completed_at=datetime(2026, 10, 18, 9, 30), status="completed",
    )

    receipt = ReceiptDocument.from_donation(donation, "ISKCON Juhu Donation")

    assert receipt.invoice_number == "INV-2610-0042"
    assert receipt.purpose == "Govardhan Puja"
    assert receipt.amount == Decimal("501.00")
    assert receipt.date == datetime(2026, 10, 18, 9, 30)
    assert receipt.filename == "Donation_Receipt_INV-2610-0042.pdf"


def test_from_donation_fallbacks():
    donation = Donation(
        txnid="TXN_ABC123", name="Radha Devi", email="radha@example.com", phone="9876543210",
        amount=Decimal("501.00"), status="completed",
    )

    receipt = ReceiptDocument.from_donation(donation, "ISKCON Juhu Donation")

    assert receipt.invoice_number == "INV-TXN_ABC123"
    assert receipt.purpose == "ISKCON Juhu Donation"
    assert receipt.pan_card is None
    assert isinstance(receipt.date, datetime)
