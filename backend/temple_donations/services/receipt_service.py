"""
Receipt Service — 80G donation receipts rendered as A4 PDFs with reportlab.
"""
import io
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from temple_donations.config import Settings
from temple_donations.models.donation import Donation

logger = logging.getLogger(__name__)

ACCENT = HexColor("#FF6B35")
MUTED = HexColor("#666666")
BLACK = HexColor("#000000")

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 50
LINE_HEIGHT = 25


@dataclass(frozen=True)
class ReceiptDocument:
    invoice_number: str
    txnid: str
    date: datetime
    name: str
    email: str
    phone: str
    purpose: str
    amount: Decimal
    pan_card: Optional[str] = None

    @classmethod
    def from_donation(cls, donation: Donation, default_purpose: str) -> "ReceiptDocument":
        return cls(
            invoice_number=donation.invoice_number or f"INV-{donation.txnid}",
            txnid=donation.txnid,
            date=donation.completed_at or donation.created_at or datetime.utcnow(),
            name=donation.name,
            email=donation.email,
            phone=donation.phone,
            purpose=donation.purpose or default_purpose,
            amount=Decimal(str(donation.amount)),
            pan_card=donation.pan_card,
        )

    @property
    def filename(self) -> str:
        return f"Donation_Receipt_{self.invoice_number}.pdf"


def format_inr(amount: Decimal) -> str:
    """Indian digit grouping: 150000 -> "1,50,000.00"."""
    whole, _, paise = f"{Decimal(amount):.2f}".partition(".")
    negative = whole.startswith("-")
    whole = whole.lstrip("-")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    return f"{'-' if negative else ''}{whole}.{paise}"


class ReceiptService:
    """Renders donation receipts on the temple letterhead."""

    def __init__(self, settings: Settings):
        self.org_name = settings.UPI_MERCHANT_NAME
        self.org_legal_name = settings.ORG_LEGAL_NAME
        self.org_address = settings.ORG_ADDRESS
        self.support_phone = settings.SUPPORT_PHONE
        self.support_email = settings.SUPPORT_EMAIL

    def render(self, receipt: ReceiptDocument, compress: bool = True) -> bytes:
        """Return the receipt as PDF bytes."""
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4, pageCompression=1 if compress else 0)
        pdf.setTitle(f"Donation Receipt {receipt.invoice_number}")
        pdf.setAuthor(self.org_name)

        centre = PAGE_WIDTH / 2
        y = PAGE_HEIGHT - 60

        # Letterhead
        pdf.setFillColor(ACCENT)
        pdf.setFont("Helvetica-Bold", 20)
        pdf.drawCentredString(centre, y, self.org_name.upper())
        pdf.setFillColor(BLACK)
        pdf.setFont("Helvetica", 12)
        for line in (
            self.org_legal_name,
            self.org_address,
            f"Phone: {self.support_phone} | Email: {self.support_email}",
        ):
            y -= 20
            pdf.drawCentredString(centre, y, line)

        y -= 40
        pdf.setFillColor(ACCENT)
        pdf.setFont("Helvetica-Bold", 18)
        pdf.drawCentredString(centre, y, "DONATION RECEIPT")
        y -= 20
        pdf.setFillColor(BLACK)
        pdf.setFont("Helvetica", 11)
        pdf.drawCentredString(centre, y, "(Eligible for Tax Deduction under Section 80G)")

        # Details box
        rows = [
            ("Receipt No", receipt.invoice_number),
            ("Transaction ID", receipt.txnid),
            ("Date", receipt.date.strftime("%d/%m/%Y")),
            ("Donor Name", receipt.name),
            ("Email", receipt.email),
            ("Phone", receipt.phone),
        ]
        if receipt.pan_card:
            rows.append(("PAN Card", receipt.pan_card))

        box_top = y - 20
        box_height = (len(rows) + 2) * LINE_HEIGHT + 20
        pdf.rect(MARGIN, box_top - box_height, PAGE_WIDTH - 2 * MARGIN, box_height)

        y = box_top - 30
        pdf.setFont("Helvetica", 12)
        for label, value in rows:
            pdf.drawString(MARGIN + 20, y, f"{label}:")
            pdf.drawString(MARGIN + 200, y, str(value))
            y -= LINE_HEIGHT

        pdf.setFont("Helvetica-Bold", 13)
        pdf.setFillColor(ACCENT)
        pdf.drawString(MARGIN + 20, y, "Donation Purpose:")
        pdf.setFillColor(BLACK)
        pdf.drawString(MARGIN + 200, y, receipt.purpose)
        y -= LINE_HEIGHT
        pdf.setFillColor(ACCENT)
        pdf.drawString(MARGIN + 20, y, f"Amount: INR {format_inr(receipt.amount)}")

        # Tax note and thanks
        y = box_top - box_height - 40
        pdf.setFillColor(BLACK)
        pdf.setFont("Helvetica", 10)
        pdf.drawCentredString(
            centre, y, "This donation is eligible for tax deduction under Section 80G of the Income Tax Act, 1961.",
        )
        pdf.drawCentredString(centre, y - 16, "Please retain this receipt for your tax filing purposes.")

        pdf.setFillColor(ACCENT)
        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawCentredString(centre, y - 60, f"Thank you for your generous contribution to {self.org_name}")

        pdf.setFillColor(MUTED)
        pdf.setFont("Helvetica", 8)
        pdf.drawCentredString(centre, 70, "This is a computer-generated receipt and does not require a signature.")
        pdf.drawCentredString(centre, 58, f"Generated on: {datetime.now():%d/%m/%Y %H:%M}")

        pdf.showPage()
        pdf.save()

        logger.info("Receipt %s rendered for txnid=%s", receipt.invoice_number, receipt.txnid)
        return buffer.getvalue()
