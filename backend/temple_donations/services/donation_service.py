"""
Donation Service — donation records and the payment lifecycle around them.
"""
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from temple_donations.config import Settings
from temple_donations.models.catalog import DonationCategory, TempleEvent
from temple_donations.models.donation import Donation
from temple_donations.services.notification_service import NotificationService, ReceiptDetails
from temple_donations.services.outcome_classifier import (
    CallbackOutcome, OutcomeCategory, resolve_callback,
)
from temple_donations.services.payu_signer import build_payment_form, format_amount
from temple_donations.services.upi_service import UpiVerification
from temple_donations.exceptions import SigningError

logger = logging.getLogger(__name__)

# Callback fields worth keeping on the donation row.
_STORED_CALLBACK_FIELDS = (
    "mihpayid", "status", "unmappedstatus", "mode", "bank_ref_num", "bankcode",
    "error", "error_Message", "amount", "net_amount_debit", "addedon",
)


@dataclass
class DonationDraft:
    name: str
    email: str
    phone: str
    amount: Decimal
    message: Optional[str] = None
    pan_card: Optional[str] = None
    category_id: Optional[int] = None
    event_id: Optional[int] = None
    payment_method: str = "netbanking"


def generate_txnid() -> str:
    """TXN_ + 10 upper-case hex chars; URL safe and within PayU's 25 chars."""
    return f"TXN_{uuid.uuid4().hex[:10].upper()}"


def generate_invoice_number(now: Optional[datetime] = None) -> str:
    """INV-YYMM-NNNN"""
    now = now or datetime.utcnow()
    return f"INV-{now:%y%m}-{secrets.randbelow(10000):04d}"


class DonationService:
    """Creates donations, applies gateway outcomes and notifies donors."""

    def __init__(self, settings: Settings, notifier: NotificationService):
        self.settings = settings
        self.notifier = notifier

    # ─── Lookups ─────────────────────────────────────────────────────

    @staticmethod
    def get_by_txnid(db: Session, txnid: Optional[str]) -> Optional[Donation]:
        if not txnid:
            return None
        return db.query(Donation).filter(Donation.txnid == txnid).first()

    def resolve_purpose(self, db: Session, category_id: Optional[int], event_id: Optional[int]) -> str:
        if category_id:
            category = db.get(DonationCategory, category_id)
            if category:
                return category.name
        elif event_id:
            event = db.get(TempleEvent, event_id)
            if event:
                return event.title
        return self.settings.DEFAULT_PURPOSE

    def _unique_invoice_number(self, db: Session) -> str:
        while True:
            number = generate_invoice_number()
            if not db.query(Donation.id).filter(Donation.invoice_number == number).first():
                return number

    # ─── Initiation ──────────────────────────────────────────────────

    def create_donation(self, db: Session, draft: DonationDraft) -> Tuple[Donation, str, Dict[str, str]]:
        """Persist a pending donation and sign its PayU request.

        Raises:
            SigningError: the request could not be signed (bad amount or
                missing merchant credentials). Nothing is persisted.
        """
        txnid = generate_txnid()
        amount = format_amount(draft.amount)
        purpose = self.resolve_purpose(db, draft.category_id, draft.event_id)
        kind = "Category" if draft.category_id else ("Event" if draft.event_id else "General")
        productinfo = f"Donation for {self.settings.UPI_MERCHANT_NAME} - {kind}"

        request = {
            "txnid": txnid,
            "amount": amount,
            "productinfo": productinfo,
            "firstname": draft.name,
            "email": draft.email,
            "phone": draft.phone,
            "surl": self.settings.payu_success_url,
            "furl": self.settings.payu_failure_url,
        }
        if draft.payment_method == "upi":
            request["udf1"] = "upi"
            request["pg"] = "UPI"

        form_url, form_data = build_payment_form(
            request,
            self.settings.PAYU_MERCHANT_KEY,
            self.settings.merchant_salt,
            self.settings.PAYU_PAYMENT_URL,
        )

        donation = Donation(
            txnid=txnid,
            name=draft.name,
            email=draft.email,
            phone=draft.phone,
            pan_card=draft.pan_card,
            message=draft.message,
            amount=Decimal(amount),
            purpose=purpose,
            category_id=draft.category_id,
            event_id=draft.event_id,
            method=draft.payment_method,
            status="pending",
        )
        db.add(donation)
        db.commit()
        db.refresh(donation)

        logger.info("Donation %s initiated: amount=%s method=%s", txnid, amount, draft.payment_method)
        return donation, form_url, form_data

    # ─── Gateway callbacks ───────────────────────────────────────────

    def handle_callback(self, db: Session, params: Mapping[str, Any]) -> Tuple[CallbackOutcome, Optional[Donation]]:
        """Verify a PayU callback and apply it to the matching donation.

        A callback that fails verification never changes the donation.
        """
        outcome = resolve_callback(params, self.settings.PAYU_MERCHANT_KEY, self.settings.merchant_salt)
        donation = self.get_by_txnid(db, outcome.txnid)

        if not outcome.hash_verified:
            return outcome, donation

        if donation is None:
            logger.warning("Verified callback for unknown txnid=%s", outcome.txnid)
            return outcome, None

        if outcome.completed and not self._amount_matches(donation, outcome.fields.get("amount")):
            logger.error(
                "Amount mismatch on txnid=%s: expected %s, gateway sent %s",
                donation.txnid, donation.amount, outcome.fields.get("amount"),
            )
            outcome = CallbackOutcome(
                completed=False,
                txnid=outcome.txnid,
                category=OutcomeCategory.VERIFICATION_FAILED,
                hash_verified=True,
                fields=outcome.fields,
            )
            return outcome, donation

        donation.gateway_response = {
            k: outcome.fields[k] for k in _STORED_CALLBACK_FIELDS if k in outcome.fields
        }

        if outcome.completed:
            self._mark_completed(db, donation, "completed", outcome.fields.get("mihpayid"), "Online Payment")
        else:
            status = "cancelled" if outcome.category == OutcomeCategory.PAYMENT_CANCELLED else "failed"
            self._mark_failed(db, donation, status, outcome.category)

        return outcome, donation

    @staticmethod
    def _amount_matches(donation: Donation, gateway_amount: Optional[str]) -> bool:
        try:
            return Decimal(format_amount(gateway_amount)) == Decimal(format_amount(donation.amount))
        except SigningError:
            return False

    # ─── UPI ─────────────────────────────────────────────────────────

    @staticmethod
    def mark_pending_upi(db: Session, donation: Donation) -> None:
        if donation.status == "pending":
            donation.status = "pending_upi"
            donation.method = "upi"
            db.commit()

    def apply_upi_verification(self, db: Session, donation: Donation, result: UpiVerification) -> UpiVerification:
        """Apply a gateway status poll and return the verification that took effect.

        A reported success only completes the donation when the gateway
        amount equals the stored amount; otherwise the donation stays
        pending and is flagged ``verification_failed``.
        """
        already_completed = donation.status in ("completed", "completed_upi")
        if result.status == "success" and not already_completed and not self._amount_matches(donation, result.amount):
            logger.error(
                "UPI amount mismatch on txnid=%s: expected %s, gateway reported %s",
                donation.txnid, donation.amount, result.amount,
            )
            donation.failure_category = OutcomeCategory.VERIFICATION_FAILED.value
            if donation.status == "pending_upi":
                donation.status = "pending"
            db.commit()
            return UpiVerification(
                False, "pending", "Payment amount could not be verified. Please contact support.",
                result.gateway_ref, result.amount,
            )

        if result.status == "success":
            self._mark_completed(db, donation, "completed_upi", result.gateway_ref, "UPI")
        elif result.status == "failed":
            self._mark_failed(db, donation, "failed_upi", OutcomeCategory.PAYMENT_FAILED)
        elif donation.status == "pending_upi":
            donation.status = "pending"
            db.commit()
        return result

    # ─── State transitions ───────────────────────────────────────────

    def _mark_completed(self, db: Session, donation: Donation, status: str,
                        gateway_ref: Optional[str], payment_method: str) -> None:
        if donation.status in ("completed", "completed_upi"):
            return

        donation.status = status
        donation.failure_category = None
        donation.gateway_ref = gateway_ref or donation.gateway_ref
        donation.invoice_number = donation.invoice_number or self._unique_invoice_number(db)
        donation.completed_at = datetime.utcnow()
        db.commit()
        logger.info("Donation %s completed (%s)", donation.txnid, status)

        if donation.phone and not donation.receipt_sent:
            receipt = ReceiptDetails(
                txnid=donation.txnid,
                invoice_number=donation.invoice_number,
                name=donation.name,
                amount=donation.amount,
                purpose=donation.purpose or self.settings.DEFAULT_PURPOSE,
                payment_method=payment_method,
            )
            if self.notifier.send_receipt(donation.phone, receipt):
                donation.receipt_sent = True
                db.commit()

    def _mark_failed(self, db: Session, donation: Donation, status: str,
                     category: Optional[OutcomeCategory]) -> None:
        if donation.status in ("completed", "completed_upi"):
            logger.warning("Ignoring failure for already completed donation %s", donation.txnid)
            return

        donation.status = status
        donation.failure_category = category.value if category else OutcomeCategory.UNKNOWN.value
        db.commit()
        logger.info("Donation %s marked %s (%s)", donation.txnid, status, donation.failure_category)

        if donation.phone and not donation.notification_sent:
            sent = self.notifier.send_failed_payment_notification(
                donation.phone,
                donation.name,
                donation.amount,
                donation.purpose or self.settings.DEFAULT_PURPOSE,
            )
            if sent:
                donation.notification_sent = True
                db.commit()
