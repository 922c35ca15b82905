"""
Payment Routes — Donation payments through PayU and UPI.
Handles: initiation, gateway success/failure callbacks, UPI intent/QR,
UPI status verification, the failure-page outcome lookup and PDF receipts.
"""
import logging
from typing import Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse, Response
from sqlalchemy.orm import Session

from temple_donations.config import Settings
from temple_donations.database import get_db
from temple_donations.dependencies import (
    client_ip, gateway_params, get_app_settings, get_donation_service, get_receipt_service,
    get_upi_service,
)
from temple_donations.exceptions import ConfigurationError, QRGenerationError, SigningError
from temple_donations.schemas.schemas import (
    DonationStatusResponse, DonationSummary, PaymentInitRequest, PaymentInitResponse,
    PaymentOutcomeResponse, SupportContact, UpiIntentRequest, UpiIntentResponse,
    UpiPayeeData, UpiVerifyRequest, UpiVerifyResponse,
)
from temple_donations.services.audit_service import AuditService
from temple_donations.services.donation_service import DonationDraft, DonationService
from temple_donations.services.outcome_classifier import OutcomeCategory, classify, describe
from temple_donations.services.receipt_service import ReceiptDocument, ReceiptService
from temple_donations.services.upi_service import UpiService, build_qr_data_url
from temple_donations.utils.validators import (
    normalize_phone, sanitize_name, validate_email, validate_pan, validate_txnid,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])

PAYMENT_METHODS = ("netbanking", "card", "upi")


def throttle_initiate(request: Request) -> bool:
    return request.app.state.initiate_limiter(request)


def _frontend_url(settings: Settings, path: str, params: Dict[str, str]) -> str:
    return f"{settings.FRONTEND_BASE_URL.rstrip('/')}{path}?{urlencode(params)}"


def _failure_redirect(settings: Settings, params: Dict[str, str], txnid: Optional[str],
                      category: OutcomeCategory) -> RedirectResponse:
    query = {
        "txnid": txnid or "",
        "amount": params.get("amount", ""),
        "firstname": params.get("firstname", ""),
        "email": params.get("email", ""),
        "status": "failure",
        "error": category.value,
    }
    return RedirectResponse(_frontend_url(settings, "/donate/payment-failed", query), status_code=303)


# ─── Initiation ──────────────────────────────────────────────────────

@router.post("/initiate", response_model=PaymentInitResponse)
def initiate_payment(
    payload: PaymentInitRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    service: DonationService = Depends(get_donation_service),
    _throttle: bool = Depends(throttle_initiate),
):
    """Create a pending donation and return the signed PayU form."""
    name = sanitize_name(payload.name)
    if not name:
        raise HTTPException(status_code=400, detail="Donor name is required")
    if not validate_email(payload.email):
        raise HTTPException(status_code=400, detail="A valid email address is required")
    if not normalize_phone(payload.phone):
        raise HTTPException(status_code=400, detail="A valid phone number is required")
    if payload.pan_card and not validate_pan(payload.pan_card):
        raise HTTPException(status_code=400, detail="Invalid PAN format")
    if payload.payment_method not in PAYMENT_METHODS:
        raise HTTPException(status_code=400, detail=f"Unsupported payment method: {payload.payment_method}")
    if not (settings.MIN_AMOUNT <= payload.amount <= settings.MAX_AMOUNT):
        raise HTTPException(
            status_code=400,
            detail=f"Amount must be between ₹{settings.MIN_AMOUNT} and ₹{settings.MAX_AMOUNT}",
        )

    draft = DonationDraft(
        name=name,
        email=payload.email.strip(),
        phone=payload.phone.strip(),
        amount=payload.amount,
        message=payload.message,
        pan_card=payload.pan_card.strip().upper() if payload.pan_card else None,
        category_id=payload.category_id,
        event_id=payload.event_id,
        payment_method=payload.payment_method,
    )

    try:
        donation, form_url, form_data = service.create_donation(db, draft)
    except SigningError as exc:
        logger.error("Payment initialization failed: %s", exc)
        raise HTTPException(status_code=503, detail="Payment initialization failed")

    AuditService.log(
        db, donation.txnid, "DONATION_INITIATED",
        payload={"amount": form_data["amount"], "method": donation.method, "purpose": donation.purpose},
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent", ""),
    )

    response = PaymentInitResponse(txnid=donation.txnid, payuUrl=form_url, paymentData=form_data)
    if donation.method == "upi":
        response.upiData = UpiPayeeData(
            payeeVpa=settings.UPI_MERCHANT_ID,
            payeeName=settings.UPI_MERCHANT_NAME,
            amount=form_data["amount"],
            transactionId=donation.txnid,
            transactionNote=form_data["productinfo"],
        )
    return response


# ─── Gateway callbacks ───────────────────────────────────────────────

def _handle_callback(
    endpoint: str,
    request: Request,
    params: Dict[str, str],
    db: Session,
    settings: Settings,
    service: DonationService,
) -> RedirectResponse:
    txnid = params.get("txnid") or None
    try:
        outcome, donation = service.handle_callback(db, params)
    except Exception:
        logger.exception("PayU %s callback error for txnid=%s", endpoint, txnid)
        db.rollback()
        return _failure_redirect(settings, params, txnid, OutcomeCategory.PROCESSING_ERROR)

    purpose = (donation.purpose if donation else None) or settings.DEFAULT_PURPOSE

    if outcome.txnid:
        action = "CALLBACK_COMPLETED" if outcome.completed else (
            "CALLBACK_FAILED" if outcome.hash_verified else "CALLBACK_REJECTED"
        )
        try:
            AuditService.log(
                db, outcome.txnid, action,
                payload={
                    "endpoint": endpoint,
                    "status": params.get("status"),
                    "amount": params.get("amount"),
                    "mihpayid": params.get("mihpayid"),
                },
                ip_address=client_ip(request),
                user_agent=request.headers.get("user-agent", ""),
                metadata={"category": outcome.category.value if outcome.category else None},
            )
        except Exception:
            # The donation is already committed; the donor still gets the real outcome.
            logger.exception("Audit write failed for %s callback txnid=%s", endpoint, outcome.txnid)
            db.rollback()

    if outcome.completed:
        query = {
            "txnid": outcome.txnid or "",
            "amount": params.get("amount", ""),
            "firstname": params.get("firstname", ""),
            "email": params.get("email", ""),
            "status": "success",
            "purpose": purpose,
            "categoryName": purpose,
        }
        return RedirectResponse(_frontend_url(settings, "/donate/thank-you", query), status_code=303)

    return _failure_redirect(settings, params, outcome.txnid, outcome.category or OutcomeCategory.UNKNOWN)


@router.api_route("/success", methods=["GET", "POST"], include_in_schema=False)
def payment_success(
    request: Request,
    params: Dict[str, str] = Depends(gateway_params),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    service: DonationService = Depends(get_donation_service),
):
    """PayU success URL (surl)."""
    return _handle_callback("success", request, params, db, settings, service)


@router.api_route("/failure", methods=["GET", "POST"], include_in_schema=False)
def payment_failure(
    request: Request,
    params: Dict[str, str] = Depends(gateway_params),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    service: DonationService = Depends(get_donation_service),
):
    """PayU failure URL (furl)."""
    return _handle_callback("failure", request, params, db, settings, service)


# ─── UPI ─────────────────────────────────────────────────────────────

@router.post("/upi-intent", response_model=UpiIntentResponse)
def create_upi_intent(
    payload: UpiIntentRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: DonationService = Depends(get_donation_service),
    upi: UpiService = Depends(get_upi_service),
):
    """Create a UPI intent URI and QR code for a pending donation."""
    if not validate_txnid(payload.txnid):
        raise HTTPException(status_code=400, detail="Invalid transaction ID")

    donation = service.get_by_txnid(db, payload.txnid)
    if not donation:
        raise HTTPException(status_code=404, detail="Donation record not found")

    try:
        intent = upi.intent_for(donation.txnid, donation.amount)
        qr_data = build_qr_data_url(intent)
    except (QRGenerationError, ConfigurationError) as exc:
        logger.error("UPI intent error for txnid=%s: %s", donation.txnid, exc)
        raise HTTPException(status_code=500, detail="Failed to create UPI payment intent")

    service.mark_pending_upi(db, donation)
    AuditService.log(
        db, donation.txnid, "UPI_INTENT_CREATED",
        payload={"amount": str(donation.amount), "payee": upi.merchant_id},
        ip_address=client_ip(request),
    )

    return UpiIntentResponse(
        upiIntent=intent,
        qrCodeData=qr_data,
        txnid=donation.txnid,
        payeeVpa=upi.merchant_id,
        payeeName=upi.merchant_name,
    )


@router.post("/verify-upi", response_model=UpiVerifyResponse)
def verify_upi_payment(
    payload: UpiVerifyRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: DonationService = Depends(get_donation_service),
    upi: UpiService = Depends(get_upi_service),
):
    """Poll the gateway for a UPI payment and record the result."""
    donation = service.get_by_txnid(db, payload.txnid)
    if not donation:
        raise HTTPException(status_code=404, detail="Donation record not found")

    result = service.apply_upi_verification(db, donation, upi.verify_transaction(donation.txnid))

    AuditService.log(
        db, donation.txnid, "UPI_VERIFIED",
        payload={"status": result.status, "gateway_ref": result.gateway_ref, "amount": result.amount},
        ip_address=client_ip(request),
    )

    summary = None
    if result.success:
        summary = DonationSummary(id=donation.id, amount=donation.amount, name=donation.name, email=donation.email)
    return UpiVerifyResponse(success=result.success, status=result.status, message=result.message, donation=summary)


# ─── Outcome / status ────────────────────────────────────────────────

@router.get("/outcome", response_model=PaymentOutcomeResponse)
def payment_outcome(
    error: Optional[str] = None,
    txnid: Optional[str] = None,
    settings: Settings = Depends(get_app_settings),
):
    """Failure-page copy for an ``error`` token returned on the redirect."""
    category = classify(error)
    description = describe(category)
    return PaymentOutcomeResponse(
        txnid=txnid if validate_txnid(txnid) else None,
        category=category.value,
        title=description.title,
        message=description.message,
        icon=description.icon,
        severity=description.severity,
        next_steps=list(description.next_steps),
        support=SupportContact(phone=settings.SUPPORT_PHONE, email=settings.SUPPORT_EMAIL),
    )


# ─── Receipts ────────────────────────────────────────────────────────

COMPLETED_STATUSES = ("completed", "completed_upi")


@router.get("/receipt/{txnid}", response_class=Response)
def download_receipt(
    txnid: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    service: DonationService = Depends(get_donation_service),
    receipts: ReceiptService = Depends(get_receipt_service),
):
    """80G receipt PDF for a completed donation."""
    donation = service.get_by_txnid(db, txnid)
    if not donation:
        raise HTTPException(status_code=404, detail="Donation not found")
    if donation.status not in COMPLETED_STATUSES:
        raise HTTPException(status_code=409, detail="A receipt is only available for completed donations")

    document = ReceiptDocument.from_donation(donation, settings.DEFAULT_PURPOSE)
    return Response(
        content=receipts.render(document),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
    )


@router.get("/{txnid}", response_model=DonationStatusResponse)
def get_donation_status(
    txnid: str,
    db: Session = Depends(get_db),
    service: DonationService = Depends(get_donation_service),
):
    """Current status of a donation attempt."""
    donation = service.get_by_txnid(db, txnid)
    if not donation:
        raise HTTPException(status_code=404, detail="Donation not found")
    return DonationStatusResponse.model_validate(donation)
