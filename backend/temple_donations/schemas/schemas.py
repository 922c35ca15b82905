"""
Pydantic Schemas — Request & Response models for API validation.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, List
from pydantic import BaseModel, Field


# ──────────────── Donation / PayU ────────────────

class PaymentInitRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: str = Field(..., min_length=3, max_length=254)
    phone: str = Field(..., min_length=5, max_length=20)
    amount: Decimal = Field(..., gt=0, description="Amount in INR")
    message: Optional[str] = Field(None, max_length=1000)
    pan_card: Optional[str] = Field(None, alias="panCard")
    category_id: Optional[int] = Field(None, alias="categoryId")
    event_id: Optional[int] = Field(None, alias="eventId")
    payment_method: str = Field("netbanking", alias="paymentMethod", description="netbanking | card | upi")

    class Config:
        populate_by_name = True


class UpiPayeeData(BaseModel):
    payeeVpa: str
    payeeName: str
    amount: str
    transactionId: str
    transactionNote: str


class PaymentInitResponse(BaseModel):
    success: bool = True
    txnid: str
    payuUrl: str
    paymentData: Dict[str, str]
    upiData: Optional[UpiPayeeData] = None


# ──────────────── UPI ────────────────

class UpiIntentRequest(BaseModel):
    txnid: str
    amount: Decimal = Field(..., gt=0)


class UpiIntentResponse(BaseModel):
    success: bool = True
    upiIntent: str
    qrCodeData: str
    txnid: str
    payeeVpa: str
    payeeName: str


class UpiVerifyRequest(BaseModel):
    txnid: str


class DonationSummary(BaseModel):
    id: int
    amount: Decimal
    name: str
    email: str


class UpiVerifyResponse(BaseModel):
    success: bool
    status: str  # success | pending | failed
    message: str
    donation: Optional[DonationSummary] = None


# ──────────────── Outcome ────────────────

class SupportContact(BaseModel):
    phone: str
    email: str


class PaymentOutcomeResponse(BaseModel):
    txnid: Optional[str] = None
    category: str
    title: str
    message: str
    icon: str
    severity: str  # warning | error
    next_steps: List[str] = []
    support: SupportContact


class DonationStatusResponse(BaseModel):
    txnid: str
    status: str
    amount: Decimal
    purpose: Optional[str] = None
    method: Optional[str] = None
    invoice_number: Optional[str] = None
    failure_category: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ──────────────── Admin / Audit ────────────────

class AuditLogEntry(BaseModel):
    id: int
    txnid: str
    action: str
    payload: Optional[Dict] = None
    payload_hash: Optional[str] = None
    previous_hash: Optional[str] = None
    timestamp: datetime
    log_metadata: Optional[Dict] = None

    class Config:
        from_attributes = True


class AuditChainResponse(BaseModel):
    valid: bool
    total_entries: int
    broken_at: Optional[int] = None
    message: Optional[str] = None


class DonationStatsResponse(BaseModel):
    total_donations: int
    completed: int
    failed: int
    pending: int
    total_collected: Decimal
    failure_distribution: Dict[str, int]


# ──────────────── Generic ────────────────

class HealthResponse(BaseModel):
    status: str
    database: str
    payments_configured: bool
    whatsapp_configured: bool
    uptime_seconds: float
    version: str


class ErrorResponse(BaseModel):
    detail: str
    error_code: Optional[str] = None
