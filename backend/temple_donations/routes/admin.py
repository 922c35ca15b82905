"""
Admin Routes — Donation statistics and payment audit trail access.
"""
import secrets
from decimal import Decimal

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import func

from temple_donations.config import Settings
from temple_donations.database import get_db
from temple_donations.dependencies import get_app_settings
from temple_donations.models.donation import Donation
from temple_donations.schemas.schemas import AuditChainResponse, AuditLogEntry, DonationStatsResponse
from temple_donations.services.audit_service import AuditService


def require_admin(
    admin_key: str = Header("", alias="x-admin-key"),
    settings: Settings = Depends(get_app_settings),
) -> None:
    expected = settings.ADMIN_API_KEY.get_secret_value()
    if not expected:
        raise HTTPException(status_code=503, detail="Admin API is disabled")
    if not secrets.compare_digest(admin_key.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid admin key")


router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])

COMPLETED_STATUSES = ("completed", "completed_upi")
FAILED_STATUSES = ("failed", "failed_upi", "cancelled")


@router.get("/stats", response_model=DonationStatsResponse)
def get_donation_stats(db: Session = Depends(get_db)):
    """Aggregated donation counts and totals."""
    total = db.query(func.count(Donation.id)).scalar() or 0
    completed = db.query(func.count(Donation.id)).filter(
        Donation.status.in_(COMPLETED_STATUSES)
    ).scalar() or 0
    failed = db.query(func.count(Donation.id)).filter(
        Donation.status.in_(FAILED_STATUSES)
    ).scalar() or 0
    collected = db.query(func.sum(Donation.amount)).filter(
        Donation.status.in_(COMPLETED_STATUSES)
    ).scalar() or Decimal("0")

    # Failure category distribution
    categories = db.query(
        Donation.failure_category, func.count(Donation.id)
    ).filter(
        Donation.failure_category.isnot(None)
    ).group_by(Donation.failure_category).all()

    return DonationStatsResponse(
        total_donations=total,
        completed=completed,
        failed=failed,
        pending=total - completed - failed,
        total_collected=Decimal(str(collected)).quantize(Decimal("0.01")),
        failure_distribution={c: n for c, n in categories},
    )


@router.get("/donations/{txnid}/audit", response_model=list[AuditLogEntry])
def get_audit_trail(txnid: str, db: Session = Depends(get_db)):
    """Full audit trail for one transaction."""
    entries = AuditService.get_trail(db, txnid)
    if not entries:
        raise HTTPException(status_code=404, detail="No audit entries for this transaction")
    return entries


@router.get("/donations/{txnid}/audit/verify", response_model=AuditChainResponse)
def verify_audit_trail(txnid: str, db: Session = Depends(get_db)):
    """Check the hash chain of a transaction's audit trail."""
    return AuditService.verify_chain(db, txnid)
