"""
Donation Model — One row per donation payment attempt, keyed by txnid.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Numeric, DateTime, JSON, Boolean, Text, ForeignKey

from temple_donations.database import Base


class Donation(Base):
    __tablename__ = "donations"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    txnid = Column(String(25), unique=True, nullable=False, index=True)

    # Donor
    name = Column(String(120), nullable=False)
    email = Column(String(254), nullable=False)
    phone = Column(String(20), nullable=False)
    pan_card = Column(String(10))
    message = Column(Text)

    amount = Column(Numeric(12, 2), nullable=False)   # INR, two decimals as signed
    purpose = Column(String(200))
    category_id = Column(Integer, ForeignKey("donation_categories.id"), nullable=True)
    event_id = Column(Integer, ForeignKey("temple_events.id"), nullable=True)

    method = Column(String(16), default="netbanking")  # netbanking | card | upi
    status = Column(String(16), default="pending")
    # Statuses: pending → pending_upi → completed | completed_upi | failed | failed_upi | cancelled

    # Gateway outcome
    gateway_ref = Column(String(64))                  # PayU mihpayid
    failure_category = Column(String(32))
    gateway_response = Column(JSON, default=dict)     # sanitized callback fields
    invoice_number = Column(String(20), unique=True)

    receipt_sent = Column(Boolean, default=False)
    notification_sent = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
