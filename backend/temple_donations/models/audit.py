"""
Audit Log Model — Append-only trail of every step a donation goes through.
Entries for one txnid form a SHA-256 hash chain.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON

from temple_donations.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    txnid = Column(String(25), nullable=False, index=True)

    # DONATION_INITIATED, CALLBACK_COMPLETED, CALLBACK_FAILED, CALLBACK_REJECTED,
    # UPI_INTENT_CREATED, UPI_VERIFIED
    action = Column(String(50), nullable=False)

    payload = Column(JSON, default=dict)    # redacted; never holds hashes or the salt
    payload_hash = Column(String(64))       # sha256(previous_hash + sha256(action, payload))
    previous_hash = Column(String(64), default="")

    ip_address = Column(String(45))
    user_agent = Column(String(256))

    log_metadata = Column(JSON, default=dict)
    timestamp = Column(DateTime, default=datetime.utcnow)
