"""
Catalog Models — donation categories and temple events a donation may target.
Only the columns the payment flow reads are mapped here.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, DateTime

from temple_donations.database import Base


class DonationCategory(Base):
    __tablename__ = "donation_categories"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    name = Column(String(120), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class TempleEvent(Base):
    __tablename__ = "temple_events"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    title = Column(String(200), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
