from temple_donations.models.donation import Donation
from temple_donations.models.catalog import DonationCategory, TempleEvent
from temple_donations.models.audit import AuditLog

__all__ = ["Donation", "DonationCategory", "TempleEvent", "AuditLog"]
