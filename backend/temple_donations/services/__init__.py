from temple_donations.services.audit_service import AuditService
from temple_donations.services.donation_service import DonationService
from temple_donations.services.notification_service import NotificationService
from temple_donations.services.payu_client import PayUClient
from temple_donations.services.receipt_service import ReceiptService
from temple_donations.services.upi_service import UpiService

__all__ = ["AuditService", "DonationService", "NotificationService", "PayUClient", "ReceiptService", "UpiService"]
