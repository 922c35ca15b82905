from temple_donations.routes.payment import router as payment_router
from temple_donations.routes.admin import router as admin_router

__all__ = ["payment_router", "admin_router"]
