"""
FastAPI dependencies — services built once by the app factory and handed to
routes from ``app.state``.
"""
from typing import Dict

from fastapi import Request

from temple_donations.config import Settings
from temple_donations.services.donation_service import DonationService
from temple_donations.services.receipt_service import ReceiptService
from temple_donations.services.upi_service import UpiService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_donation_service(request: Request) -> DonationService:
    return request.app.state.donation_service


def get_upi_service(request: Request) -> UpiService:
    return request.app.state.upi_service


def get_receipt_service(request: Request) -> ReceiptService:
    return request.app.state.receipt_service


async def gateway_params(request: Request) -> Dict[str, str]:
    """Callback fields as a flat str → str mapping (query string, then form body)."""
    params: Dict[str, str] = dict(request.query_params)
    if request.method == "POST":
        form = await request.form()
        for key, value in form.items():
            if isinstance(value, str):
                params[key] = value
    return params


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None
