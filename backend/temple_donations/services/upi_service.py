"""
UPI Service — intent URIs, QR codes and transaction status checks.
"""
import base64
import io
import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import parse_qs, quote, urlencode, urlsplit

import qrcode
from qrcode.image.pil import PilImage

from temple_donations.exceptions import ConfigurationError, GatewayError, QRGenerationError
from temple_donations.services.payu_client import PayUClient
from temple_donations.services.payu_signer import format_amount

logger = logging.getLogger(__name__)

UPI_SCHEME = "upi"
UPI_CURRENCY = "INR"
QR_FILL_COLOR = "#5a189a"
QR_BACK_COLOR = "#ffffff"


@dataclass(frozen=True)
class UpiIntent:
    payee_address: str
    payee_name: str
    txnid: str
    amount: str
    currency: str = UPI_CURRENCY
    note: str = ""


@dataclass(frozen=True)
class UpiVerification:
    success: bool
    status: str      # success | pending | failed
    message: str
    gateway_ref: Optional[str] = None
    amount: Optional[str] = None          # as reported by the gateway


def build_intent_uri(
    payee_address: Optional[str],
    txnid: str,
    amount: Any,
    payee_name: str = "",
    note: Optional[str] = None,
    default_payee: str = "",
) -> str:
    """Build ``upi://pay?pa=&pn=&tr=&am=&cu=INR&tn=``.

    Every value is percent-encoded (spaces as %20, "&" as %26) so the URI
    parses back into the original fields.
    """
    address = payee_address or default_payee
    if not address:
        raise ConfigurationError("UPI payee address is not configured")
    if not txnid:
        raise ValueError("txnid is required for a UPI intent")

    if note is None:
        note = f"Donation to {payee_name} ({txnid})" if payee_name else f"Donation ({txnid})"

    params = {
        "pa": address,
        "pn": payee_name,
        "tr": txnid,
        "am": format_amount(amount),
        "cu": UPI_CURRENCY,
        "tn": note,
    }
    return f"{UPI_SCHEME}://pay?{urlencode(params, quote_via=quote, safe='@')}"


def parse_intent_uri(uri: str) -> UpiIntent:
    """Inverse of build_intent_uri."""
    parts = urlsplit(uri)
    if parts.scheme != UPI_SCHEME or parts.netloc != "pay":
        raise ValueError("Not a UPI pay intent")
    query = {k: v[0] for k, v in parse_qs(parts.query, keep_blank_values=True).items()}
    return UpiIntent(
        payee_address=query.get("pa", ""),
        payee_name=query.get("pn", ""),
        txnid=query.get("tr", ""),
        amount=query.get("am", ""),
        currency=query.get("cu", UPI_CURRENCY),
        note=query.get("tn", ""),
    )


def build_qr_image(uri: str) -> bytes:
    """Render ``uri`` as a PNG QR code.

    Raises:
        QRGenerationError: the data does not fit a QR code or rendering failed.
    """
    try:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=8,
            border=2,
            image_factory=PilImage,
        )
        qr.add_data(uri)
        qr.make(fit=True)
        image = qr.make_image(fill_color=QR_FILL_COLOR, back_color=QR_BACK_COLOR)

        buffer = io.BytesIO()
        image.save(buffer)
        return buffer.getvalue()
    except Exception as exc:
        logger.error("QR code generation error: %s", exc)
        raise QRGenerationError("Failed to generate QR code for UPI payment") from exc


def build_qr_data_url(uri: str) -> str:
    png = build_qr_image(uri)
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


class UpiService:
    """UPI intents for the configured merchant, plus gateway status polling."""

    def __init__(self, merchant_id: str, merchant_name: str, payu_client: PayUClient):
        self.merchant_id = merchant_id
        self.merchant_name = merchant_name
        self.payu_client = payu_client

    def intent_for(self, txnid: str, amount: Any, payee_address: Optional[str] = None) -> str:
        return build_intent_uri(
            payee_address,
            txnid,
            amount,
            payee_name=self.merchant_name,
            default_payee=self.merchant_id,
        )

    def verify_transaction(self, txnid: str) -> UpiVerification:
        """Ask the gateway for the status of ``txnid``.

        Anything short of a definite answer from the gateway is "pending".
        """
        try:
            result = self.payu_client.verify_payment(txnid)
        except ConfigurationError as exc:
            logger.warning("UPI verification unavailable: %s", exc)
            return UpiVerification(False, "pending", "Unable to verify transaction status")
        except GatewayError as exc:
            logger.warning("UPI verification failed for txnid=%s: %s", txnid, exc)
            return UpiVerification(False, "pending", "Unable to verify transaction status")

        if result.status == "success":
            return UpiVerification(
                True, "success", "Transaction completed successfully", result.gateway_ref, result.amount,
            )
        if result.status == "failure":
            return UpiVerification(
                False, "failed", "Transaction failed or was canceled by the user", result.gateway_ref, result.amount,
            )
        return UpiVerification(
            False, "pending", "Transaction is still being processed", result.gateway_ref, result.amount,
        )
