"""
PayU Status Client — queries the merchant postservice ``verify_payment``
command for the current state of a transaction.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from temple_donations.exceptions import ConfigurationError, GatewayError
from temple_donations.utils.hashing import sha512_hex

logger = logging.getLogger(__name__)

VERIFY_COMMAND = "verify_payment"

# Only these gateway answers are final; anything else stays pending.
SUCCESS_STATUSES = frozenset({"success", "captured"})
FAILURE_STATUSES = frozenset({"failure", "failed", "bounced", "dropped", "usercancelled", "cancelled"})
PENDING_STATUSES = frozenset({"pending", "in progress", "initiated"})


@dataclass(frozen=True)
class GatewayTransactionStatus:
    txnid: str
    status: str                 # success | pending | failure | not_found
    gateway_ref: Optional[str] = None
    amount: Optional[str] = None
    error_message: Optional[str] = None


class PayUClient:
    """Thin wrapper over the PayU merchant postservice API."""

    def __init__(self, merchant_key: str, salt: str, verify_url: str, timeout: float = 15.0,
                 session: Optional[requests.Session] = None):
        self.merchant_key = merchant_key
        self._salt = salt
        self.verify_url = verify_url
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.merchant_key and self._salt and self.verify_url)

    def command_hash(self, command: str, var1: str) -> str:
        """sha512(key|command|var1|salt)"""
        return sha512_hex(f"{self.merchant_key}|{command}|{var1}|{self._salt}")

    def verify_payment(self, txnid: str) -> GatewayTransactionStatus:
        """Fetch the gateway's view of ``txnid``.

        Raises:
            ConfigurationError: merchant credentials are missing.
            GatewayError: network failure or unreadable response.
        """
        if not self.configured:
            raise ConfigurationError("PayU credentials are not configured")

        payload = {
            "key": self.merchant_key,
            "command": VERIFY_COMMAND,
            "var1": txnid,
            "hash": self.command_hash(VERIFY_COMMAND, txnid),
        }

        try:
            response = self.session.post(self.verify_url, data=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("PayU verify_payment request failed for txnid=%s: %s", txnid, exc)
            raise GatewayError("Failed to connect to payment gateway") from exc

        if response.status_code != 200:
            logger.error("PayU verify_payment returned HTTP %s for txnid=%s", response.status_code, txnid)
            raise GatewayError("Payment gateway returned an error")

        try:
            body: Dict[str, Any] = response.json()
        except ValueError as exc:
            logger.error("PayU verify_payment returned non-JSON body for txnid=%s", txnid)
            raise GatewayError("Invalid response from payment gateway") from exc

        transactions = body.get("transaction_details") if isinstance(body, dict) else None
        details = transactions.get(txnid) if isinstance(transactions, dict) else None
        if not isinstance(details, dict):
            return GatewayTransactionStatus(txnid=txnid, status="not_found")

        raw_status = str(details.get("status") or "").strip().lower()
        if raw_status in SUCCESS_STATUSES:
            status = "success"
        elif raw_status in FAILURE_STATUSES:
            status = "failure"
        elif raw_status == "not found":
            status = "not_found"
        else:
            if raw_status not in PENDING_STATUSES:
                logger.warning("Unrecognised PayU status %r for txnid=%s; treating as pending", raw_status, txnid)
            status = "pending"

        return GatewayTransactionStatus(
            txnid=txnid,
            status=status,
            gateway_ref=details.get("mihpayid"),
            amount=details.get("amt") or details.get("transaction_amount"),
            error_message=details.get("error_Message") or details.get("field9"),
        )
