"""
Payment Outcome Classifier — turns gateway callbacks into a fixed set of
failure categories with user-facing copy.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from temple_donations.services.payu_signer import verify_response_hash

logger = logging.getLogger(__name__)


class OutcomeCategory(str, Enum):
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_CANCELLED = "payment_cancelled"
    VERIFICATION_FAILED = "verification_failed"
    PROCESSING_ERROR = "processing_error"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class OutcomeDescription:
    title: str
    message: str
    icon: str
    severity: str
    next_steps: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CallbackOutcome:
    """Result of checking one gateway callback."""
    completed: bool
    txnid: Optional[str]
    category: Optional[OutcomeCategory] = None
    hash_verified: bool = False
    fields: Dict[str, str] = field(default_factory=dict)


# Gateway / internal tokens → category. Keys are normalized (lower, "_").
_TOKEN_TABLE: Dict[str, OutcomeCategory] = {
    "payment_failed": OutcomeCategory.PAYMENT_FAILED,
    "failure": OutcomeCategory.PAYMENT_FAILED,
    "failed": OutcomeCategory.PAYMENT_FAILED,
    "bounced": OutcomeCategory.PAYMENT_FAILED,
    "dropped": OutcomeCategory.PAYMENT_FAILED,
    "declined": OutcomeCategory.PAYMENT_FAILED,
    "payment_cancelled": OutcomeCategory.PAYMENT_CANCELLED,
    "payment_canceled": OutcomeCategory.PAYMENT_CANCELLED,
    "cancelled": OutcomeCategory.PAYMENT_CANCELLED,
    "canceled": OutcomeCategory.PAYMENT_CANCELLED,
    "usercancelled": OutcomeCategory.PAYMENT_CANCELLED,
    "user_cancelled": OutcomeCategory.PAYMENT_CANCELLED,
    "verification_failed": OutcomeCategory.VERIFICATION_FAILED,
    "hash_mismatch": OutcomeCategory.VERIFICATION_FAILED,
    "invalid_hash": OutcomeCategory.VERIFICATION_FAILED,
    "tampered": OutcomeCategory.VERIFICATION_FAILED,
    "processing_error": OutcomeCategory.PROCESSING_ERROR,
    "error": OutcomeCategory.PROCESSING_ERROR,
    "internal_error": OutcomeCategory.PROCESSING_ERROR,
    "timeout": OutcomeCategory.PROCESSING_ERROR,
}

_RETRY_STEPS = (
    "Check your internet connection and try again",
    "Ensure your payment details are correct",
    "Try using a different payment method",
    "Contact your bank if the issue persists",
)

_DESCRIPTIONS: Dict[OutcomeCategory, OutcomeDescription] = {
    OutcomeCategory.PAYMENT_FAILED: OutcomeDescription(
        title="Payment Failed",
        message="Your payment could not be processed. Please try again or use a different payment method.",
        icon="x-circle",
        severity="error",
        next_steps=_RETRY_STEPS,
    ),
    OutcomeCategory.PAYMENT_CANCELLED: OutcomeDescription(
        title="Payment Cancelled",
        message="Payment was cancelled. You can try again when ready.",
        icon="alert-triangle",
        severity="warning",
        next_steps=("Try the donation again when you are ready",),
    ),
    OutcomeCategory.VERIFICATION_FAILED: OutcomeDescription(
        title="Payment Failed",
        message="Payment verification failed for security reasons. Please contact support.",
        icon="x-circle",
        severity="error",
        next_steps=("Contact support with your transaction ID before retrying",),
    ),
    OutcomeCategory.PROCESSING_ERROR: OutcomeDescription(
        title="Payment Failed",
        message="There was an error processing your payment. Please try again.",
        icon="x-circle",
        severity="error",
        next_steps=_RETRY_STEPS,
    ),
    OutcomeCategory.UNKNOWN: OutcomeDescription(
        title="Payment Failed",
        message="Your payment could not be completed. Please try again.",
        icon="x-circle",
        severity="error",
        next_steps=_RETRY_STEPS,
    ),
}


def _normalize_token(token: Any) -> str:
    if not isinstance(token, str):
        return ""
    return "_".join(token.strip().lower().replace("-", " ").split())


def classify(raw: Any) -> OutcomeCategory:
    """Map a gateway error token (or a mapping of callback params) to a category.

    Total over its input: unrecognized tokens, None and odd types all map
    to UNKNOWN. A "success" token is never a success here.
    """
    if isinstance(raw, Mapping):
        for name in ("error", "unmappedstatus", "status"):
            category = _TOKEN_TABLE.get(_normalize_token(raw.get(name)))
            if category is not None:
                return category
        return OutcomeCategory.UNKNOWN

    return _TOKEN_TABLE.get(_normalize_token(raw), OutcomeCategory.UNKNOWN)


def describe(category: OutcomeCategory | str) -> OutcomeDescription:
    """Fixed copy for a category; unknown strings fall back to UNKNOWN."""
    try:
        category = OutcomeCategory(category)
    except ValueError:
        category = OutcomeCategory.UNKNOWN
    return _DESCRIPTIONS[category]


def _string_fields(params: Mapping[str, Any]) -> Dict[str, str]:
    return {str(k): v for k, v in params.items() if isinstance(v, str)}


def resolve_callback(params: Mapping[str, Any], merchant_key: str, salt: str) -> CallbackOutcome:
    """Verify and classify one gateway callback.

    Completed only when the hash verifies, the callback carries our merchant
    key and the gateway status is "success". The declared status is ignored
    until the hash verifies.
    """
    fields = _string_fields(params)
    txnid = fields.get("txnid") or None

    verified = verify_response_hash(fields, salt, fields.get("hash"))
    if verified and merchant_key and fields.get("key") != merchant_key:
        logger.warning("Callback for txnid=%s signed with a foreign merchant key", txnid)
        verified = False

    if not verified:
        logger.warning("Callback hash verification failed for txnid=%s", txnid)
        return CallbackOutcome(
            completed=False,
            txnid=txnid,
            category=OutcomeCategory.VERIFICATION_FAILED,
            hash_verified=False,
            fields=fields,
        )

    if fields.get("status", "").strip().lower() == "success":
        return CallbackOutcome(completed=True, txnid=txnid, hash_verified=True, fields=fields)

    category = classify(fields)
    return CallbackOutcome(
        completed=False,
        txnid=txnid,
        category=category,
        hash_verified=True,
        fields=fields,
    )
