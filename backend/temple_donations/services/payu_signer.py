"""
PayU Hash Signer — request signing and callback hash verification.

Request hash:
    sha512(key|txnid|amount|productinfo|firstname|email|udf1|..|udf10|SALT)

Response (reverse) hash:
    sha512([additionalCharges|]SALT|status|udf10|..|udf1|email|firstname|productinfo|amount|txnid|key)

Both field orders live in the tables below; nothing else builds hash strings.
"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Mapping, Optional, Tuple

from temple_donations.exceptions import SigningError
from temple_donations.utils.hashing import sha512_hex, secure_compare

logger = logging.getLogger(__name__)

UDF_FIELDS: Tuple[str, ...] = tuple(f"udf{i}" for i in range(1, 11))

REQUEST_HASH_SEQUENCE: Tuple[str, ...] = (
    "key", "txnid", "amount", "productinfo", "firstname", "email",
) + UDF_FIELDS

RESPONSE_HASH_SEQUENCE: Tuple[str, ...] = (
    ("status",) + tuple(reversed(UDF_FIELDS)) + (
        "email", "firstname", "productinfo", "amount", "txnid", "key",
    )
)

# A callback missing any of these cannot be verified.
RESPONSE_REQUIRED_FIELDS: Tuple[str, ...] = (
    "status", "txnid", "amount", "productinfo", "firstname", "email", "key",
)

OPTIONAL_FORM_FIELDS: Tuple[str, ...] = ("udf1", "udf2", "udf3", "udf4", "udf5", "pg", "lastname")

SHA512_HEX_LENGTH = 128
TWO_PLACES = Decimal("0.01")


def format_amount(value: Any) -> str:
    """Render an amount exactly as it is sent to the gateway: "100.00".

    Raises:
        SigningError: amount is not a positive decimal.
    """
    if isinstance(value, bool):
        raise SigningError("Amount must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise SigningError("Amount must be a number")
    if not amount.is_finite() or amount <= 0:
        raise SigningError("Amount must be greater than zero")
    try:
        return str(amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        raise SigningError("Amount is out of range")


def _hash_value(fields: Mapping[str, Any], name: str) -> str:
    value = fields.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    return value


def compute_request_hash(fields: Mapping[str, Any], salt: str) -> str:
    """SHA-512 signature for an outbound payment request.

    ``fields`` must already hold the amount in its final string form; the
    hash covers exactly what is posted to the gateway.

    Raises:
        SigningError: merchant key or salt missing, or a field is not a string.
    """
    if not salt:
        raise SigningError("PayU merchant salt is missing")
    if not fields.get("key"):
        raise SigningError("PayU merchant key is missing")
    for name in ("txnid", "amount", "productinfo", "firstname", "email"):
        if not fields.get(name):
            raise SigningError(f"Missing required field for hash: {name}")

    try:
        values = [_hash_value(fields, name) for name in REQUEST_HASH_SEQUENCE]
    except TypeError as exc:
        raise SigningError(str(exc))
    return sha512_hex("|".join(values + [salt]))


def compute_response_hash(fields: Mapping[str, Any], salt: str) -> str:
    """Expected hash for a gateway callback (reverse field order).

    Raises:
        TypeError: a field value is not a string.
    """
    values = [salt] + [_hash_value(fields, name) for name in RESPONSE_HASH_SEQUENCE]
    additional_charges = fields.get("additionalCharges")
    if additional_charges:
        values.insert(0, _hash_value(fields, "additionalCharges"))
    return sha512_hex("|".join(values))


def verify_response_hash(fields: Mapping[str, Any], salt: str, received_hash: Optional[str]) -> bool:
    """Check a callback hash. Any missing or malformed input is a failed check."""
    try:
        if not salt or not isinstance(received_hash, str):
            return False
        received = received_hash.strip()
        if len(received) != SHA512_HEX_LENGTH:
            return False
        int(received, 16)

        for name in RESPONSE_REQUIRED_FIELDS:
            value = fields.get(name)
            if not isinstance(value, str) or not value:
                return False

        expected = compute_response_hash(fields, salt)
    except (TypeError, ValueError, AttributeError):
        return False

    return secure_compare(expected, received)


def build_payment_form(
    request: Mapping[str, Any],
    merchant_key: str,
    salt: str,
    payment_url: str,
) -> Tuple[str, Dict[str, str]]:
    """Build the signed form the browser posts to PayU.

    Args:
        request: txnid, amount, productinfo, firstname, email, phone, surl,
            furl and optional udf1..udf5 / pg / lastname.
        merchant_key: PayU merchant key.
        salt: PayU merchant salt. Used for the hash only.
        payment_url: PayU ``_payment`` endpoint.

    Returns:
        (form_url, form_data)
    """
    if not merchant_key:
        raise SigningError("PayU merchant key is missing")

    form: Dict[str, str] = {
        "key": merchant_key,
        "txnid": request["txnid"],
        "amount": format_amount(request["amount"]),
        "productinfo": request["productinfo"],
        "firstname": request["firstname"],
        "email": request["email"],
        "phone": request.get("phone") or "",
        "surl": request["surl"],
        "furl": request["furl"],
    }
    for name in OPTIONAL_FORM_FIELDS:
        if request.get(name):
            form[name] = str(request[name])

    form["hash"] = compute_request_hash(form, salt)
    logger.debug("Signed payment request txnid=%s amount=%s", form["txnid"], form["amount"])
    return payment_url, form
