"""
Validators — Regex and rule-based validation for donor details.
"""
import re
from typing import Optional

DEFAULT_COUNTRY_CODE = "91"

_TXNID_RE = re.compile(r"^[A-Za-z0-9_\-]{1,25}$")


def normalize_phone(phone: str | None, country_code: str = DEFAULT_COUNTRY_CODE) -> Optional[str]:
    """Normalize a phone number to E.164.

    - "+919876543210" stays as is (non-digits stripped)
    - "9876543210" (bare 10 digits) gets the default country code
    - "919876543210" (11-15 bare digits) is assumed to carry its country code

    Returns None when the number cannot be normalized.
    """
    if not phone or not isinstance(phone, str):
        return None

    raw = phone.strip()
    digits = re.sub(r"\D", "", raw)

    if raw.startswith("+"):
        if 8 <= len(digits) <= 15:
            return f"+{digits}"
        return None

    if len(digits) == 10:
        return f"+{country_code}{digits}"
    if 10 < len(digits) <= 15:
        return f"+{digits}"
    return None


def validate_email(email: str | None) -> bool:
    if not email:
        return False
    return bool(re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", email.strip()))


def validate_pan(pan: str | None) -> bool:
    """Validate Indian PAN format: 5 letters + 4 digits + 1 letter (e.g. ABCPK1234F)."""
    if not pan:
        return False
    return bool(re.match(r"^[A-Z]{5}[0-9]{4}[A-Z]$", pan.strip().upper()))


def validate_upi_vpa(vpa: str | None) -> bool:
    """Validate UPI VPA format: user@provider."""
    if not vpa:
        return False
    return bool(re.match(r"^[\w.-]+@[\w]+$", vpa.strip()))


def validate_txnid(txnid: str | None) -> bool:
    """PayU accepts at most 25 alphanumeric/underscore/hyphen characters."""
    if not txnid:
        return False
    return bool(_TXNID_RE.match(txnid))


def sanitize_name(name: str | None) -> str:
    """Basic sanitization for names: strip, collapse whitespace, drop pipes."""
    if not name:
        return ""
    return re.sub(r"\s+", " ", name.replace("|", " ")).strip()
