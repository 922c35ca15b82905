from temple_donations.utils.hashing import sha512_hex, secure_compare, generate_hash, generate_chain_hash
from temple_donations.utils.validators import normalize_phone, validate_email, validate_pan, validate_txnid

__all__ = [
    "sha512_hex", "secure_compare", "generate_hash", "generate_chain_hash",
    "normalize_phone", "validate_email", "validate_pan", "validate_txnid",
]
