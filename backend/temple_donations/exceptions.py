"""
Payment Exceptions — error hierarchy for the donation payment flow.
"""


class PaymentError(Exception):
    """Base exception for payment-related errors"""
    pass


class ConfigurationError(PaymentError):
    """Merchant credentials or gateway settings are missing"""
    pass


class SigningError(PaymentError):
    """Request hash could not be computed from the given fields"""
    pass


class GatewayError(PaymentError):
    """The payment gateway could not be reached or answered badly"""
    pass


class QRGenerationError(PaymentError):
    """UPI QR image could not be rendered"""
    pass
