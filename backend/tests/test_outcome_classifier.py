import pytest

from temple_donations.services.outcome_classifier import (
    OutcomeCategory,
    classify,
    describe,
    resolve_callback,
)
from temple_donations.services.payu_signer import compute_response_hash

KEY = "K"
SALT = "S"


def _callback(status="success", **extra):
    fields = {
        "key": KEY,
        "txnid": "TXN1",
        "amount": "100.00",
        "productinfo": "Donation",
        "firstname": "A",
        "email": "a@b.com",
        "status": status,
    }
    fields.update(extra)
    fields["hash"] = compute_response_hash(fields, SALT)
    return fields


class TestClassify:
    @pytest.mark.parametrize("token,expected", [
        ("payment_failed", OutcomeCategory.PAYMENT_FAILED),
        ("payment_cancelled", OutcomeCategory.PAYMENT_CANCELLED),
        ("verification_failed", OutcomeCategory.VERIFICATION_FAILED),
        ("processing_error", OutcomeCategory.PROCESSING_ERROR),
        ("Payment Cancelled", OutcomeCategory.PAYMENT_CANCELLED),
        ("userCancelled", OutcomeCategory.PAYMENT_CANCELLED),
        ("  FAILURE ", OutcomeCategory.PAYMENT_FAILED),
        ("hash-mismatch", OutcomeCategory.VERIFICATION_FAILED),
    ])
    def test_known_tokens(self, token, expected):
        assert classify(token) is expected

    @pytest.mark.parametrize("token", [
        None, "", "success", "E000", "Payment declined by bank", "💥", 42, 3.5, ["payment_failed"], object(),
    ])
    def test_everything_else_is_unknown(self, token):
        assert classify(token) is OutcomeCategory.UNKNOWN

    def test_mapping_prefers_error_token(self):
        params = {"status": "failure", "error": "payment_cancelled"}
        assert classify(params) is OutcomeCategory.PAYMENT_CANCELLED

    def test_mapping_falls_back_to_status(self):
        assert classify({"status": "failure", "error": "E308"}) is OutcomeCategory.PAYMENT_FAILED
        assert classify({"unmappedstatus": "userCancelled", "status": "failure"}) is OutcomeCategory.PAYMENT_CANCELLED

    def test_mapping_success_is_not_upgraded(self):
        assert classify({"status": "success"}) is OutcomeCategory.UNKNOWN


class TestDescribe:
    def test_cancelled_is_a_warning(self):
        description = describe(OutcomeCategory.PAYMENT_CANCELLED)
        assert description.severity == "warning"
        assert description.icon == "alert-triangle"
        assert description.title == "Payment Cancelled"

    @pytest.mark.parametrize("category", [
        OutcomeCategory.PAYMENT_FAILED,
        OutcomeCategory.VERIFICATION_FAILED,
        OutcomeCategory.PROCESSING_ERROR,
        OutcomeCategory.UNKNOWN,
    ])
    def test_other_categories_are_errors(self, category):
        description = describe(category)
        assert description.severity == "error"
        assert description.message
        assert description.next_steps

    def test_accepts_plain_strings(self):
        assert describe("payment_cancelled").severity == "warning"
        assert describe("nonsense") == describe(OutcomeCategory.UNKNOWN)


class TestResolveCallback:
    def test_verified_success_completes(self):
        outcome = resolve_callback(_callback(), KEY, SALT)
        assert outcome.completed
        assert outcome.hash_verified
        assert outcome.category is None
        assert outcome.txnid == "TXN1"

    def test_gateway_failure_with_cancel_token(self):
        outcome = resolve_callback(_callback("failure", error="payment_cancelled"), KEY, SALT)
        assert not outcome.completed
        assert outcome.category is OutcomeCategory.PAYMENT_CANCELLED
        assert describe(outcome.category).severity == "warning"

    def test_claimed_success_with_bad_hash_is_rejected(self):
        params = _callback("failure")
        params["status"] = "success"
        outcome = resolve_callback(params, KEY, SALT)
        assert not outcome.completed
        assert not outcome.hash_verified
        assert outcome.category is OutcomeCategory.VERIFICATION_FAILED

    def test_missing_hash_is_rejected(self):
        params = _callback()
        del params["hash"]
        outcome = resolve_callback(params, KEY, SALT)
        assert outcome.category is OutcomeCategory.VERIFICATION_FAILED

    def test_foreign_merchant_key_is_rejected(self):
        params = _callback(key="OTHER")
        outcome = resolve_callback(params, KEY, SALT)
        assert not outcome.completed
        assert outcome.category is OutcomeCategory.VERIFICATION_FAILED

    def test_empty_params(self):
        outcome = resolve_callback({}, KEY, SALT)
        assert not outcome.completed
        assert outcome.txnid is None
        assert outcome.category is OutcomeCategory.VERIFICATION_FAILED
