from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from temple_donations.config import Settings
from temple_donations.main import create_app
from temple_donations.services.payu_client import GatewayTransactionStatus
from temple_donations.services.payu_signer import compute_response_hash

MERCHANT_KEY = "K"
MERCHANT_SALT = "S"
ADMIN_KEY = "admin-secret"


class FakeNotifier:
    """Stands in for NotificationService; records what would be sent."""

    configured = True

    def __init__(self, succeed=True):
        self.succeed = succeed
        self.receipts = []
        self.failures = []

    def send_receipt(self, phone, receipt):
        self.receipts.append((phone, receipt))
        return self.succeed

    def send_failed_payment_notification(self, phone, donor_name, amount, purpose):
        self.failures.append((phone, donor_name, amount, purpose))
        return self.succeed


class FakeMessages:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    def create(self, **kwargs):
        if self.error:
            raise self.error
        self.sent.append(kwargs)
        return SimpleNamespace(sid="SM123")


class FakeTwilio:
    """Stands in for twilio.rest.Client."""

    def __init__(self, error=None):
        self.messages = FakeMessages(error)


class FakePayUClient:
    """Stands in for PayUClient.verify_payment."""

    def __init__(self, status="success", error=None, amount="501.00"):
        self.status = status
        self.error = error
        self.amount = amount
        self.calls = []

    def verify_payment(self, txnid):
        self.calls.append(txnid)
        if self.error:
            raise self.error
        return GatewayTransactionStatus(txnid=txnid, status=self.status, gateway_ref="MIH123", amount=self.amount)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'donations.db'}",
        PAYU_MERCHANT_KEY=MERCHANT_KEY,
        PAYU_MERCHANT_SALT=MERCHANT_SALT,
        PUBLIC_BASE_URL="https://api.temple.test",
        FRONTEND_BASE_URL="https://temple.test",
        TWILIO_PHONE_NUMBER="+14155238886",
        ADMIN_API_KEY=ADMIN_KEY,
        INITIATE_RATE_LIMIT=100,
        LOG_DIR=str(tmp_path / "logs"),
    )


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def payu_client():
    return FakePayUClient()


@pytest.fixture
def app(settings, notifier, payu_client):
    return create_app(settings, notifier=notifier, payu_client=payu_client)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(app, client):
    session = app.state.database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def initiate(client):
    def _initiate(**overrides):
        payload = {
            "name": "Radha Devi",
            "email": "radha@example.com",
            "phone": "9876543210",
            "amount": "501",
        }
        payload.update(overrides)
        response = client.post("/api/payments/initiate", json=payload)
        assert response.status_code == 200, response.text
        return response.json()
    return _initiate


def signed_callback(form_data, status="success", salt=MERCHANT_SALT, **extra):
    """Callback fields as PayU would post them back for ``form_data``."""
    fields = {
        "key": form_data["key"],
        "txnid": form_data["txnid"],
        "amount": form_data["amount"],
        "productinfo": form_data["productinfo"],
        "firstname": form_data["firstname"],
        "email": form_data["email"],
        "udf1": form_data.get("udf1", ""),
        "status": status,
        "mihpayid": "403993715521",
    }
    fields.update(extra)
    fields["hash"] = compute_response_hash(fields, salt)
    return fields

