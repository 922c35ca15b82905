import pytest
import requests

from temple_donations.exceptions import ConfigurationError, GatewayError
from temple_donations.services.payu_client import PayUClient

VERIFY_URL = "https://info.payu.in/merchant/postservice.php?form=2"

# sha512("K|verify_payment|TXN1|S")
COMMAND_HASH_KAT = (
    "6fae3f2d898166bcf952fb0ab4c1d1fec88a541334b03dccd5ce804839168c7e"
    "dbe2f9c68ca33bd06d22a7e6c22946496fc91783dea48b022c3b961362cdd512"
)


class FakeResponse:
    def __init__(self, status_code=200, body=None, json_error=False):
        self.status_code = status_code
        self._body = body
        self._json_error = json_error

    def json(self):
        if self._json_error:
            raise ValueError("not json")
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, data=None, timeout=None):
        self.requests.append((url, data, timeout))
        if self.error:
            raise self.error
        return self.response


def _client(session):
    return PayUClient("K", "S", VERIFY_URL, timeout=5, session=session)


def _details(status, **extra):
    details = {"status": status, "mihpayid": "403993715521", "amt": "100.00"}
    details.update(extra)
    return {"status": 1, "transaction_details": {"TXN1": details}}


def test_command_hash():
    assert _client(FakeSession()).command_hash("verify_payment", "TXN1") == COMMAND_HASH_KAT


def test_posts_signed_command():
    session = FakeSession(FakeResponse(body=_details("success")))
    _client(session).verify_payment("TXN1")

    url, data, timeout = session.requests[0]
    assert url == VERIFY_URL
    assert timeout == 5
    assert data == {"key": "K", "command": "verify_payment", "var1": "TXN1", "hash": COMMAND_HASH_KAT}


@pytest.mark.parametrize("gateway_status,expected", [
    ("success", "success"),
    ("captured", "success"),
    ("pending", "pending"),
    ("in progress", "pending"),
    ("failure", "failure"),
    ("failed", "failure"),
    ("bounced", "failure"),
    ("dropped", "failure"),
    ("userCancelled", "failure"),
    ("cancelled", "failure"),
    ("Not Found", "not_found"),
    ("", "pending"),
    ("auth", "pending"),
    ("something-new", "pending"),
])
def test_status_mapping(gateway_status, expected):
    session = FakeSession(FakeResponse(body=_details(gateway_status)))
    result = _client(session).verify_payment("TXN1")
    assert result.status == expected
    assert result.gateway_ref == "403993715521"


def test_missing_transaction():
    session = FakeSession(FakeResponse(body={"status": 0, "msg": "0 out of 1 Transactions Fetched Successfully"}))
    assert _client(session).verify_payment("TXN1").status == "not_found"


def test_network_error():
    session = FakeSession(error=requests.ConnectionError("refused"))
    with pytest.raises(GatewayError):
        _client(session).verify_payment("TXN1")


def test_http_error():
    with pytest.raises(GatewayError):
        _client(FakeSession(FakeResponse(status_code=502))).verify_payment("TXN1")


def test_bad_json():
    with pytest.raises(GatewayError):
        _client(FakeSession(FakeResponse(json_error=True))).verify_payment("TXN1")


def test_unconfigured():
    client = PayUClient("", "", VERIFY_URL, session=FakeSession())
    with pytest.raises(ConfigurationError):
        client.verify_payment("TXN1")


def test_missing_status_is_pending():
    body = {"status": 1, "transaction_details": {"TXN1": {"mihpayid": "403993715521"}}}
    assert _client(FakeSession(FakeResponse(body=body))).verify_payment("TXN1").status == "pending"


@pytest.mark.parametrize("details", [["TXN1"], "TXN1", 42, None])
def test_malformed_transaction_details(details):
    body = {"status": 1, "transaction_details": details}
    assert _client(FakeSession(FakeResponse(body=body))).verify_payment("TXN1").status == "not_found"


def test_reports_gateway_amount():
    session = FakeSession(FakeResponse(body=_details("success", amt="501.00")))
    assert _client(session).verify_payment("TXN1").amount == "501.00"
