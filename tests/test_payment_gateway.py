import hashlib
import hmac
import json

import httpx
import pytest

from sportshop.services.payment_gateway import (
    CREATE_SIGNATURE_FIELDS,
    MomoGateway,
    parse_gateway_order_id,
    raw_signature,
    sign,
)
from sportshop.utils.errors import GatewayError, ValidationError


def sent_body(momo, index=-1):
    return json.loads(momo.requests[index].content)


def test_raw_signature_sorts_keys_and_blanks_missing_values():
    raw = raw_signature({"orderId": "7-1", "amount": 1000, "extraData": None}, ["orderId", "extraData", "amount"])
    assert raw == "amount=1000&extraData=&orderId=7-1"


def test_sign_is_hmac_sha256_hex():
    expected = hmac.new(b"secret", b"a=1&b=2", hashlib.sha256).hexdigest()
    assert sign("a=1&b=2", "secret") == expected


def test_create_payment_returns_pay_url(gateway, momo):
    assert gateway.create_payment(42, 250000) == "https://pay.momo.test/checkout/abc"

    request = momo.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://momo.test/v2/gateway/api/create"
    body = sent_body(momo)
    assert body["partnerCode"] == "MOMOTEST"
    assert body["amount"] == 250000
    assert body["orderId"].startswith("42-")
    assert body["redirectUrl"] == "http://shop.test/checkout/success/42"
    assert body["ipnUrl"] == "http://api.shop.test/api/payments/momo/ipn"
    assert "accessKey" not in body


def test_request_signature_covers_the_sent_fields(gateway, momo):
    gateway.create_payment(42, 250000)
    body = sent_body(momo)

    fields = {key: body[key] for key in CREATE_SIGNATURE_FIELDS if key != "accessKey"}
    fields["accessKey"] = "test-access-key"
    assert body["signature"] == sign(raw_signature(fields, CREATE_SIGNATURE_FIELDS), "test-secret-key")


@pytest.mark.parametrize("total", [199.99, 0.5])
def test_fractional_amount_is_refused_before_sending(gateway, momo, total):
    with pytest.raises(ValidationError):
        gateway.create_payment(42, total)
    assert momo.requests == []


def test_each_attempt_gets_fresh_identifiers(gateway, momo):
    gateway.create_payment(42, 1000)
    gateway.create_payment(42, 1000)
    first, second = sent_body(momo, 0), sent_body(momo, 1)

    assert first["requestId"] != second["requestId"]
    assert parse_gateway_order_id(first["orderId"]) == parse_gateway_order_id(second["orderId"]) == 42


def test_nonzero_result_code_raises(gateway, momo):
    momo.response = {"resultCode": 1001, "message": "Insufficient balance"}
    with pytest.raises(GatewayError) as exc:
        gateway.create_payment(42, 1000)
    assert "Insufficient balance" in exc.value.message
    assert exc.value.status_code == 502


def test_transport_error_raises(gateway, momo):
    momo.error = httpx.ReadTimeout("timed out")
    with pytest.raises(GatewayError):
        gateway.create_payment(42, 1000)


def test_non_json_response_raises():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(503, text="<html>down</html>")))
    gateway = MomoGateway(endpoint="https://momo.test/create", access_key="a", secret_key="s", client=client)
    with pytest.raises(GatewayError):
        gateway.create_payment(1, 1000)


def test_ipn_signature_round_trip(gateway):
    payload = {
        "partnerCode": "MOMOTEST", "orderId": "42-1700000000000", "requestId": "abc", "amount": 250000,
        "orderInfo": "pay with MoMo", "orderType": "momo_wallet", "transId": 4088878653, "resultCode": 0,
        "message": "Successful.", "payType": "qr", "responseTime": 1700000001000, "extraData": "",
    }
    payload["signature"] = gateway.sign_ipn(payload)
    assert gateway.verify_ipn_signature(payload)

    tampered = dict(payload, amount=1)
    assert not gateway.verify_ipn_signature(tampered)
    assert not gateway.verify_ipn_signature(dict(payload, signature=None))


@pytest.mark.parametrize("value,expected", [("42-1700000000000", 42), ("7", 7), (15, 15)])
def test_parse_gateway_order_id(value, expected):
    assert parse_gateway_order_id(value) == expected


@pytest.mark.parametrize("value", ["", "abc-123", "-12"])
def test_parse_gateway_order_id_rejects_garbage(value):
    with pytest.raises(ValidationError):
        parse_gateway_order_id(value)
