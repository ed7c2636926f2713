import base64
import random
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from flightbot.core.config import Settings
from flightbot.schemas.booking import PaymentMethod
from flightbot.schemas.payments import CardIn, Customer, PaymentRequest
from flightbot.services.cybersource_client import CybersourceClient, CybersourceConfig, CybersourceError
from flightbot.services.payment_service import (
    CybersourcePaymentGateway,
    PaymentGatewayError,
    SandboxPaymentGateway,
    build_payment_gateway,
    minor_units_to_str,
    validate_payment_request,
)

TODAY = date(2026, 10, 16)


def card_request(**kw) -> PaymentRequest:
    data = dict(
        bookingId="FB123456789",
        paymentMethod=PaymentMethod.CREDIT_CARD,
        amount=48500,
        currency="USD",
        card=CardIn(number="4111111111111111", expiry="12/29", cvv="123", holderName="Jane Doe"),
        customer=Customer(email="jane@example.com", name="Jane Doe", phone="+1 555 0100"),
        billingAddress="1 Main St",
        orderNumber="FB123456789",
        idempotencyKey="k-1",
    )
    data.update(kw)
    return PaymentRequest(**data)


def test_valid_card_request_has_no_errors():
    assert validate_payment_request(card_request(), TODAY) == []


def test_request_validation_collects_every_problem():
    bad = card_request(
        amount=0,
        card=CardIn(number="1234", expiry="01/20", cvv="1", holderName=""),
    )
    errors = validate_payment_request(bad, TODAY)
    assert errors == ["Invalid payment amount", "Invalid card number", "Invalid expiry date", "Invalid CVV", "Invalid cardholder name"]


def test_card_method_without_card():
    assert "Card details are required" in validate_payment_request(card_request(card=None), TODAY)


def test_paypal_needs_a_valid_customer_email():
    req = card_request(paymentMethod=PaymentMethod.PAYPAL, card=None, customer=Customer(email="nope"))
    assert validate_payment_request(req, TODAY) == ["Invalid PayPal email address"]


def test_sandbox_success():
    result = SandboxPaymentGateway(today=lambda: TODAY).process_payment(card_request())
    assert result.success
    assert result.reference.startswith("sandbox-")
    assert result.transactionId
    assert result.provider == "sandbox"


def test_sandbox_rejects_invalid_requests():
    result = SandboxPaymentGateway(today=lambda: TODAY).process_payment(card_request(amount=-5))
    assert not result.success
    assert result.error == "Invalid payment amount"


def test_sandbox_decline_rate():
    gateway = SandboxPaymentGateway(decline_rate=1.0, rng=random.Random(1), today=lambda: TODAY)
    result = gateway.process_payment(card_request())
    assert not result.success
    assert "try again" in result.error


def test_minor_units_to_str():
    assert minor_units_to_str(48500, "USD") == "485.00"
    assert minor_units_to_str(5, "EUR") == "0.05"
    assert minor_units_to_str(12000, "JPY") == "12000"


def test_cybersource_gateway_maps_a_sale():
    client = MagicMock()
    client.sale_card.return_value = {
        "id": "7000001",
        "status": "AUTHORIZED",
        "processorInformation": {"transactionId": "TX-55"},
    }
    result = CybersourcePaymentGateway(client).process_payment(card_request())

    assert result.success
    assert result.reference == "7000001"
    assert result.transactionId == "TX-55"
    kwargs = client.sale_card.call_args.kwargs
    assert kwargs["amount"] == "485.00"
    assert kwargs["card"]["expirationMonth"] == "12"
    assert kwargs["card"]["expirationYear"] == "2029"
    assert kwargs["bill_to"]["firstName"] == "Jane"
    assert kwargs["bill_to"]["lastName"] == "Doe"


def test_cybersource_gateway_reports_declines():
    client = MagicMock()
    client.sale_card.return_value = {"id": "7000002", "status": "DECLINED", "errorInformation": {"message": "Insufficient funds"}}
    result = CybersourcePaymentGateway(client).process_payment(card_request())
    assert not result.success
    assert result.error == "Insufficient funds"


def test_cybersource_gateway_wraps_transport_errors():
    client = MagicMock()
    client.sale_card.side_effect = CybersourceError("Cybersource unreachable: timeout")
    with pytest.raises(PaymentGatewayError):
        CybersourcePaymentGateway(client).process_payment(card_request())


def test_cybersource_gateway_only_takes_cards():
    result = CybersourcePaymentGateway(MagicMock()).process_payment(
        card_request(paymentMethod=PaymentMethod.APPLE_PAY, card=None)
    )
    assert not result.success
    assert "Apple Pay" in result.error


def _client(http):
    cfg = CybersourceConfig(
        host="apitest.cybersource.com",
        merchant_id="m-1",
        key_id="key-1",
        secret_key_b64=base64.b64encode(b"secret").decode(),
    )
    return CybersourceClient(cfg, http=http)


def test_signed_headers():
    client = _client(MagicMock())
    now = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)
    headers = client.signed_headers("POST", "/pts/v2/payments", b"{}", now=now)
    assert headers["Date"] == "Fri, 16 Oct 2026 12:00:00 GMT"
    assert headers["Digest"].startswith("SHA-256=")
    assert 'keyid="key-1"' in headers["Signature"]
    assert headers == client.signed_headers("POST", "/pts/v2/payments", b"{}", now=now)


def test_client_raises_on_http_errors():
    http = MagicMock()
    http.request.return_value = MagicMock(status_code=401, text='{"message": "auth"}', json=lambda: {"message": "auth"})
    with pytest.raises(CybersourceError):
        _client(http).request("POST", "/pts/v2/payments", {})


def test_client_raises_when_unreachable():
    http = MagicMock()
    http.request.side_effect = requests.ConnectionError("refused")
    with pytest.raises(CybersourceError):
        _client(http).request("POST", "/pts/v2/payments", {})


def test_build_payment_gateway():
    assert isinstance(build_payment_gateway(Settings(PAYMENT_SANDBOX=True)), SandboxPaymentGateway)
    with pytest.raises(PaymentGatewayError):
        build_payment_gateway(Settings(PAYMENT_SANDBOX=False, CYBS_MERCHANT_ID=""))
