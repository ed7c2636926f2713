import logging
import random
import uuid
from datetime import date
from typing import Callable, Protocol

from flightbot.core.config import Settings
from flightbot.core.logging import mask_card_number
from flightbot.schemas.booking import PaymentMethod
from flightbot.schemas.payments import PaymentRequest, PaymentResult
from flightbot.services.cybersource_client import CybersourceClient, CybersourceConfig, CybersourceError
from flightbot.services.validators import (
    is_valid_card_number,
    is_valid_cvv,
    is_valid_email,
    is_valid_expiry,
    is_valid_holder_name,
    normalize_card_number,
)
from flightbot.services.amount_resolver import ZERO_DECIMAL_CURRENCIES

logger = logging.getLogger(__name__)


class PaymentGatewayError(RuntimeError):
    """The gateway could not be asked (network, credentials, 5xx). Declines are results, not errors."""


class PaymentGateway(Protocol):
    provider: str

    def process_payment(self, request: PaymentRequest) -> PaymentResult: ...


def validate_payment_request(req: PaymentRequest, today: date | None = None) -> list[str]:
    errors = []
    if req.amount <= 0:
        errors.append("Invalid payment amount")
    if not req.bookingId:
        errors.append("Booking ID is required")

    if req.paymentMethod.is_card:
        card = req.card
        if card is None:
            errors.append("Card details are required")
        else:
            if not is_valid_card_number(card.number):
                errors.append("Invalid card number")
            if not is_valid_expiry(card.expiry, today):
                errors.append("Invalid expiry date")
            if not is_valid_cvv(card.cvv):
                errors.append("Invalid CVV")
            if not is_valid_holder_name(card.holderName):
                errors.append("Invalid cardholder name")

    if req.paymentMethod == PaymentMethod.PAYPAL and not is_valid_email(req.customer.email):
        errors.append("Invalid PayPal email address")
    return errors


def minor_units_to_str(amount: int, currency: str) -> str:
    if currency in ZERO_DECIMAL_CURRENCIES:
        return str(int(amount))
    return f"{amount // 100}.{amount % 100:02d}"


class SandboxPaymentGateway:
    """Mocked gateway: validates like a real one, charges nothing."""

    provider = "sandbox"

    def __init__(self, decline_rate: float = 0.0, rng: random.Random | None = None, today: Callable[[], date] = date.today):
        self.decline_rate = decline_rate
        self.rng = rng or random.Random()
        self.today = today

    def process_payment(self, request: PaymentRequest) -> PaymentResult:
        errors = validate_payment_request(request, self.today())
        if errors:
            logger.info("Sandbox payment rejected booking=%s errors=%s", request.bookingId, errors)
            return PaymentResult(success=False, error=", ".join(errors), provider=self.provider)

        if self.decline_rate and self.rng.random() < self.decline_rate:
            logger.info("Sandbox payment declined booking=%s", request.bookingId)
            return PaymentResult(success=False, error="Payment processing failed. Please try again.", provider=self.provider)

        payment_id = f"sandbox-{uuid.uuid4()}"
        logger.info(
            "Sandbox payment ok booking=%s amount=%s %s card=%s",
            request.bookingId, request.amount, request.currency,
            mask_card_number(request.card.number) if request.card else "-",
        )
        return PaymentResult(
            success=True,
            paymentId=payment_id,
            transactionId=str(uuid.uuid4()),
            message="Payment processed successfully",
            provider=self.provider,
        )


class CybersourcePaymentGateway:
    provider = "cybersource"

    def __init__(self, client: CybersourceClient):
        self.client = client

    def process_payment(self, request: PaymentRequest) -> PaymentResult:
        if not request.paymentMethod.is_card or request.card is None:
            return PaymentResult(
                success=False,
                error=f"{request.paymentMethod.label} is not available for this merchant",
                provider=self.provider,
            )

        card = request.card
        first, _, last = (request.customer.name or card.holderName).strip().partition(" ")
        bill_to = {
            "firstName": first,
            "lastName": last or first,
            "address1": request.billingAddress,
            "email": request.customer.email,
            "phoneNumber": request.customer.phone,
        }
        month, _, year = card.expiry.partition("/")
        try:
            resp = self.client.sale_card(
                client_ref=request.orderNumber or request.bookingId,
                amount=minor_units_to_str(request.amount, request.currency),
                currency=request.currency,
                bill_to=bill_to,
                card={
                    "number": normalize_card_number(card.number),
                    "expirationMonth": month,
                    "expirationYear": "20" + year,
                    "securityCode": card.cvv,
                },
            )
        except CybersourceError as e:
            raise PaymentGatewayError(str(e)) from e

        cybs_id = str(resp.get("id") or "")
        status = str(resp.get("status") or "").upper()
        if status in ("DECLINED", "REJECTED", "FAILED", "INVALID_REQUEST"):
            reason = (resp.get("errorInformation") or {}).get("message") or f"Payment {status.lower()}"
            return PaymentResult(success=False, id=cybs_id or None, error=reason, provider=self.provider)

        txn = (resp.get("processorInformation") or {}).get("transactionId") or cybs_id
        return PaymentResult(success=True, id=cybs_id, transactionId=txn, message=status, provider=self.provider)


def build_payment_gateway(cfg: Settings) -> PaymentGateway:
    if cfg.PAYMENT_SANDBOX:
        return SandboxPaymentGateway(decline_rate=cfg.PAYMENT_DECLINE_RATE)
    if not (cfg.CYBS_MERCHANT_ID and cfg.CYBS_KEY_ID and cfg.CYBS_SECRET_KEY_B64):
        raise PaymentGatewayError("Cybersource is not configured (missing env vars)")
    host = cfg.CYBS_HOST or ("apitest.cybersource.com" if cfg.CYBS_ENV.lower() == "test" else "api.cybersource.com")
    return CybersourcePaymentGateway(CybersourceClient(CybersourceConfig(
        host=host,
        merchant_id=cfg.CYBS_MERCHANT_ID,
        key_id=cfg.CYBS_KEY_ID,
        secret_key_b64=cfg.CYBS_SECRET_KEY_B64,
    )))
