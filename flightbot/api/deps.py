from functools import lru_cache

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from flightbot.core.config import settings
from flightbot.db.session import get_db
from flightbot.services.booking_dialog import BookingDialog, RetryPolicy
from flightbot.services.booking_store import SqlBookingStore
from flightbot.services.email_service import EmailNotifier
from flightbot.services.payment_service import PaymentGateway, PaymentGatewayError, build_payment_gateway
from flightbot.services.session_store import SessionStore, build_session_store


@lru_cache
def get_session_store() -> SessionStore:
    return build_session_store(settings)


@lru_cache
def _payment_gateway() -> PaymentGateway:
    return build_payment_gateway(settings)


def get_payment_gateway() -> PaymentGateway:
    try:
        return _payment_gateway()
    except PaymentGatewayError as e:
        raise HTTPException(status_code=500, detail=str(e))


def get_booking_dialog(
    db: Session = Depends(get_db),
    payments: PaymentGateway = Depends(get_payment_gateway),
) -> BookingDialog:
    return BookingDialog(
        payments,
        SqlBookingStore(db),
        notifier=EmailNotifier(db) if settings.SEND_CONFIRMATION_EMAIL else None,
        retry_policy=RetryPolicy(settings.DIALOG_RETRY_POLICY),
        location_id=settings.PAYMENT_LOCATION_ID,
        persistence_attempts=settings.PERSISTENCE_RETRY_ATTEMPTS,
        persistence_backoff=settings.PERSISTENCE_RETRY_BACKOFF,
    )
