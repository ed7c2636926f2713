import logging
import time
import uuid
from typing import Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from flightbot.models.booking import Booking
from flightbot.models.passenger import Passenger
from flightbot.models.payment import Payment
from flightbot.schemas.booking import BookingRecord, BookingStatus
from flightbot.services.audit_service import log_audit

logger = logging.getLogger(__name__)


class BookingPersistenceError(RuntimeError):
    def __init__(self, booking_id: str, attempts: int, cause: Exception | None = None):
        super().__init__(f"could not save booking {booking_id} after {attempts} attempt(s): {cause}")
        self.booking_id = booking_id
        self.attempts = attempts
        self.cause = cause


class BookingStore(Protocol):
    def save(self, record: BookingRecord) -> None: ...


class SqlBookingStore:
    """Writes a finished booking, its passengers and its payment in one transaction."""

    def __init__(self, db: Session):
        self.db = db

    def save(self, record: BookingRecord) -> None:
        booking = Booking(
            id=str(uuid.uuid4()),
            booking_id=record.booking_id,
            conversation_id=record.conversation_id,
            airline=record.flight.airline,
            flight_number=record.flight.flightNumber,
            route_from=record.flight.departure.airport,
            route_to=record.flight.arrival.airport,
            departure_date=record.flight.departure.date,
            flight_json=record.flight.model_dump_json(),
            passenger_count=len(record.passengers),
            total_amount=record.total_amount,
            amount_minor_units=record.amount_minor_units,
            currency=record.currency,
            payment_method=record.payment_method.value,
            status=record.status.value,
            payment_id=record.payment_id,
            transaction_id=record.transaction_id,
            booking_date=record.booking_date,
        )
        try:
            self.db.add(booking)
            for i, p in enumerate(record.passengers):
                self.db.add(Passenger(
                    id=str(uuid.uuid4()),
                    booking_id=booking.id,
                    position=i,
                    full_name=p.full_name,
                    email=p.email,
                    phone=p.phone,
                    id_number=p.id_number,
                    address=p.address,
                    emergency_contact=p.emergency_contact,
                ))
            if record.status == BookingStatus.CONFIRMED:
                self.db.add(Payment(
                    id=str(uuid.uuid4()),
                    booking_id=booking.id,
                    provider=record.provider or "sandbox",
                    method=record.payment_method.value,
                    amount_minor_units=record.amount_minor_units,
                    currency=record.currency,
                    status="paid",
                    provider_ref=record.payment_id or "",
                    transaction_id=record.transaction_id or "",
                ))
            log_audit(
                self.db, actor=record.conversation_id, action=f"booking.{record.status.value.lower()}",
                entity_type="booking", entity_id=record.booking_id,
                details={"amount": str(record.total_amount), "currency": record.currency, "paymentId": record.payment_id},
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise


def save_with_retry(
    store: BookingStore,
    record: BookingRecord,
    attempts: int = 3,
    backoff: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Save after a successful charge. Retries with exponential backoff, then gives up loudly."""
    attempts = max(1, attempts)
    last_err: Exception | None = None
    for attempt in range(attempts):
        try:
            store.save(record)
            return
        except Exception as e:
            last_err = e
            logger.warning("Saving booking %s failed (attempt %d/%d): %s", record.booking_id, attempt + 1, attempts, e)
            if attempt < attempts - 1:
                sleep(backoff * (2 ** attempt))
    raise BookingPersistenceError(record.booking_id, attempts, last_err)


def get_booking(db: Session, booking_id: str) -> tuple[Booking, list[Passenger]] | None:
    b = db.query(Booking).filter(Booking.booking_id == booking_id).first()
    if not b:
        return None
    pax = db.query(Passenger).filter(Passenger.booking_id == b.id).order_by(Passenger.position.asc()).all()
    return b, pax
