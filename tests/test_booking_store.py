import json
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from conftest import NOW, PASSENGERS, RecordingStore, make_flight, search
from flightbot.models.audit_log import AuditLog
from flightbot.models.booking import Booking
from flightbot.models.payment import Payment
from flightbot.schemas.booking import BookingRecord, BookingStatus, InvalidStatusTransition, PassengerDetails, PaymentMethod
from flightbot.services.booking_store import BookingPersistenceError, SqlBookingStore, get_booking, save_with_retry
from flightbot.services.passenger_collection import PASSENGER_FIELDS


def make_record(count=2, booking_id="FB000123456") -> BookingRecord:
    return BookingRecord(
        booking_id=booking_id,
        conversation_id="conv-1",
        flight=make_flight(price="₹3,800"),
        passengers=[PassengerDetails(**dict(zip(PASSENGER_FIELDS, p))) for p in PASSENGERS[:count]],
        search_params=search(count),
        total_amount=Decimal("7600.00"),
        currency="INR",
        amount_minor_units=760000,
        payment_method=PaymentMethod.CREDIT_CARD,
        booking_date=NOW,
    )


def test_status_transitions():
    record = make_record()
    record.confirm("pay_1", "txn_1", provider="sandbox")
    assert record.status == BookingStatus.CONFIRMED
    with pytest.raises(InvalidStatusTransition):
        record.cancel()

    failed = make_record()
    failed.fail()
    with pytest.raises(InvalidStatusTransition):
        failed.confirm("pay_2", "txn_2")


def test_confirmed_booking_is_written_with_passengers_payment_and_audit(db_session):
    record = make_record()
    record.confirm("pay_1", "txn_1", provider="sandbox")
    SqlBookingStore(db_session).save(record)

    booking, passengers = get_booking(db_session, "FB000123456")
    assert booking.status == "CONFIRMED"
    assert booking.total_amount == Decimal("7600.00")
    assert booking.amount_minor_units == 760000
    assert booking.currency == "INR"
    assert booking.route_from == "DEL" and booking.route_to == "BOM"
    assert json.loads(booking.flight_json)["price"] == "₹3,800"
    assert [p.full_name for p in passengers] == ["Jane Doe", "Max Roe"]

    payment = db_session.query(Payment).filter(Payment.booking_id == booking.id).one()
    assert payment.provider_ref == "pay_1"
    assert payment.amount_minor_units == 760000

    audit = db_session.query(AuditLog).filter(AuditLog.entity_id == "FB000123456").one()
    assert audit.action == "booking.confirmed"


def test_failed_booking_has_no_payment_row(db_session):
    record = make_record(count=1, booking_id="FB000999999")
    record.fail()
    SqlBookingStore(db_session).save(record)
    assert db_session.query(Payment).count() == 0
    assert db_session.query(Booking).one().status == "FAILED"


def test_duplicate_booking_id_rolls_back(db_session):
    record = make_record(count=1)
    store = SqlBookingStore(db_session)
    store.save(record)
    with pytest.raises(IntegrityError):
        store.save(record)
    assert db_session.query(Booking).count() == 1


def test_unknown_booking():
    db = MagicMock()
    db.query.return_value.filter.return_value.first.return_value = None
    assert get_booking(db, "FB404") is None


def test_save_with_retry_backs_off_between_attempts():
    store = RecordingStore(fail_times=2)
    waits = []
    save_with_retry(store, make_record(), attempts=3, backoff=0.5, sleep=waits.append)
    assert store.calls == 3
    assert waits == [0.5, 1.0]


def test_save_with_retry_gives_up():
    store = MagicMock()
    store.save.side_effect = OperationalError("INSERT", {}, Exception("db down"))
    with pytest.raises(BookingPersistenceError) as exc:
        save_with_retry(store, make_record(), attempts=2, backoff=0, sleep=lambda s: None)
    assert exc.value.booking_id == "FB000123456"
    assert exc.value.attempts == 2
    assert store.save.call_count == 2
