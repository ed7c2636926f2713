import smtplib
from decimal import Decimal

from conftest import NOW, PASSENGERS, make_flight, search

from flightbot.models.email_log import EmailLog
from flightbot.schemas.booking import BookingRecord, PassengerDetails, PaymentMethod
from flightbot.services import email_service
from flightbot.services.email_service import EmailNotifier, confirmation_email_body, process_pending_emails, queue_email
from flightbot.services.passenger_collection import PASSENGER_FIELDS
from flightbot.tasks.worker_jobs import process_email_queue


def confirmed_record() -> BookingRecord:
    record = BookingRecord(
        booking_id="FB000123456",
        conversation_id="conv-1",
        flight=make_flight(),
        passengers=[PassengerDetails(**dict(zip(PASSENGER_FIELDS, PASSENGERS[0])))],
        search_params=search(1),
        total_amount=Decimal("485.00"),
        currency="USD",
        amount_minor_units=48500,
        payment_method=PaymentMethod.PAYPAL,
        booking_date=NOW,
    )
    record.confirm("pay_1", "txn_1")
    return record


def test_queue_email_sends_immediately(db_session, monkeypatch):
    sent = []
    monkeypatch.setattr(email_service, "send_email", lambda to, subject, body: sent.append(to))
    eid = queue_email(db_session, "jane@example.com", "Hi", "Body")

    log = db_session.get(EmailLog, eid)
    assert log.status == "sent"
    assert log.attempts == 1
    assert sent == ["jane@example.com"]


def test_failed_send_is_retried_by_the_worker(db_session, monkeypatch):
    def broken(to, subject, body):
        raise smtplib.SMTPException("relay down")

    monkeypatch.setattr(email_service, "send_email", broken)
    eid = queue_email(db_session, "jane@example.com", "Hi", "Body")
    assert db_session.get(EmailLog, eid).status == "failed"

    monkeypatch.setattr(email_service, "send_email", lambda to, subject, body: None)
    assert process_pending_emails(db_session) == {"processed": 1, "sent": 1, "failed": 0}
    log = db_session.get(EmailLog, eid)
    assert log.status == "sent"
    assert log.attempts == 2


def test_worker_stops_after_max_attempts(db_session, monkeypatch):
    def broken(to, subject, body):
        raise OSError("connection refused")

    monkeypatch.setattr(email_service, "send_email", broken)
    queue_email(db_session, "jane@example.com", "Hi", "Body")
    for _ in range(email_service.MAX_SEND_ATTEMPTS):
        process_pending_emails(db_session)
    assert process_pending_emails(db_session)["processed"] == 0


def test_worker_job_uses_its_own_session(db_session, monkeypatch):
    monkeypatch.setattr(email_service, "send_email", lambda to, subject, body: None)
    assert process_email_queue(limit=10, session_factory=lambda: db_session) == {"processed": 0, "sent": 0, "failed": 0}


def test_notifier_emails_the_lead_passenger(db_session, monkeypatch):
    sent = []
    monkeypatch.setattr(email_service, "send_email", lambda to, subject, body: sent.append((to, subject, body)))
    EmailNotifier(db_session).booking_confirmed(confirmed_record())

    ((to, subject, body),) = sent
    assert to == "jane@example.com"
    assert subject == "Booking confirmed: FB000123456"
    assert "Total paid: $485.00" in body


def test_confirmation_body_lists_flight_and_passengers():
    body = confirmation_email_body(confirmed_record())
    assert "Your booking FB000123456 is CONFIRMED." in body
    assert "Route: DEL -> BOM" in body
    assert "  1. Jane Doe" in body
