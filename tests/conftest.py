import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_BACKEND"] = "memory"
os.environ["PAYMENT_SANDBOX"] = "true"
os.environ["SEND_CONFIRMATION_EMAIL"] = "false"

import random
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from flightbot.db.session import Base
from flightbot.models.audit_log import AuditLog  # noqa: F401
from flightbot.models.booking import Booking  # noqa: F401
from flightbot.models.email_log import EmailLog  # noqa: F401
from flightbot.models.passenger import Passenger  # noqa: F401
from flightbot.models.payment import Payment  # noqa: F401
from flightbot.schemas.flight import FlightOffer, SearchParams
from flightbot.services.booking_dialog import BookingDialog, RetryPolicy
from flightbot.services.payment_service import SandboxPaymentGateway

NOW = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)
VISA = "4111 1111 1111 1111"

PASSENGERS = [
    ["Jane Doe", "jane@example.com", "+1 555 0100", "P1234567", "1 Main St, Springfield", "John Doe +1 555 0101"],
    ["Max Roe", "max@example.com", "+44 20 7946 0000", "X7654321", "2 High St, London", "Ann Roe +44 20 7946 0001"],
    ["Li Wei", "li@example.com", "+86 10 1234 5678", "E9988776", "3 Ring Rd, Beijing", "Wu Wei +86 10 1234 5679"],
]
CARD_REPLIES = [VISA, "12/29", "123", "Jane Doe"]


def make_flight(price: str = "$485", **kw) -> FlightOffer:
    data = {
        "airline": "IndiGo",
        "flightNumber": "6E 204",
        "price": price,
        "departure": {"airport": "DEL", "time": "06:10", "date": "2026-11-02"},
        "arrival": {"airport": "BOM", "time": "08:25", "date": "2026-11-02"},
        "duration": "2h 15m",
    }
    data.update(kw)
    return FlightOffer(**data)


class RecordingStore:
    def __init__(self, fail_times: int = 0):
        self.saved = []
        self.calls = 0
        self.fail_times = fail_times

    def save(self, record):
        self.calls += 1
        if self.calls <= self.fail_times:
            raise RuntimeError("database is down")
        self.saved.append(record.model_copy(deep=True))


class RecordingGateway:
    provider = "fake"

    def __init__(self, result=None, error: Exception | None = None):
        self.requests = []
        self.result = result
        self.error = error

    def process_payment(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.result


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def booking_confirmed(self, record):
        self.sent.append(record.booking_id)


@pytest.fixture
def flight():
    return make_flight()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def gateway():
    return SandboxPaymentGateway(today=lambda: date(2026, 10, 16))


def build_dialog(gateway, store, policy=RetryPolicy.RESTART_DIALOG, **kw) -> BookingDialog:
    return BookingDialog(
        gateway,
        store,
        retry_policy=policy,
        now=lambda: NOW,
        sleep=lambda s: None,
        rng=random.Random(7),
        **kw,
    )


@pytest.fixture
def dialog(gateway, store):
    return build_dialog(gateway, store)


def search(passengers: int = 1) -> SearchParams:
    return SearchParams(passengers=passengers, origin="DEL", destination="BOM", departureDate="2026-11-02")


def play(dialog, turn, replies):
    """Feed replies one by one; returns the last turn and every message seen."""
    seen = list(turn.messages)
    for text in replies:
        assert not turn.ended, f"dialog ended early before reply {text!r}"
        turn = dialog.advance(turn.session, text)
        seen.extend(turn.messages)
    return turn, seen


@pytest.fixture
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(engine)
        engine.dispose()
