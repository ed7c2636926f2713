"""Booking conversation driver.

The dialog is a fixed waterfall of steps. Each step receives the reply to the
previous step's prompt, stores it, and either prompts again (the turn ends and
we wait for the user), moves straight on, or ends the dialog:

    init -> (name -> email -> phone -> id -> address -> emergency contact) x passengers
         -> summary -> confirm -> payment method -> (card number -> expiry -> cvv -> holder)
         -> process payment -> final confirmation

After each completed passenger the waterfall restarts from the top, carrying
the completed passengers. A reply that fails validation restarts it from the
top with nothing carried over (RetryPolicy.RESTART_DIALOG), or re-asks just
that question (RetryPolicy.REPROMPT_FIELD).

All state lives in the BookingSession handed in and returned; the dialog
object itself only holds its collaborators.
"""
import logging
import random
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from flightbot.schemas.booking import BookingRecord, CardDetails, CardDraft, PaymentMethod
from flightbot.schemas.chat import BotMessage
from flightbot.schemas.flight import FlightOffer, SearchParams
from flightbot.schemas.payments import CardIn, Customer, PaymentRequest
from flightbot.schemas.session import BookingSession
from flightbot.services.amount_resolver import (
    AmountError,
    InvalidAmountError,
    PriceParseError,
    format_amount,
    resolve_amount,
)
from flightbot.services.booking_store import BookingPersistenceError, BookingStore, save_with_retry
from flightbot.services.cards import booking_confirmation_card, booking_summary_card
from flightbot.services.passenger_collection import (
    DialogStateError,
    collection_open,
    commit_passenger,
    ensure_complete,
    field_prompt,
    store_field,
    validate_field,
)
from flightbot.services.payment_service import PaymentGateway
from flightbot.services.validators import (
    is_valid_card_number,
    is_valid_cvv,
    is_valid_expiry,
    is_valid_holder_name,
    normalize_card_number,
)

logger = logging.getLogger(__name__)

NO_FLIGHT_MESSAGE = "No flight selected. Please search and select a flight first."
CANCELLED_MESSAGE = "Booking cancelled. Thank you for using our service."

YES_WORDS = {"yes", "y", "yeah", "yep", "sure", "ok", "okay", "confirm", "proceed", "true"}
NO_WORDS = {"no", "n", "nope", "cancel", "stop", "false"}


class RetryPolicy(str, Enum):
    RESTART_DIALOG = "restart"
    REPROMPT_FIELD = "reprompt"


@dataclass
class DialogTurn:
    """What one user reply produced: outbound messages plus the session to keep (or drop)."""
    session: Optional[BookingSession]
    messages: list[BotMessage] = field(default_factory=list)
    ended: bool = False
    outcome: Optional[str] = None

    @property
    def booking(self) -> Optional[BookingRecord]:
        return self.session.booking if self.session else None

    def say(self, text: str) -> None:
        self.messages.append(BotMessage(kind="text", text=text))


# Step results
@dataclass
class Prompt:
    message: BotMessage


@dataclass
class Next:
    result: Any = None


@dataclass
class End:
    outcome: str


@dataclass
class Invalid:
    error: str


@dataclass
class Restart:
    """Start over for the next passenger, keeping the ones already collected."""


def parse_payment_choice(text: str) -> Optional[PaymentMethod]:
    t = (text or "").strip().lower()
    methods = list(PaymentMethod)
    if t.isdigit() and 1 <= int(t) <= len(methods):
        return methods[int(t) - 1]
    for m in methods:
        if t in (m.value, m.label.lower(), m.value.replace("_", " ")):
            return m
    return None


def payment_method_prompt() -> BotMessage:
    return BotMessage(
        kind="choice",
        field="payment_method",
        text="Payment Method\n\nPlease select your payment method:",
        choices=[m.label for m in PaymentMethod],
    )


class BookingDialog:
    def __init__(
        self,
        payments: PaymentGateway,
        bookings: BookingStore,
        *,
        notifier=None,
        retry_policy: RetryPolicy = RetryPolicy.RESTART_DIALOG,
        location_id: str = "",
        persistence_attempts: int = 3,
        persistence_backoff: float = 0.2,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ):
        self.payments = payments
        self.bookings = bookings
        self.notifier = notifier
        self.retry_policy = RetryPolicy(retry_policy)
        self.location_id = location_id
        self.persistence_attempts = persistence_attempts
        self.persistence_backoff = persistence_backoff
        self.now = now
        self.sleep = sleep
        self.rng = rng or random.Random()

        self._steps: list[Callable[[BookingSession, Any, DialogTurn], Any]] = [
            self._init,
            self._ask_name,
            self._passenger_step("full_name", "email"),
            self._passenger_step("email", "phone"),
            self._passenger_step("phone", "id_number"),
            self._passenger_step("id_number", "address"),
            self._passenger_step("address", "emergency_contact"),
            self._store_emergency_contact_and_summarize,
            self._ask_confirm,
            self._handle_confirm_ask_method,
            self._store_method_ask_card_number,
            self._store_card_number_ask_expiry,
            self._store_expiry_ask_cvv,
            self._store_cvv_ask_holder,
            self._store_holder_and_pay,
            self._final_confirmation,
        ]

    # -- public API --------------------------------------------------------

    def start(self, flight: FlightOffer | None, search_params: SearchParams, conversation_id: str = "") -> DialogTurn:
        if flight is None:
            turn = DialogTurn(session=None, ended=True, outcome="no_flight")
            turn.say(NO_FLIGHT_MESSAGE)
            return turn
        session = BookingSession(conversation_id=conversation_id, flight=flight, search_params=search_params)
        logger.info(
            "Booking started conversation=%s flight=%s %s passengers=%d",
            conversation_id, flight.airline, flight.flightNumber, search_params.passengers,
        )
        return self._run(DialogTurn(session=session), 0, None)

    def advance(self, session: BookingSession, reply: str) -> DialogTurn:
        prompt = session.pending_prompt
        if prompt is None:
            raise DialogStateError("no question is waiting for an answer")
        turn = DialogTurn(session=session)

        result, recognized = self._recognize(prompt, reply)
        if not recognized:
            if prompt.kind == "confirm":
                turn.say("Please answer yes or no.")
            elif prompt.kind == "choice":
                turn.say("Please choose one of: " + ", ".join(prompt.choices) + ".")
            turn.messages.append(prompt)
            return turn
        return self._run(turn, session.step, result)

    # -- machinery ---------------------------------------------------------

    @staticmethod
    def _recognize(prompt: BotMessage, reply: str) -> tuple[Any, bool]:
        text = (reply or "").strip()
        if prompt.kind == "confirm":
            word = text.lower().rstrip(".!")
            if word in YES_WORDS:
                return True, True
            if word in NO_WORDS:
                return False, True
            return None, False
        if prompt.kind == "choice":
            method = parse_payment_choice(text)
            return method, method is not None
        return text, bool(text)

    def _run(self, turn: DialogTurn, index: int, result: Any) -> DialogTurn:
        while True:
            session = turn.session
            outcome = self._steps[index](session, result, turn)

            if isinstance(outcome, Prompt):
                session.step = index + 1
                session.pending_prompt = outcome.message
                turn.messages.append(outcome.message)
                return turn

            if isinstance(outcome, Next):
                index, result = index + 1, outcome.result
                continue

            if isinstance(outcome, End):
                session.pending_prompt = None
                turn.ended, turn.outcome = True, outcome.outcome
                logger.info("Booking dialog ended conversation=%s outcome=%s", session.conversation_id, outcome.outcome)
                return turn

            if isinstance(outcome, Invalid):
                turn.say(outcome.error)
                logger.info(
                    "Invalid reply conversation=%s field=%s policy=%s",
                    session.conversation_id, session.pending_prompt.field if session.pending_prompt else None,
                    self.retry_policy.value,
                )
                if self.retry_policy == RetryPolicy.REPROMPT_FIELD:
                    turn.messages.append(session.pending_prompt)
                    return turn
                turn.session = self._restarted(session, carry_passengers=False)
                index, result = 0, None
                continue

            if isinstance(outcome, Restart):
                turn.session = self._restarted(session, carry_passengers=True)
                index, result = 0, None
                continue

            raise DialogStateError(f"step {index} returned {outcome!r}")

    @staticmethod
    def _restarted(session: BookingSession, carry_passengers: bool) -> BookingSession:
        passengers = list(session.passengers) if carry_passengers else []
        return BookingSession(
            conversation_id=session.conversation_id,
            flight=session.flight,
            search_params=session.search_params,
            passengers=passengers,
            current_passenger_index=len(passengers),
            restarts=session.restarts + 1,
        )

    # -- passenger steps ---------------------------------------------------

    def _init(self, session: BookingSession, _result, turn: DialogTurn):
        if not session.passengers:
            turn.say(
                "Starting Booking Process\n\nI'll need to collect passenger details for your booking. "
                "Let's start with the first passenger."
            )
        return Next()

    def _ask_name(self, session: BookingSession, _result, turn: DialogTurn):
        if not collection_open(session):
            return Next()
        return Prompt(field_prompt(session, "full_name"))

    def _passenger_step(self, store: str, ask: str):
        def step(session: BookingSession, result, turn: DialogTurn):
            if not collection_open(session):
                return Next()
            error = validate_field(store, result)
            if error:
                return Invalid(error)
            store_field(session, store, result)
            return Prompt(field_prompt(session, ask))

        step.__name__ = f"store_{store}_ask_{ask}"
        return step

    def _store_emergency_contact_and_summarize(self, session: BookingSession, result, turn: DialogTurn):
        if collection_open(session):
            error = validate_field("emergency_contact", result)
            if error:
                return Invalid(error)
            store_field(session, "emergency_contact", result)
            passenger = commit_passenger(session)
            if collection_open(session):
                turn.say(f"Details collected for {passenger.full_name}\n\nNow let's collect details for the next passenger.")
                return Restart()

        ensure_complete(session)
        turn.messages.append(booking_summary_card(session))
        return Next()

    # -- confirmation and payment details ----------------------------------

    def _ask_confirm(self, session: BookingSession, _result, turn: DialogTurn):
        return Prompt(BotMessage(
            kind="confirm",
            field="confirm",
            text="Please review the booking details above. Do you want to proceed with the booking?",
            choices=["Yes", "No"],
        ))

    def _handle_confirm_ask_method(self, session: BookingSession, confirmed: bool, turn: DialogTurn):
        if not confirmed:
            turn.say(CANCELLED_MESSAGE)
            return End("cancelled")
        return Prompt(payment_method_prompt())

    def _store_method_ask_card_number(self, session: BookingSession, method: PaymentMethod, turn: DialogTurn):
        session.payment_method = method
        if not method.is_card:
            return Next()
        turn.say("Secure Payment Information\n\nYour card details are only used for this payment and are never stored.")
        return Prompt(BotMessage(field="card.number", text="Card Number:\n\nEnter your card number:"))

    def _store_card_number_ask_expiry(self, session: BookingSession, result, turn: DialogTurn):
        if not session.payment_method.is_card:
            return Next()
        if not is_valid_card_number(result):
            return Invalid("Please enter a valid card number.")
        session.card_draft.number = normalize_card_number(result)
        return Prompt(BotMessage(field="card.expiry", text="Expiry Date:\n\nEnter expiry date (MM/YY format, e.g., 12/29):"))

    def _store_expiry_ask_cvv(self, session: BookingSession, result, turn: DialogTurn):
        if not session.payment_method.is_card:
            return Next()
        if not is_valid_expiry(result, self.now().date()):
            return Invalid("Please enter a valid expiry date in MM/YY format (e.g., 12/29).")
        session.card_draft.expiry = result.strip()
        return Prompt(BotMessage(field="card.cvv", text="CVV:\n\nEnter the 3 or 4 digit security code from your card:"))

    def _store_cvv_ask_holder(self, session: BookingSession, result, turn: DialogTurn):
        if not session.payment_method.is_card:
            return Next()
        if not is_valid_cvv(result):
            return Invalid("Please enter a valid 3 or 4 digit CVV.")
        session.card_draft.cvv = result.strip()
        return Prompt(BotMessage(field="card.holder_name", text="Cardholder Name:\n\nEnter name as it appears on the card:"))

    def _store_holder_and_pay(self, session: BookingSession, result, turn: DialogTurn):
        if session.payment_method.is_card:
            if not is_valid_holder_name(result):
                return Invalid("Please enter the cardholder name as it appears on the card.")
            draft = session.card_draft
            session.card = CardDetails(number=draft.number, expiry=draft.expiry, cvv=draft.cvv, holder_name=result.strip())
            session.card_draft = CardDraft()
        return self._process_payment(session, turn)

    # -- payment -----------------------------------------------------------

    def generate_booking_id(self) -> str:
        stamp = str(int(self.now().timestamp() * 1000))[-6:]
        return f"FB{stamp}{self.rng.randint(0, 999):03d}"

    def _payment_request(self, session: BookingSession, record: BookingRecord) -> PaymentRequest:
        lead = session.lead_passenger
        card = session.card
        return PaymentRequest(
            bookingId=record.booking_id,
            paymentMethod=record.payment_method,
            amount=record.amount_minor_units,
            currency=record.currency,
            card=CardIn(number=card.number, expiry=card.expiry, cvv=card.cvv, holderName=card.holder_name) if card else None,
            customer=Customer(email=lead.email, name=lead.full_name, phone=lead.phone),
            billingAddress=lead.address,
            orderNumber=record.booking_id,
            description=f"Flight booking: {session.flight.airline} {session.flight.flightNumber}".strip(),
            idempotencyKey=str(uuid.uuid4()),
            locationId=self.location_id,
        )

    def _process_payment(self, session: BookingSession, turn: DialogTurn):
        price = session.flight.price
        try:
            amount = resolve_amount(price, len(session.passengers))
        except (PriceParseError, InvalidAmountError) as e:
            logger.error("Could not price booking conversation=%s price=%r: %s", session.conversation_id, price, e)
            turn.say("There was an error calculating the flight price. Please try again.")
            return End("price_error")
        except AmountError as e:
            logger.error("Amount rejected conversation=%s price=%r: %s", session.conversation_id, price, e)
            turn.say(f"Payment processing failed: {e}.\n\nPlease try again or contact support.")
            return End("amount_rejected")

        session.resolved_amount = amount
        record = BookingRecord(
            booking_id=self.generate_booking_id(),
            conversation_id=session.conversation_id,
            flight=session.flight,
            passengers=list(session.passengers),
            search_params=session.search_params,
            total_amount=amount.amount_major_units,
            currency=amount.currency,
            amount_minor_units=amount.amount_minor_units,
            payment_method=session.payment_method,
            booking_date=self.now(),
        )
        session.booking = record
        shown = format_amount(amount.amount_major_units, amount.currency)
        turn.say(f"Processing Payment\n\nAmount: {shown}\nInitiating secure payment...")

        request = self._payment_request(session, record)
        session.card = None  # card data goes to the gateway only
        logger.info(
            "Payment request booking=%s method=%s amount=%d %s",
            record.booking_id, record.payment_method.value, record.amount_minor_units, record.currency,
        )
        try:
            result = self.payments.process_payment(request)
        except Exception:  # any gateway failure ends this attempt
            logger.exception("Payment gateway error booking=%s", record.booking_id)
            record.fail()
            turn.say(
                "Payment processing failed: we could not reach the payment provider.\n\n"
                f"Please try again or contact support with booking reference {record.booking_id}."
            )
            return End("payment_failed")

        if not result.success:
            record.fail()
            error = result.error or result.message or "Unknown payment error"
            logger.warning("Payment failed booking=%s: %s", record.booking_id, error)
            turn.say(f"Payment failed: {error}\n\nPlease verify your card details and try again.")
            return End("payment_failed")

        record.confirm(result.reference, result.transactionId, provider=result.provider or getattr(self.payments, "provider", ""))
        try:
            save_with_retry(
                self.bookings, record,
                attempts=self.persistence_attempts, backoff=self.persistence_backoff, sleep=self.sleep,
            )
        except BookingPersistenceError as e:
            logger.error(
                "MANUAL RECONCILIATION NEEDED: charged but not saved booking=%s payment=%s transaction=%s: %s",
                record.booking_id, record.payment_id, record.transaction_id, e,
            )
            turn.say(
                f"Your payment went through (transaction {record.transaction_id or record.payment_id}) "
                f"but we could not save booking {record.booking_id}. Our support team will confirm it manually; "
                "please keep this reference and do not book again."
            )
            return End("persistence_failed")

        turn.say(f"Payment successful! Your transaction ID is {result.transactionId or result.reference}.\n\nAmount charged: {shown}")
        return Next()

    def _final_confirmation(self, session: BookingSession, _result, turn: DialogTurn):
        record = session.booking
        turn.messages.append(booking_confirmation_card(record))
        if self.notifier is not None:
            try:
                self.notifier.booking_confirmed(record)
                turn.say(f"A confirmation email has been sent to {record.passengers[0].email}.")
            except Exception:
                # the booking is saved; the email can be resent from the queue
                logger.exception("Confirmation email failed booking=%s", record.booking_id)
        turn.say("Booking Completed Successfully!\n\nThank you for choosing our service. Have a great trip!")
        return End("confirmed")
