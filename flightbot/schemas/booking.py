from datetime import datetime
from decimal import Decimal
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from flightbot.schemas.flight import FlightOffer, SearchParams


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    APPLE_PAY = "apple_pay"

    @property
    def label(self) -> str:
        return PAYMENT_METHOD_LABELS[self]

    @property
    def is_card(self) -> bool:
        return self in (PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD)


PAYMENT_METHOD_LABELS = {
    PaymentMethod.CREDIT_CARD: "Credit Card",
    PaymentMethod.DEBIT_CARD: "Debit Card",
    PaymentMethod.PAYPAL: "PayPal",
    PaymentMethod.APPLE_PAY: "Apple Pay",
}


class PassengerDetails(BaseModel):
    # max lengths match the passengers table columns
    full_name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=1, max_length=320)
    phone: str = Field(min_length=1, max_length=40)
    id_number: str = Field(min_length=1, max_length=80)
    address: str = Field(min_length=1, max_length=500)
    emergency_contact: str = Field(min_length=1, max_length=300)


class PassengerDraft(BaseModel):
    """Passenger currently being collected; never visible outside the collection loop."""
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    id_number: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None


class CardDetails(BaseModel):
    number: str
    expiry: str  # MM/YY
    cvv: str
    holder_name: str

    @property
    def expiry_month(self) -> str:
        return self.expiry.split("/")[0]

    @property
    def expiry_year(self) -> str:
        return "20" + self.expiry.split("/")[1]


class CardDraft(BaseModel):
    number: Optional[str] = None
    expiry: Optional[str] = None
    cvv: Optional[str] = None


class ResolvedAmount(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount_major_units: Decimal
    currency: str
    amount_minor_units: int


class BookingStatus(str, Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING_PAYMENT: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.FAILED},
}


class InvalidStatusTransition(ValueError):
    pass


class BookingRecord(BaseModel):
    booking_id: str
    conversation_id: str = ""
    flight: FlightOffer
    passengers: List[PassengerDetails]
    search_params: SearchParams
    total_amount: Decimal
    currency: str
    amount_minor_units: int
    payment_method: PaymentMethod
    status: BookingStatus = BookingStatus.PENDING_PAYMENT
    payment_id: Optional[str] = None
    transaction_id: Optional[str] = None
    provider: str = ""
    booking_date: datetime

    def transition(self, to: BookingStatus) -> None:
        if to not in ALLOWED_TRANSITIONS.get(self.status, set()):
            raise InvalidStatusTransition(f"cannot move booking {self.booking_id} from {self.status.value} to {to.value}")
        self.status = to

    def confirm(self, payment_id: str | None, transaction_id: str | None, provider: str = "") -> None:
        self.transition(BookingStatus.CONFIRMED)
        self.payment_id = payment_id
        self.transaction_id = transaction_id
        self.provider = provider

    def fail(self) -> None:
        self.transition(BookingStatus.FAILED)

    def cancel(self) -> None:
        self.transition(BookingStatus.CANCELLED)


class PassengerOut(BaseModel):
    fullName: str
    email: str
    phone: str


class BookingOut(BaseModel):
    bookingId: str
    status: str
    airline: str = ""
    flightNumber: str = ""
    routeFrom: str = ""
    routeTo: str = ""
    departureDate: str = ""
    passengerCount: int
    totalAmount: str
    currency: str
    paymentMethod: str
    paymentId: Optional[str] = None
    transactionId: Optional[str] = None
    bookingDate: Optional[str] = None
    passengers: List[PassengerOut] = []
