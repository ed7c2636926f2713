from decimal import Decimal
from sqlalchemy import String, Integer, BigInteger, DateTime, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from flightbot.db.session import Base

class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_id: Mapped[str] = mapped_column(String(20), unique=True, index=True)  # customer-facing, e.g. FB123456789
    conversation_id: Mapped[str] = mapped_column(String(120), index=True, default="")

    airline: Mapped[str] = mapped_column(String(120), default="")
    flight_number: Mapped[str] = mapped_column(String(20), default="")
    route_from: Mapped[str] = mapped_column(String(120), default="")
    route_to: Mapped[str] = mapped_column(String(120), default="")
    departure_date: Mapped[str] = mapped_column(String(40), default="")  # as supplied by the flight source
    flight_json: Mapped[str] = mapped_column(Text, default="{}")

    passenger_count: Mapped[int] = mapped_column(Integer, default=1)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    amount_minor_units: Mapped[int] = mapped_column(BigInteger)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    payment_method: Mapped[str] = mapped_column(String(20), default="credit_card")

    status: Mapped[str] = mapped_column(String(30), default="PENDING_PAYMENT")  # PENDING_PAYMENT, CONFIRMED, CANCELLED, FAILED
    payment_id: Mapped[str] = mapped_column(String(120), nullable=True)
    transaction_id: Mapped[str] = mapped_column(String(120), nullable=True)

    booking_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
