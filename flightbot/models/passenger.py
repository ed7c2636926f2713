from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from flightbot.db.session import Base

class Passenger(Base):
    __tablename__ = "passengers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_id: Mapped[str] = mapped_column(String(36), index=True)  # bookings.id
    position: Mapped[int] = mapped_column(Integer, default=0)  # order of collection, 0-based

    full_name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str] = mapped_column(String(320))
    phone: Mapped[str] = mapped_column(String(40))
    id_number: Mapped[str] = mapped_column(String(80))  # ID or passport, free text
    address: Mapped[str] = mapped_column(String(500))
    emergency_contact: Mapped[str] = mapped_column(String(300))  # name and phone in one string

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
