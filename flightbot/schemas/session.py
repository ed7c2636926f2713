from pydantic import BaseModel, Field
from typing import List, Optional

from flightbot.schemas.booking import (
    BookingRecord,
    CardDetails,
    CardDraft,
    PassengerDetails,
    PassengerDraft,
    PaymentMethod,
    ResolvedAmount,
)
from flightbot.schemas.chat import BotMessage
from flightbot.schemas.flight import FlightOffer, SearchParams


class BookingSession(BaseModel):
    """In-progress booking for one conversation. Stored between turns, never persisted as a booking."""

    conversation_id: str = ""
    flight: FlightOffer
    search_params: SearchParams

    passengers: List[PassengerDetails] = []
    draft: PassengerDraft = Field(default_factory=PassengerDraft)
    current_passenger_index: int = 0

    payment_method: Optional[PaymentMethod] = None
    card_draft: CardDraft = Field(default_factory=CardDraft)
    card: Optional[CardDetails] = None

    resolved_amount: Optional[ResolvedAmount] = None
    booking: Optional[BookingRecord] = None

    # driver bookkeeping
    step: int = 0  # index of the step that receives the next reply
    pending_prompt: Optional[BotMessage] = None
    restarts: int = 0

    @property
    def passenger_count(self) -> int:
        return self.search_params.passengers

    @property
    def holds_card_data(self) -> bool:
        d = self.card_draft
        return self.card is not None or any((d.number, d.expiry, d.cvv))

    @property
    def lead_passenger(self) -> Optional[PassengerDetails]:
        return self.passengers[0] if self.passengers else None
