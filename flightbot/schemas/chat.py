from pydantic import BaseModel, Field
from typing import Any, List, Literal, Optional

from flightbot.schemas.flight import FlightOffer, SearchParams


class BotMessage(BaseModel):
    """One outbound message. The transport decides how to render it."""
    kind: Literal["text", "confirm", "choice", "card"] = "text"
    field: Optional[str] = None  # what the reply will be stored as, for prompts
    text: str = ""
    choices: List[str] = []
    card: Optional[dict[str, Any]] = None

    @property
    def expects_reply(self) -> bool:
        return self.field is not None


class StartBookingIn(BaseModel):
    flight: Optional[FlightOffer] = None
    searchParams: SearchParams


class ReplyIn(BaseModel):
    text: str = Field(default="", max_length=2000)


class TurnOut(BaseModel):
    conversationId: str
    messages: List[BotMessage]
    ended: bool = False
    outcome: Optional[str] = None
    bookingId: Optional[str] = None
