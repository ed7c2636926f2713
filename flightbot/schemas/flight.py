from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


# Lengths match the bookings table columns these values are copied into
class FlightEndpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    airport: str = Field(default="", max_length=120)
    time: str = ""
    date: str = Field(default="", max_length=40)


class FlightOffer(BaseModel):
    """Flight offer as handed over by the search side. `price` is a display string, e.g. "₹3,800" or "$485"."""
    model_config = ConfigDict(frozen=True, extra="allow")

    airline: str = Field(default="", max_length=120)
    flightNumber: str = Field(default="", max_length=20)
    price: str
    departure: FlightEndpoint = Field(default_factory=FlightEndpoint)
    arrival: FlightEndpoint = Field(default_factory=FlightEndpoint)
    duration: str = ""


class SearchParams(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    passengers: int = Field(ge=1, le=9)
    origin: Optional[str] = None
    destination: Optional[str] = None
    departureDate: Optional[str] = None
    returnDate: Optional[str] = None
    travelClass: str = "economy"
