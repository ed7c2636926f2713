from decimal import Decimal

from flightbot.schemas.booking import BookingRecord
from flightbot.schemas.chat import BotMessage
from flightbot.schemas.session import BookingSession
from flightbot.services.amount_resolver import AmountError, format_amount, resolve_amount


def _fact(title: str, value) -> dict:
    return {"title": title, "value": "" if value is None else str(value)}


def _flight_facts(flight) -> list[dict]:
    return [
        _fact("Flight", f"{flight.airline} {flight.flightNumber}".strip()),
        _fact("Route", f"{flight.departure.airport} → {flight.arrival.airport}"),
        _fact("Departure", f"{flight.departure.time} on {flight.departure.date}"),
        _fact("Arrival", f"{flight.arrival.time} on {flight.arrival.date}"),
        _fact("Duration", flight.duration),
    ]


def booking_summary_card(session: BookingSession) -> BotMessage:
    flight = session.flight
    try:
        preview = resolve_amount(flight.price, len(session.passengers))
        total = format_amount(preview.amount_major_units, preview.currency)
    except AmountError:
        total = "to be confirmed"
    card = {
        "type": "booking_summary",
        "title": "Booking Summary",
        "sections": [
            {"title": "Flight Details", "facts": _flight_facts(flight)},
            {
                "title": "Passenger Details",
                "facts": [_fact(f"Passenger {i + 1}", f"{p.full_name} ({p.email})") for i, p in enumerate(session.passengers)],
            },
            {
                "title": "Payment Details",
                "facts": [
                    _fact("Base Price", flight.price),
                    _fact("Passengers", len(session.passengers)),
                    _fact("Total Amount", total),
                ],
            },
        ],
    }
    return BotMessage(kind="card", text="Booking Summary", card=card)


def booking_confirmation_card(record: BookingRecord) -> BotMessage:
    card = {
        "type": "booking_confirmation",
        "title": "Booking Confirmed!",
        "sections": [
            {
                "title": "Booking",
                "facts": [
                    _fact("Booking ID", record.booking_id),
                    _fact("Payment ID", record.payment_id),
                    _fact("Status", record.status.value),
                    _fact("Total Paid", format_amount(Decimal(record.total_amount), record.currency)),
                    _fact("Booking Date", record.booking_date.date().isoformat()),
                ],
            },
            {"title": "Flight", "facts": _flight_facts(record.flight)},
        ],
        "note": "Please carry a valid ID/Passport for travel. Check-in online 24 hours before departure.",
    }
    return BotMessage(kind="card", text="Booking Confirmed!", card=card)
