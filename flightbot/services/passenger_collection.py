"""Per-passenger detail collection used by the booking dialog.

Fields are collected into ``session.draft`` one at a time. A passenger only
lands in ``session.passengers`` once all six fields are stored, so the
passenger list length reaches the requested count only when everyone is
complete.
"""
from flightbot.schemas.booking import PassengerDetails, PassengerDraft
from flightbot.schemas.chat import BotMessage
from flightbot.schemas.session import BookingSession
from flightbot.services.validators import is_valid_email

PASSENGER_FIELDS = ("full_name", "email", "phone", "id_number", "address", "emergency_contact")

FIELD_PROMPTS = {
    "email": "Email for {name}:\n\nPlease enter a valid email address:",
    "phone": "Phone number for {name}:\n\nPlease enter phone number with country code (e.g., +91 9876543210):",
    "id_number": "ID/Passport for {name}:\n\nPlease enter ID/Passport number:",
    "address": "Address for {name}:\n\nPlease enter complete address:",
    "emergency_contact": "Emergency contact for {name}:\n\nPlease enter emergency contact name and phone number:",
}

FIELD_ERRORS = {
    "email": "Please enter a valid email address.",
}

# Same limits as the passengers table
FIELD_MAX_LENGTHS = {
    "full_name": 200,
    "email": 320,
    "phone": 40,
    "id_number": 80,
    "address": 500,
    "emergency_contact": 300,
}

FIELD_LABELS = {
    "full_name": "Full name",
    "email": "Email",
    "phone": "Phone number",
    "id_number": "ID/Passport number",
    "address": "Address",
    "emergency_contact": "Emergency contact",
}


class DialogStateError(RuntimeError):
    """The dialog reached a step its preconditions forbid."""


def collection_open(session: BookingSession) -> bool:
    return session.current_passenger_index < session.passenger_count


def field_prompt(session: BookingSession, field: str) -> BotMessage:
    if field == "full_name":
        n, total = session.current_passenger_index + 1, session.passenger_count
        text = f"Passenger {n} of {total}\n\nPlease enter the full name (as per ID/Passport):"
    else:
        text = FIELD_PROMPTS[field].format(name=session.draft.full_name or f"passenger {session.current_passenger_index + 1}")
    return BotMessage(kind="text", field=f"passenger.{field}", text=text)


def validate_field(field: str, value: str) -> str | None:
    """Return an error message, or None when the value can be stored."""
    # phone, ID, address and emergency contact are free text up to the column size
    limit = FIELD_MAX_LENGTHS[field]
    if len((value or "").strip()) > limit:
        return f"{FIELD_LABELS[field]} is too long. Please use at most {limit} characters."
    if field == "email" and not is_valid_email(value):
        return FIELD_ERRORS["email"]
    return None


def store_field(session: BookingSession, field: str, value: str) -> None:
    if field not in PASSENGER_FIELDS:
        raise KeyError(field)
    if not collection_open(session):
        raise DialogStateError("all passengers are already collected")
    setattr(session.draft, field, value.strip())


def commit_passenger(session: BookingSession) -> PassengerDetails:
    """Move the completed draft into the passenger list and advance the cursor."""
    missing = [f for f in PASSENGER_FIELDS if not getattr(session.draft, f)]
    if missing:
        raise DialogStateError(f"passenger {session.current_passenger_index + 1} is missing {', '.join(missing)}")
    passenger = PassengerDetails(**session.draft.model_dump())
    session.passengers.append(passenger)
    session.current_passenger_index += 1
    session.draft = PassengerDraft()
    return passenger


def ensure_complete(session: BookingSession) -> None:
    if len(session.passengers) != session.passenger_count:
        raise DialogStateError(
            f"summary needs {session.passenger_count} passenger(s), have {len(session.passengers)}"
        )
    for i, p in enumerate(session.passengers):
        empty = [f for f in PASSENGER_FIELDS if not getattr(p, f)]
        if empty:
            raise DialogStateError(f"passenger {i + 1} has empty {', '.join(empty)}")
