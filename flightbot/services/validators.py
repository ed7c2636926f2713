import re
from datetime import date

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EXPIRY_RE = re.compile(r"^(0[1-9]|1[0-2])/([0-9]{2})$")
CVV_RE = re.compile(r"^\d{3,4}$")
CARD_RE = re.compile(r"^\d{13,19}$")


def is_valid_email(value: str) -> bool:
    return bool(value) and bool(EMAIL_RE.match(value.strip()))


def normalize_card_number(value: str) -> str:
    return re.sub(r"[\s-]", "", value or "")


def luhn_check(digits: str) -> bool:
    total = 0
    for i, ch in enumerate(reversed(digits)):
        d = int(ch)
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return total % 10 == 0


def is_valid_card_number(value: str) -> bool:
    number = normalize_card_number(value)
    return bool(CARD_RE.match(number)) and luhn_check(number)


def is_valid_expiry(value: str, today: date | None = None) -> bool:
    """MM/YY, and the card must still be valid this month."""
    m = EXPIRY_RE.match((value or "").strip())
    if not m:
        return False
    today = today or date.today()
    month, year = int(m.group(1)), int(m.group(2))
    current_year = today.year % 100
    if year < current_year or (year == current_year and month < today.month):
        return False
    return True


def is_valid_cvv(value: str) -> bool:
    return bool(CVV_RE.match((value or "").strip()))


def is_valid_holder_name(value: str) -> bool:
    return len((value or "").strip()) >= 2
