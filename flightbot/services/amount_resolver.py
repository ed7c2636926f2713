"""Turn a displayed flight price plus a passenger count into a gateway-ready charge.

The flight source only gives us a human string ("₹3,800", "$485", "EUR 129.99").
The currency is detected from symbols/codes, the number is pulled out of the
string, multiplied by the passenger count and converted to minor units
(cents, paise; whole units for JPY/KRW). Nothing is converted between
currencies: what was detected is what gets charged and stored.
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flightbot.schemas.booking import ResolvedAmount

DEFAULT_CURRENCY = "USD"

# Checked in this order; the first currency found anywhere in the string wins.
CURRENCY_MARKERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("INR", ("₹",)),
    ("USD", ("$",)),
    ("EUR", ("€",)),
    ("GBP", ("£",)),
    ("JPY", ("¥",)),
    ("KRW", ("₩",)),
)

CURRENCY_SYMBOLS = {code: symbols[0] for code, symbols in CURRENCY_MARKERS}

ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW"})

# Largest chargeable amount per currency, in minor units.
MAX_MINOR_UNITS = {
    "USD": 99_999_999,
    "EUR": 99_999_999,
    "GBP": 99_999_999,
    "JPY": 99_999_999,
    "INR": 999_999_999,
}
DEFAULT_MAX_MINOR_UNITS = 99_999_999

_NOT_NUMERIC = re.compile(r"[^0-9.]")
_CENTS = Decimal("0.01")
_ONE = Decimal("1")


class AmountError(ValueError):
    """Base class for every reason a price cannot become a charge."""


class PriceParseError(AmountError):
    pass


class InvalidAmountError(AmountError):
    pass


class AmountTooSmallError(AmountError):
    pass


class AmountLimitExceededError(AmountError):
    pass


def detect_currency(price: str) -> str:
    upper = (price or "").upper()
    for code, symbols in CURRENCY_MARKERS:
        if code in upper or any(sym in price for sym in symbols):
            return code
    return DEFAULT_CURRENCY


def parse_price(price: str) -> tuple[Decimal, str]:
    """Return (amount, currency) for a displayed price. Raises PriceParseError."""
    if not isinstance(price, str) or not price.strip():
        raise PriceParseError(f"could not calculate price from {price!r}")
    currency = detect_currency(price)
    cleaned = _NOT_NUMERIC.sub("", price)
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise PriceParseError(f"could not calculate price from {price!r}") from None
    if amount.is_nan() or amount == 0:
        raise PriceParseError(f"could not calculate price from {price!r}")
    return amount, currency


def to_minor_units(amount: Decimal, currency: str) -> int:
    if currency in ZERO_DECIMAL_CURRENCIES:
        return int(amount.quantize(_ONE, rounding=ROUND_HALF_UP))
    return int((amount * 100).quantize(_ONE, rounding=ROUND_HALF_UP))


def max_minor_units(currency: str) -> int:
    return MAX_MINOR_UNITS.get(currency, DEFAULT_MAX_MINOR_UNITS)


def resolve_amount(price: str, passenger_count: int) -> ResolvedAmount:
    """Price string x passengers -> ResolvedAmount. Pure: same inputs, same result."""
    base, currency = parse_price(price)
    total = base * passenger_count
    if total.is_nan() or total <= 0:
        raise InvalidAmountError(f"invalid booking amount {total} for {passenger_count} passenger(s)")

    minor = to_minor_units(total, currency)
    if minor < 1:
        raise AmountTooSmallError("payment amount too small")
    if minor > max_minor_units(currency):
        raise AmountLimitExceededError(f"payment amount exceeds maximum limit for {currency}")

    return ResolvedAmount(
        amount_major_units=total.quantize(_CENTS, rounding=ROUND_HALF_UP),
        currency=currency,
        amount_minor_units=minor,
    )


def format_amount(amount: Decimal, currency: str) -> str:
    symbol = CURRENCY_SYMBOLS.get(currency)
    value = f"{Decimal(amount).quantize(_CENTS, rounding=ROUND_HALF_UP)}"
    return f"{symbol}{value}" if symbol else f"{currency} {value}"
