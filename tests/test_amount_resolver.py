from decimal import Decimal

import pytest

from flightbot.services.amount_resolver import (
    AmountLimitExceededError,
    AmountTooSmallError,
    InvalidAmountError,
    PriceParseError,
    detect_currency,
    format_amount,
    parse_price,
    resolve_amount,
)


@pytest.mark.parametrize(
    "price,currency",
    [
        ("₹3,800", "INR"),
        ("INR 3800", "INR"),
        ("$485", "USD"),
        ("485 usd", "USD"),
        ("€129.99", "EUR"),
        ("EUR 129.99", "EUR"),
        ("£99", "GBP"),
        ("¥12,000", "JPY"),
        ("₩150,000", "KRW"),
        ("485", "USD"),
    ],
)
def test_detect_currency(price, currency):
    assert detect_currency(price) == currency


def test_first_currency_in_priority_order_wins():
    assert detect_currency("$100 (₹8,300)") == "INR"
    assert detect_currency("€90 / $100") == "USD"


def test_rupee_price_for_two_passengers():
    amount = resolve_amount("₹3,800", 2)
    assert amount.amount_major_units == Decimal("7600.00")
    assert amount.amount_minor_units == 760000
    assert amount.currency == "INR"


def test_dollar_price_single_passenger():
    amount = resolve_amount("$485", 1)
    assert amount.amount_minor_units == 48500
    assert amount.currency == "USD"


def test_minor_units_round_half_up():
    amount = resolve_amount("$1.005", 1)
    assert amount.amount_minor_units == 101
    assert amount.amount_major_units == Decimal("1.01")


def test_cents_survive_multiplication():
    amount = resolve_amount("EUR 129.99", 3)
    assert amount.amount_major_units == Decimal("389.97")
    assert amount.amount_minor_units == 38997


def test_zero_decimal_currency_is_charged_in_whole_units():
    amount = resolve_amount("¥12,000", 2)
    assert amount.currency == "JPY"
    assert amount.amount_minor_units == 24000


def test_resolution_is_deterministic():
    assert resolve_amount("₹3,800", 3) == resolve_amount("₹3,800", 3)


@pytest.mark.parametrize("price", ["", "   ", "Price on request", "$", "...", "₹0", "$0.00"])
def test_unparseable_prices(price):
    with pytest.raises(PriceParseError):
        resolve_amount(price, 1)


@pytest.mark.parametrize("count", [0, -1])
def test_non_positive_passenger_count(count):
    with pytest.raises(InvalidAmountError):
        resolve_amount("$485", count)


def test_amount_below_one_minor_unit():
    with pytest.raises(AmountTooSmallError):
        resolve_amount("$0.004", 1)


def test_amount_above_currency_limit():
    with pytest.raises(AmountLimitExceededError):
        resolve_amount("$999,999.99", 2)


def test_rupee_limit_is_higher_than_dollar_limit():
    assert resolve_amount("₹5,000,000", 1).amount_minor_units == 500000000
    with pytest.raises(AmountLimitExceededError):
        resolve_amount("$5,000,000", 1)


def test_parse_price_keeps_decimal_places():
    assert parse_price("£1,234.50") == (Decimal("1234.50"), "GBP")


def test_format_amount():
    assert format_amount(Decimal("7600"), "INR") == "₹7600.00"
    assert format_amount(Decimal("389.97"), "EUR") == "€389.97"
    assert format_amount(Decimal("10"), "CHF") == "CHF 10.00"


def test_rupee_symbol_beats_a_trailing_dollar_code():
    amount = resolve_amount("₹3,800 USD", 1)
    assert amount.currency == "INR"
    assert resolve_amount("$1,200", 1).amount_major_units == Decimal("1200.00")


def test_three_passengers_at_485():
    assert resolve_amount("$485.00", 3).amount_major_units == Decimal("1455.00")


def test_fractional_totals_round_to_nearest_minor_unit():
    assert resolve_amount("$19.999", 1).amount_minor_units == 2000
    assert resolve_amount("¥1500.7", 1).amount_minor_units == 1501


def test_exactly_one_over_the_dollar_limit():
    with pytest.raises(AmountLimitExceededError):
        resolve_amount("$1,000,000", 1)
    assert resolve_amount("$999,999.99", 1).amount_minor_units == 99_999_999
