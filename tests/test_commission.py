from decimal import Decimal

import pytest

from divebook.domain.payments.commission import (
    MoneyConversionError,
    compute_commission,
    compute_total,
    from_minor_units,
    parse_rate,
    split_settlement,
    to_minor_units,
)


def test_commission_on_whole_amount():
    assert compute_commission(Decimal("200.00"), Decimal("20")) == Decimal("40.00")


def test_commission_rounds_half_up_to_cent():
    # 12.5% of 0.20 is 0.025
    assert compute_commission(Decimal("0.20"), Decimal("12.5")) == Decimal("0.03")
    assert compute_commission(Decimal("99.99"), Decimal("15")) == Decimal("15.00")


def test_commission_bounds():
    assert compute_commission(Decimal("50.00"), Decimal("0")) == Decimal("0.00")
    assert compute_commission(Decimal("50.00"), Decimal("100")) == Decimal("50.00")
    with pytest.raises(ValueError):
        compute_commission(Decimal("50.00"), Decimal("100.01"))
    with pytest.raises(ValueError):
        compute_commission(Decimal("-1.00"), Decimal("20"))


def test_total_is_unit_price_times_participants():
    assert compute_total(Decimal("100.00"), 2) == Decimal("200.00")
    assert compute_total(Decimal("33.33"), 3) == Decimal("99.99")
    with pytest.raises(ValueError):
        compute_total(Decimal("10.00"), 0)


def test_settlement_split_agrees_with_booking_commission():
    total = compute_total(Decimal("47.35"), 3)
    fee, net = split_settlement(total, Decimal("17.5"))
    assert fee == compute_commission(total, Decimal("17.5"))
    assert fee + net == total


def test_minor_unit_conversion_is_exact():
    assert to_minor_units(Decimal("200.00")) == 20000
    assert to_minor_units(Decimal("0.01")) == 1
    assert from_minor_units(20000) == Decimal("200.00")
    assert from_minor_units(199) == Decimal("1.99")


@pytest.mark.parametrize("amount", [Decimal("10.005"), Decimal("0.001"), Decimal("NaN")])
def test_minor_unit_conversion_rejects_fractional_cents(amount):
    with pytest.raises(MoneyConversionError):
        to_minor_units(amount)


@pytest.mark.parametrize("raw, expected", [("20", Decimal("20")), (" 12.5 ", Decimal("12.5")), ("0", Decimal("0"))])
def test_parse_rate(raw, expected):
    assert parse_rate(raw) == expected


@pytest.mark.parametrize("raw", ["twenty", "", "-1", "150", "NaN"])
def test_parse_rate_rejects_malformed(raw):
    with pytest.raises(ValueError):
        parse_rate(raw)
