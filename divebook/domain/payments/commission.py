"""Money arithmetic for bookings and settlements.

All amounts are ``Decimal`` in major currency units with two fractional
digits. Commission is rounded half-up to the cent in exactly one place,
``compute_commission``, which both booking creation and webhook settlement
call so the two paths agree to the cent for the same gross amount.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
HUNDRED = Decimal(100)
DEFAULT_COMMISSION_RATE = Decimal(20)


class MoneyConversionError(ValueError):
    pass


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_rate(raw: str) -> Decimal:
    try:
        rate = Decimal(raw.strip())
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"Invalid commission rate: {raw!r}") from exc
    if not rate.is_finite() or rate < 0 or rate > HUNDRED:
        raise ValueError(f"Commission rate out of range: {raw!r}")
    return rate


def compute_total(unit_price: Decimal, participants: int) -> Decimal:
    if unit_price < 0:
        raise ValueError("unit_price must not be negative")
    if participants < 1:
        raise ValueError("participants must be at least 1")
    return quantize_money(unit_price * participants)


def compute_commission(total_price: Decimal, rate_percent: Decimal) -> Decimal:
    if total_price < 0:
        raise ValueError("total_price must not be negative")
    if rate_percent < 0 or rate_percent > HUNDRED:
        raise ValueError("rate_percent must be between 0 and 100")
    return quantize_money(total_price * rate_percent / HUNDRED)


def split_settlement(gross: Decimal, rate_percent: Decimal) -> tuple[Decimal, Decimal]:
    """Return ``(platform_fee, vendor_amount)`` for a settled gross amount."""
    platform_fee = compute_commission(gross, rate_percent)
    return platform_fee, quantize_money(gross - platform_fee)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to integer cents, refusing fractional cents."""
    try:
        scaled = Decimal(amount) * HUNDRED
    except InvalidOperation as exc:
        raise MoneyConversionError(f"Invalid amount: {amount!r}") from exc
    if not scaled.is_finite() or scaled != scaled.to_integral_value():
        raise MoneyConversionError(f"Amount {amount} is not representable in whole cents")
    return int(scaled)


def from_minor_units(cents: int) -> Decimal:
    return quantize_money(Decimal(int(cents)) / HUNDRED)
