from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal('0.01')


def utc_now():
    return datetime.now(timezone.utc)


def utc_now_iso():
    return utc_now().isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_iso(value):
    """Parse the timestamps written by utc_now_iso (and plain ISO dates)."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


def to_decimal(value):
    return Decimal(str(value or 0))


def to_money(value):
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_float(value):
    return float(to_money(value))
