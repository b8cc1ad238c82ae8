"""Decimal helpers: parsing, on-chain amount strings and display formatting."""

from decimal import ROUND_DOWN, Decimal, InvalidOperation, getcontext
from typing import Any, Union

# Decimal precision (high precision math)
getcontext().prec = 42

Number = Union[Decimal, int, float, str]


def d(x: Any) -> Decimal:
    return x if isinstance(x, Decimal) else Decimal(str(x))


def bps(x: Decimal) -> Decimal:
    return x / d(10_000)


def parse_amount(text: str) -> Decimal:
    """Parse a user-supplied amount; `1_000` style grouping is allowed."""
    try:
        value = Decimal(str(text).strip().replace("_", ""))
    except InvalidOperation:
        raise ValueError(f"not a number: {text!r}")
    if not value.is_finite():
        raise ValueError(f"not a finite number: {text!r}")
    return value


def parse_positive_amount(text: str) -> Decimal:
    value = parse_amount(text)
    if value <= 0:
        raise ValueError("amount must be a positive number")
    return value


def round_down(value: Decimal, decimals: int = 8) -> Decimal:
    return d(value).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_DOWN)


def _plain(value: Decimal) -> str:
    """Fixed-point text without trailing zeros or exponent."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


def normalise_amount(value: Number) -> str:
    """Amount string for on-chain payloads: plain decimal, no trailing zeros."""
    return _plain(d(value))


def format_amount(value: Number, max_decimals: int = 8) -> str:
    v = d(value)
    if not v.is_finite():
        return str(v)
    return _plain(round_down(v, max_decimals))


def min_amount_out(quoted: Number, slippage_bps: int, decimals: int = 8) -> Decimal:
    """quoted * (1 - slippage), rounded down to `decimals` places."""
    multiplier = d(1) - bps(d(slippage_bps))
    return round_down(d(quoted) * multiplier, decimals)


def format_number(value: Any, decimals_large: int = 2, decimals_small: int = 6) -> str:
    """Grouped display: big values get few decimals, small ones get more."""
    try:
        v = d(value)
    except (InvalidOperation, ValueError):
        return str(value)
    if not v.is_finite():
        return str(value)
    if v.is_zero():
        return "0"
    places = decimals_large if abs(v) >= 1 else decimals_small
    return f"{v.quantize(Decimal(1).scaleb(-places)):,.{places}f}"


def format_usd(value: Any) -> str:
    return f"${format_number(value, 2, 4)}"


def format_fee(value: Any) -> str:
    try:
        return _plain(d(value))
    except (InvalidOperation, ValueError):
        return str(value)
