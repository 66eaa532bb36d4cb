"""Locale-aware number parsing for Bulgarian receipt amounts."""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class NumberFormat:
    """How a retailer prints amounts on its receipts."""

    decimal_separator: str = ","
    thousands_separator: str = " "
    currency_symbol: str = "лв"
    currency_position: str = "after"  # "before" | "after"


BGN_FORMAT = NumberFormat()
EUR_FORMAT = NumberFormat(
    decimal_separator=".",
    thousands_separator=" ",
    currency_symbol="€",
    currency_position="after",
)

# Currency markers OCR commonly leaves next to an amount
_CURRENCY_TOKENS = re.compile(r"(?i)лв\.?|bgn|eur|€|\$")

# Digits separated by spaces, e.g. "1 234,56" or "12 345"
_SPACED_DIGITS = re.compile(r"(?<=\d)[ \u00a0]+(?=\d)")

_DECIMAL_TAIL = re.compile(r"[.,]\d{1,2}$")
_THOUSANDS_TAIL = re.compile(r"[.,]\d{3}$")

# Weight/count quantities: "2.000", "1,020", "3"
_QUANTITY = re.compile(r"^\s*(\d+)(?:[.,](\d+))?\s*$")


def parse_number(raw: str, fmt: NumberFormat = BGN_FORMAT) -> float:
    """Parse a printed amount into a float.

    Strips currency markers and disambiguates decimal vs. thousands
    separators. A separator followed by 1-2 digits at the end is decimal;
    one followed by exactly 3 digits is a thousands separator, unless a
    space precedes it (OCR noise). Returns 0.0 for anything unparseable.
    """
    if not raw:
        return 0.0

    cleaned = _CURRENCY_TOKENS.sub("", raw)
    if fmt.currency_symbol:
        cleaned = cleaned.replace(fmt.currency_symbol, "")
    cleaned = cleaned.strip()

    sign = ""
    if cleaned.startswith("-"):
        sign = "-"
        cleaned = cleaned[1:].strip()

    # A space right before the last separator means the separator is a
    # decimal point that OCR split off ("12 ,50" / "1 234 ,567").
    space_before_sep = bool(re.search(r"\s[.,]\d+$", cleaned))
    cleaned = re.sub(r"\s+(?=[.,]\d+$)", "", cleaned)
    cleaned = _SPACED_DIGITS.sub("", cleaned)

    has_comma = "," in cleaned
    has_dot = "." in cleaned

    if has_comma and has_dot:
        # The right-most separator is the decimal one
        decimal = "," if cleaned.rfind(",") > cleaned.rfind(".") else "."
        thousands = "." if decimal == "," else ","
        cleaned = cleaned.replace(thousands, "").replace(decimal, ".")
    elif has_comma or has_dot:
        sep = "," if has_comma else "."
        if cleaned.count(sep) > 1:
            # "1.234.567" or "1,234,56": all but the last are thousands
            head, _, tail = cleaned.rpartition(sep)
            head = head.replace(sep, "")
            if len(tail) == 3 and not space_before_sep and _is_thousands(sep, fmt):
                cleaned = head + tail
            else:
                cleaned = f"{head}.{tail}"
        elif _DECIMAL_TAIL.search(cleaned):
            cleaned = cleaned.replace(sep, ".")
        elif (
            _THOUSANDS_TAIL.search(cleaned)
            and not space_before_sep
            and _is_thousands(sep, fmt)
        ):
            cleaned = cleaned.replace(sep, "")
        else:
            cleaned = cleaned.replace(sep, ".")

    try:
        return float(sign + cleaned)
    except ValueError:
        return 0.0


def _is_thousands(sep: str, fmt: NumberFormat) -> bool:
    """Whether a 3-digit group after ``sep`` should be read as thousands."""
    if sep == fmt.decimal_separator:
        # Bulgarian receipts print "1,234" for 1234 far more often than a
        # three-decimal price, so a comma-decimal format still accepts it.
        return sep == ","
    return True


def format_number(
    value: float, fmt: NumberFormat = BGN_FORMAT, with_currency: bool = True
) -> str:
    """Render an amount the way ``fmt`` prints it, e.g. ``1 234,50 лв``."""
    sign = "-" if value < 0 else ""
    whole, _, cents = f"{abs(value):.2f}".partition(".")

    groups: list[str] = []
    while len(whole) > 3:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    groups.insert(0, whole)

    number = f"{sign}{fmt.thousands_separator.join(groups)}{fmt.decimal_separator}{cents}"
    if not with_currency or not fmt.currency_symbol:
        return number
    if fmt.currency_position == "before":
        return f"{fmt.currency_symbol}{number}"
    return f"{number} {fmt.currency_symbol}"


def parse_quantity(raw: str) -> float:
    """Parse a printed quantity such as ``2.000`` (kg/pcs) or ``1,020``.

    Unlike prices, a 3-digit fraction is a weight in kilograms, never a
    thousands group. Returns 1.0 if unparseable.
    """
    m = _QUANTITY.match(raw or "")
    if not m:
        return 1.0
    whole, frac = m.group(1), m.group(2)
    value = float(f"{whole}.{frac}") if frac else float(whole)
    return value if value > 0 else 1.0
