"""Lenient number parsing for scraped values."""

from __future__ import annotations

import math
import re
from typing import Any

_NON_DIGITS = re.compile(r"[^0-9]")


def parse_price(value: Any) -> int | None:
    """Strip every non-digit character and read what is left as an integer.

    Examples:
        "$275,000" -> 275000
        "Contact agent" -> None
        None -> None

    Never raises: non-finite floats and digit strings too long for ``int``
    give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        value = int(value)
    digits = _NON_DIGITS.sub("", str(value))
    if not digits:
        return None
    try:
        return int(digits)
    except ValueError:
        return None


def parse_float(value: Any) -> float | None:
    """Read a finite number from an int, float or string like "1,010 sqft"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    else:
        match = re.search(r"-?\d[\d,]*(?:\.\d+)?", str(value))
        if not match:
            return None
        number = float(match.group().replace(",", ""))
    return number if math.isfinite(number) else None


def parse_int(value: Any) -> int | None:
    number = parse_float(value)
    return int(number) if number is not None else None
