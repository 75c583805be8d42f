"""Conversion of displayed currency amounts into integer base units."""

from __future__ import annotations

import re

ETHER_DECIMALS = 18

_DECIMAL_RE = re.compile(r"^(?P<whole>[0-9]*)(?:\.(?P<fraction>[0-9]*))?$")


def parse_units(value: str, decimals: int = ETHER_DECIMALS) -> int:
    """Convert a decimal display string such as ``"1.5"`` into base units.

    The conversion is exact: ``value`` may carry at most ``decimals``
    fractional digits. An empty string parses as zero.
    """

    text = value.strip()
    if not text:
        return 0
    match = _DECIMAL_RE.match(text)
    if match is None or text == ".":
        raise ValueError(f"invalid decimal amount: {value!r}")
    whole = match.group("whole") or "0"
    fraction = (match.group("fraction") or "").rstrip("0")
    if len(fraction) > decimals:
        raise ValueError(f"{value!r} has more than {decimals} fractional digits")
    return int(whole) * 10**decimals + int(fraction.ljust(decimals, "0") or "0")


def parse_amount(text: str, unit: str, decimals: int = ETHER_DECIMALS) -> str:
    """Extract ``<number> <unit>`` from free text and return base units as a string.

    Thousands may be grouped with commas (``"1,234.5 BNB"``). Text without a
    recognisable amount yields ``"0"``.
    """

    pattern = re.compile(
        r"(?:[0-9]{1,3}(?:,[0-9]{3})+|[0-9]+)(?:\.[0-9]+)?(?= " + re.escape(unit) + r")"
    )
    match = pattern.search(text)
    if match is None:
        return "0"
    return str(parse_units(match.group(0).replace(",", ""), decimals))
