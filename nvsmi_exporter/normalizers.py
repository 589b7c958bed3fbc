"""Value normalizers: raw nvidia-smi strings -> canonical metric values.

nvidia-smi mixes bare numbers ("3"), unit-suffixed readings ("250.00 W",
"1.5 MiB", "1590 MHz"), percentages ("73 %"), version strings and the
placeholder "N/A" across fields.  Each metric routes its field through the
normalizer matching that field's convention.  All functions are pure and
never raise.
"""
from __future__ import annotations

import re
from typing import Callable, Dict

Normalizer = Callable[[str], str]

PLACEHOLDER = "N/A"

_NON_NUMERIC = re.compile(r"[^0-9.]")
_UNIT_VALUE = re.compile(r"(?P<value>[\d.]+)\s*(?P<prefix>[KMGT]i?)?(?P<unit>.*)")
_VERSION = re.compile(r"(?P<version>\d+\.\d+)")

MULTIPLIERS: Dict[str, int] = {
    "K": 1000,
    "M": 1000 ** 2,
    "G": 1000 ** 3,
    "T": 1000 ** 4,
    "Ki": 1024,
    "Mi": 1024 ** 2,
    "Gi": 1024 ** 3,
    "Ti": 1024 ** 4,
}

_TRUTHY = {"on", "enabled", "active", "yes"}


def _format_number(value: float) -> str:
    """General-precision decimal, never in exponent form for whole numbers."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


def numeric_strip(value: str) -> str:
    """Drop every character that is not a digit or a decimal point.

    >>> numeric_strip("73 %"), numeric_strip("P8"), numeric_strip("N/A")
    ('73', '8', '0')
    """
    if value == PLACEHOLDER:
        return "0"
    return _NON_NUMERIC.sub("", value) or "0"


def unit_scale(value: str) -> str:
    """Scale a "<number> [prefix]<unit>" reading to base units.

    >>> unit_scale("2.5 GiB"), unit_scale("1 KB"), unit_scale("300 W")
    ('2684354560', '1000', '300')
    """
    if value == PLACEHOLDER:
        return "0"
    match = _UNIT_VALUE.match(value.strip())
    if match is None:
        return "0"
    try:
        number = float(match.group("value"))
    except ValueError:
        return "0"
    prefix = match.group("prefix")
    if prefix:
        number *= MULTIPLIERS[prefix]
    return _format_number(number)


def version_extract(value: str) -> str:
    """First "<major>.<minor>" in `value`, e.g. "460.32.03" -> "460.32"."""
    match = _VERSION.search(value)
    return match.group("version") if match else "0"


def flag(value: str) -> str:
    """Boolean policy values: On/Enabled/Active/Yes -> "1", anything else -> "0"."""
    return "1" if value.strip().lower() in _TRUTHY else "0"
