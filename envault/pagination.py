"""
Query-string pagination.

``offset``/``limit`` are read the way JavaScript's ``parseInt`` reads them
without a radix: leading whitespace, an optional sign, then either ``0x``
followed by hex digits or a run of ASCII decimal digits. Trailing junk is
ignored; a bare ``0x`` and anything else is "not a number". Existing clients rely on
this (``?limit=10px`` means 10, ``?limit=0x10`` means 16, ``?limit=all``
means no limit).
"""

from __future__ import annotations

import re

_LEADING_INT_RE = re.compile(r"^\s*([+-]?)(?:0[xX]([0-9a-fA-F]*)|([0-9]+))", re.ASCII)


def parse_int_param(value: str | None) -> int | None:
    """Parse a leading integer; ``None`` when there is none."""
    if value is None:
        return None
    m = _LEADING_INT_RE.match(value)
    if not m:
        return None
    sign, hex_digits, digits = m.groups()
    if hex_digits is not None:
        if not hex_digits:
            return None
        n = int(hex_digits, 16)
    else:
        n = int(digits)
    return -n if sign == "-" else n


def to_skip(value: str | None) -> int:
    """Offset to skip; non-numeric or negative means none."""
    n = parse_int_param(value)
    return n if n and n > 0 else 0


def to_limit(value: str | None) -> int | None:
    """Page size; ``None`` (no limit) for non-numeric or zero.

    A negative limit caps the page at its absolute value, matching
    MongoDB cursor semantics.
    """
    n = parse_int_param(value)
    if not n:
        return None
    return abs(n)
