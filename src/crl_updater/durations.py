"""
Duration strings in the familiar "300ms", "1.5h", "2h45m" syntax.

A duration is an optionally signed sequence of decimal numbers, each with a
unit suffix: ns, us (or µs), ms, s, m, h. "0" on its own is also valid.
"""

from __future__ import annotations

import re

_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """
    Parse a duration string into seconds.

    Raises ValueError for anything that is not a well-formed duration,
    including bare numbers without a unit ("30").
    """
    original = text
    text = text.strip()
    if not text:
        raise ValueError("empty duration")

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    if text == "0":
        return 0.0

    total = 0.0
    position = 0
    while position < len(text):
        match = _COMPONENT.match(text, position)
        if match is None:
            raise ValueError(f"invalid duration: {original!r}")
        number, unit = match.groups()
        total += float(number) * _UNITS[unit]
        position = match.end()

    if position == 0:
        raise ValueError(f"invalid duration: {original!r}")
    return sign * total
