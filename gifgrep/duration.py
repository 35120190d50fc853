"""Parse timestamps given as durations (``1.5s``) or plain seconds (``1.5``)."""

from __future__ import annotations

import math
import re
from datetime import timedelta
from fractions import Fraction

_NANOS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_MAX_NANOS = (1 << 63) - 1
_COMPONENT = re.compile(r"(\d*)(?:\.(\d*))?([^\d.]*)")
_FLOAT = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_duration(text: str | bytes) -> timedelta:
    """Parse ``text`` as a unit duration or as a non-negative number of seconds."""
    if isinstance(text, bytes):
        text = text.decode("utf-8")
    raw = text.strip()
    if not raw:
        raise ValueError("empty duration")
    nanos = _parse_unit_duration(raw)
    if nanos is not None:
        return _from_nanos(nanos)
    if _FLOAT.fullmatch(raw):
        secs = float(raw)
        if secs < 0:
            raise ValueError("negative duration")
        nanos_float = secs * 1e9
        if math.isfinite(nanos_float) and nanos_float <= _MAX_NANOS:
            return _from_nanos(int(nanos_float))
    raise ValueError("invalid duration")


def _parse_unit_duration(s: str) -> int | None:
    negative = False
    if s[0] in "+-":
        negative = s[0] == "-"
        s = s[1:]
    if s == "0":
        return 0
    if not s:
        return None
    total = 0
    pos = 0
    while pos < len(s):
        match = _COMPONENT.match(s, pos)
        whole, frac, unit = match.group(1), match.group(2) or "", match.group(3)
        if not whole and not frac:
            return None
        if not unit or unit not in _NANOS_PER_UNIT:
            return None
        scale = _NANOS_PER_UNIT[unit]
        value = Fraction(int(whole or "0"))
        if frac:
            value += Fraction(int(frac), 10 ** len(frac))
        total += math.floor(value * scale)
        if total > _MAX_NANOS + (1 if negative else 0):
            return None
        pos = match.end()
    return -total if negative else total


def _from_nanos(nanos: int) -> timedelta:
    micros = nanos // 1000 if nanos >= 0 else -((-nanos) // 1000)
    return timedelta(microseconds=micros)