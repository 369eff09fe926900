"""
Magnitude decoding (coefficient + exponent code -> US$)
=======================================================

Storm Data stores damage as a coefficient (`PROPDMG`) plus a one-character
exponent code (`PROPDMGEXP`). The codes are inconsistent: letters in either
case, digits, symbols and blanks all occur.

Exponent-code rules (checked in order, first match wins):

    b / billion   -> 9
    m / million   -> 6
    k / thousand  -> 3
    h / hundred   -> 2
    one digit     -> that digit
    - ? + > <     -> low-confidence qualifier
    blank         -> low-confidence qualifier
    anything else -> the code itself as an integer exponent, if it is one

Qualifiers, blanks and unparseable codes decode to 0.0: a magnitude we cannot
read with confidence is dropped, never guessed. `decode` never raises.
"""

from __future__ import annotations
from decimal import Decimal
from typing import Any, Optional
import math
import re

from .models import NormalizedRecord, RawRecord

_NAMED_EXPONENTS = (
    (("b", "billion"), 9),
    (("m", "million"), 6),
    (("k", "thousand"), 3),
    (("h", "hundred"), 2),
)

_QUALIFIERS = frozenset("-?+><")

_INT_RE = re.compile(r"^[+-]?[0-9]+$")


def _to_float(x: Any) -> Optional[float]:
    """Convert a cell to a finite float, returning None if missing/invalid."""
    if x is None or isinstance(x, bool):
        return None
    try:
        v = float(str(x).strip()) if isinstance(x, str) else float(x)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(v):
        return None
    return v


def _code_text(code: Any) -> str:
    # pandas hands blanks over as NaN floats
    if code is None:
        return ""
    if isinstance(code, float) and math.isnan(code):
        return ""
    return str(code)


def exponent_for(exponent_code: Any) -> Optional[int]:
    """Return the power of ten for an exponent code, or None if it carries none."""
    raw = _code_text(exponent_code)
    code = raw.strip().lower()

    for names, e in _NAMED_EXPONENTS:
        if code in names:
            return e
    if len(code) == 1 and code in "0123456789":
        return int(code)
    if code in _QUALIFIERS or (raw and not code):
        return None
    # Last resort: the literal code as an exponent ("10", "-2", ...)
    if _INT_RE.match(code):
        return int(code)
    return None


def decode(coefficient: Any, exponent_code: Any) -> float:
    """Decode `coefficient x 10^e` into a non-negative magnitude.

    Returns 0.0 for non-numeric/negative coefficients, for qualifier, blank
    and unparseable codes, and for results that overflow a float.
    """
    c = _to_float(coefficient)
    if c is None or c <= 0:
        return 0.0
    e = exponent_for(exponent_code)
    if e is None:
        return 0.0
    # shift the decimal digits ("32.2" K -> 32200), no binary rounding
    try:
        v = float(Decimal(repr(c)).scaleb(e))
    except ArithmeticError:
        return 0.0
    return v if math.isfinite(v) else 0.0


def count(x: Any) -> float:
    """Fatality/injury counts use the same fallback: unreadable or negative -> 0."""
    v = _to_float(x)
    return v if v is not None and v > 0 else 0.0


def normalize_record(raw: RawRecord) -> NormalizedRecord:
    return NormalizedRecord(
        event_label=raw.event_label,
        fatalities=count(raw.fatalities),
        injuries=count(raw.injuries),
        property_damage=decode(raw.property_coefficient, raw.property_exponent_code),
        crop_damage=decode(raw.crop_coefficient, raw.crop_exponent_code),
    )
