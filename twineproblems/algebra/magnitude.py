"""Numeric values with physical units.

Units are metadata: they are checked for compatibility when values are mixed
but never converted. Only the SI prefix of the unit is normalized into the
value, e.g. ``2mA`` becomes ``0.002 A`` and ``1kohm`` becomes ``1000 ohm``.
"""

import math
import re
from dataclasses import dataclass

from twineproblems.algebra.units import BOOLEAN, DEFAULT_UNITS, DIMENSIONLESS, UNKNOWN, UnitTable

# sign, numeral (decimal or exponential), then the unit as the rest of the token
MAGNITUDE_RE = re.compile(
    r"""^\s*
    (?P<number>[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
    \s*
    (?P<unit>.*?)
    \s*$""",
    re.VERBOSE | re.DOTALL,
)

# Units whose first letter looks like a prefix but is part of the symbol.
ATOMIC_UNITS = frozenset({"mol", "min"})


@dataclass(frozen=True)
class Magnitude:
    value: float
    unit: str = UNKNOWN

    @classmethod
    def of(cls, value: float, unit: str, units: UnitTable = DEFAULT_UNITS) -> "Magnitude":
        """Build a magnitude folding a leading SI prefix of ``unit`` into ``value``."""
        if len(unit) > 1 and unit not in ATOMIC_UNITS and unit[1].isalpha():
            factor = units.factor(unit[0])
            if factor is not None:
                return cls(float(value) * factor, unit[1:])
        return cls(float(value), unit)

    @classmethod
    def parse(cls, text: str, units: UnitTable = DEFAULT_UNITS) -> "Magnitude | None":
        """Parse a numeral token with an optional unit.

        Returns None when the token is not numeral-shaped so the caller can
        treat it as a name. A numeral without unit gets the unknown unit.
        """
        match = MAGNITUDE_RE.match(text.replace("_", ""))
        if match is None:
            return None
        unit = re.sub(r"\s+", "", match.group("unit"))
        value = float(match.group("number"))
        if not unit:
            return cls(value, UNKNOWN)
        return cls.of(value, unit, units)

    @property
    def is_boolean(self) -> bool:
        return self.unit == BOOLEAN

    @property
    def has_unit(self) -> bool:
        return self.unit not in (UNKNOWN, DIMENSIONLESS)

    def with_unit(self, unit: str) -> "Magnitude":
        return Magnitude(self.value, unit)

    def display(self, units: UnitTable = DEFAULT_UNITS) -> str:
        """LaTeX rendering with the best fitting SI prefix."""
        if self.is_boolean:
            return "\\mathrm{true}" if self.value else "\\mathrm{false}"

        sign = "-" if self.value < 0 else ""
        size = abs(self.value)
        if not self.has_unit:
            return sign + _format_number(size)

        prefix, scaled = _best_prefix(size, units)
        return f"{sign}{_format_number(scaled)}\\,\\mathrm{{{prefix}{units.pretty_name(self.unit)}}}"

    def __str__(self) -> str:
        return self.display()


def compatible_unit(a: Magnitude, b: Magnitude) -> str | None:
    """Unit resulting from mixing ``a`` and ``b``, or None when they clash."""
    if a.unit == UNKNOWN:
        return b.unit
    if b.unit == UNKNOWN:
        return a.unit
    if a.unit == b.unit:
        return a.unit
    return None


def _best_prefix(size: float, units: UnitTable) -> tuple[str, float]:
    if size == 0 or not math.isfinite(size):
        return "", size
    scales = units.scales()
    for prefix, factor in scales:
        if round(size / factor, 2) >= 1:
            return prefix, size / factor
    prefix, factor = scales[-1]
    return prefix, size / factor


def _format_number(size: float) -> str:
    if size != 0 and (size < 0.01 or size >= 1e6):
        return f"{size:.2e}"
    text = f"{size:.2f}".rstrip("0").rstrip(".")
    return text or "0"


TRUE = Magnitude(1.0, BOOLEAN)
FALSE = Magnitude(0.0, BOOLEAN)


def boolean(flag: bool) -> Magnitude:
    return TRUE if flag else FALSE
