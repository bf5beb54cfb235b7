"""Unit tables shared by magnitude parsing and display."""

from dataclasses import dataclass, field

UNKNOWN = "?"
DIMENSIONLESS = ""
BOOLEAN = "bool"

DEFAULT_PREFIXES: dict[str, float] = {
    "T": 1e12,
    "G": 1e9,
    "M": 1e6,
    "k": 1e3,
    "m": 1e-3,
    "u": 1e-6,
    "n": 1e-9,
    "p": 1e-12,
    "f": 1e-15,
}

DEFAULT_PRETTY: dict[str, str] = {
    "ohm": "\\Omega",
}


@dataclass(frozen=True)
class UnitTable:
    """Read-only prefix factors and display names for units."""
    prefixes: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_PREFIXES))
    pretty: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PRETTY))

    def factor(self, prefix: str) -> float | None:
        return self.prefixes.get(prefix)

    def pretty_name(self, unit: str) -> str:
        return self.pretty.get(unit, unit)

    def scales(self) -> list[tuple[str, float]]:
        """Prefixes plus the unit scale, largest factor first."""
        items = list(self.prefixes.items()) + [("", 1.0)]
        return sorted(items, key=lambda item: item[1], reverse=True)


DEFAULT_UNITS = UnitTable()
