"""Variable dictionaries threaded through an exercise."""

import logging
import random
from typing import TYPE_CHECKING, Iterator

from twineproblems.errors import BindingConflict, UnboundReference

if TYPE_CHECKING:
    from twineproblems.algebra.expression import Expression

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-5


class Bindings:
    """Name to expression map that refuses conflicting rebinding.

    A name may be bound again only to a value equal to the current one
    (absolute tolerance, identical unit). Copies are independent so sibling
    branches of a narrative never observe each other's variables.
    """

    def __init__(
        self,
        values: dict[str, "Expression"] | None = None,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> None:
        self._values: dict[str, "Expression"] = dict(values or {})
        self.tolerance = tolerance

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bindings):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"Bindings({sorted(self._values)})"

    def get(self, name: str) -> "Expression | None":
        return self._values.get(name)

    def lookup(self, name: str) -> "Expression":
        try:
            return self._values[name]
        except KeyError:
            raise UnboundReference(f"Variable '{name}' is not bound") from None

    def items(self):
        return self._values.items()

    def copy(self) -> "Bindings":
        return Bindings(self._values, self.tolerance)

    def bind(self, name: str, expr: "Expression", rng: random.Random | None = None) -> None:
        """Bind ``name`` unless it already holds a different value."""
        current = self._values.get(name)
        if current is None:
            self._values[name] = expr
            logger.debug("Bound %s", name)
            return

        old = current.value(self, rng)
        new = expr.value(self, rng)
        if abs(old.value - new.value) > self.tolerance or old.unit != new.unit:
            raise BindingConflict(
                f"Attempt to overwrite variable '{name}': "
                f"old value {old.value} [{old.unit}], new value {new.value} [{new.unit}]"
            )

    def merge(self, other: "Bindings", rng: random.Random | None = None) -> None:
        """Bind every name of ``other`` into self under the conflict rules."""
        for name, expr in other.items():
            self.bind(name, expr, rng)
