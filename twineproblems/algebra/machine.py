"""Stack machine that turns postfix formula text into expressions.

Tokens are separated by whitespace. Numerals (with an optional unit suffix)
are pushed, reserved operators pop their operands and push the combined
expression, macro names are replaced by their body, and any other token
becomes a variable. Example: ``"2mA I ! 1kohm R ! I @ R @ * V :"``.
"""

import logging
import random
from typing import Callable, Mapping

from twineproblems.algebra import expression as ex
from twineproblems.algebra.bindings import DEFAULT_TOLERANCE, Bindings
from twineproblems.algebra.expression import Constant, Expression, Neg, Variable
from twineproblems.algebra.magnitude import FALSE, TRUE, Magnitude
from twineproblems.algebra.units import DEFAULT_UNITS, UnitTable
from twineproblems.errors import BindingConflict, MacroCycle, StackImbalance, StructuralError, UnboundReference

logger = logging.getLogger(__name__)

DEFAULT_MAX_MACRO_DEPTH = 64

UNARY: dict[str, Callable[[Expression], Expression]] = {
    "::": ex.without_unit,
    "neg": ex.neg,
    "sqrt": ex.sqrt,
    "not": ex.not_,
}

BINARY: dict[str, Callable[[Expression, Expression], Expression]] = {
    ":": ex.with_unit,
    "+": ex.add,
    "-": ex.sub,
    "*": ex.prod,
    "/": ex.div,
    "rand": ex.rand,
    "and": ex.and_,
    "or": ex.or_,
}
BINARY.update({cls.token: ex.relation(cls) for cls in ex.RELATIONS})

CONSTANTS: dict[str, Magnitude] = {"true": TRUE, "false": FALSE}

TRACE = frozenset({"debug", "."})

RESERVED_TOKENS = frozenset(UNARY) | frozenset(BINARY) | frozenset({"!", "@"}) | TRACE


def tokenize(text: str) -> list[str]:
    return text.replace("\n", " ").replace("\t", " ").split()


class StackMachine:
    """Evaluation stack plus the local dictionary used by ``!`` and ``@``."""

    def __init__(
        self,
        macros: Mapping[str, str] | None = None,
        units: UnitTable = DEFAULT_UNITS,
        max_macro_depth: int = DEFAULT_MAX_MACRO_DEPTH,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> None:
        self.macros = macros or {}
        self.units = units
        self.max_macro_depth = max_macro_depth
        self.stack: list[Expression] = []
        self.local = Bindings(tolerance=tolerance)
        self._expanding: list[str] = []

    def run(self, text: str) -> Expression:
        """Process ``text`` and return the single expression left on the stack."""
        self.feed(text)
        if len(self.stack) != 1:
            shown = ", ".join(item.show(self.units) for item in self.stack) or "empty"
            raise StackImbalance(
                f"Expression must leave exactly one value, stack has {len(self.stack)}: [{shown}]"
            )
        return self.stack[0]

    def feed(self, text: str) -> None:
        for token in tokenize(text):
            self.step(token)

    def step(self, token: str) -> None:
        magnitude = Magnitude.parse(token, self.units)
        if magnitude is not None:
            if magnitude.value < 0:
                self.stack.append(Neg(Constant(Magnitude(abs(magnitude.value), magnitude.unit))))
            else:
                self.stack.append(Constant(magnitude))
        elif token in CONSTANTS:
            self.stack.append(Constant(CONSTANTS[token]))
        elif token in UNARY:
            operand = self._pop(token)
            self.stack.append(UNARY[token](operand))
        elif token in BINARY:
            second = self._pop(token)
            first = self._pop(token)
            self.stack.append(BINARY[token](first, second))
        elif token == "!":
            self._bind()
        elif token == "@":
            self._fetch()
        elif token in TRACE:
            logger.debug("stack: [%s]", ", ".join(item.show(self.units) for item in self.stack))
        elif token in self.macros:
            self._expand(token)
        else:
            self.stack.append(Variable(token))

    def _pop(self, token: str) -> Expression:
        if not self.stack:
            raise StackImbalance(f"Not enough operands for '{token}'")
        return self.stack.pop()

    def _pop_name(self, token: str) -> str:
        name = self._pop(token)
        if not isinstance(name, Variable):
            raise StructuralError(f"'{token}' expects a variable name, got {name.show(self.units)}")
        return name.name

    def _bind(self) -> None:
        name = self._pop_name("!")
        value = self._pop("!")
        current = self.local.get(name)
        if current == value:
            return
        try:
            self.local.bind(name, value)
        except UnboundReference as exc:
            # values that depend on outer variables can only be compared structurally
            raise BindingConflict(
                f"Local variable '{name}' already holds {current.show(self.units)}, "
                f"cannot rebind to {value.show(self.units)}"
            ) from exc

    def _fetch(self) -> None:
        name = self._pop_name("@")
        value = self.local.get(name)
        if value is None:
            raise UnboundReference(f"Local variable '{name}' is not defined")
        self.stack.append(value)

    def _expand(self, name: str) -> None:
        if name in self._expanding:
            chain = " -> ".join(self._expanding + [name])
            raise MacroCycle(f"Macro cycle: {chain}")
        if len(self._expanding) >= self.max_macro_depth:
            raise MacroCycle(f"Macro expansion deeper than {self.max_macro_depth} levels at '{name}'")
        self._expanding.append(name)
        try:
            self.feed(self.macros[name])
        finally:
            self._expanding.pop()


def parse_expression(
    text: str,
    macros: Mapping[str, str] | None = None,
    *,
    units: UnitTable = DEFAULT_UNITS,
    max_macro_depth: int = DEFAULT_MAX_MACRO_DEPTH,
    tolerance: float = DEFAULT_TOLERANCE,
) -> Expression:
    """Parse postfix ``text`` into a normalized expression."""
    return StackMachine(macros, units, max_macro_depth, tolerance).run(text)


def evaluate(
    text: str,
    bindings: Bindings | None = None,
    macros: Mapping[str, str] | None = None,
    rng: random.Random | None = None,
    *,
    units: UnitTable = DEFAULT_UNITS,
) -> Magnitude:
    """Parse and evaluate ``text`` in one step."""
    expr = parse_expression(text, macros, units=units)
    return expr.value(bindings if bindings is not None else Bindings(), rng)
