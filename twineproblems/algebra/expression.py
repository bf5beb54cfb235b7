"""Algebraic expressions over magnitudes.

Expressions are immutable trees. They are only built through the combinators
at the bottom of this module, which keep the tree normalized:

- sums, products, conjunctions, disjunctions and relational chains are flat
  and a group of one collapses to its element;
- ``Neg`` never wraps ``Neg`` and is pushed into every summand of a sum;
- products and quotients extract the sign of their operands and reapply it
  once, on the outside.

Units are not propagated through products, quotients or roots: their result
has the unknown unit and can be pinned with a ``Unit`` node.
"""

import abc
import math
import random
from dataclasses import dataclass
from functools import reduce
from typing import Callable, ClassVar

from twineproblems.algebra.bindings import Bindings
from twineproblems.algebra.magnitude import FALSE, TRUE, Magnitude, boolean, compatible_unit
from twineproblems.algebra.units import DEFAULT_UNITS, UNKNOWN, UnitTable
from twineproblems.errors import EvaluationError, StructuralError, UnitMismatch


class Expression(abc.ABC):
    """Base class of the expression tree."""

    @abc.abstractmethod
    def value(self, bindings: Bindings, rng: random.Random | None = None) -> Magnitude:
        """Evaluate against ``bindings``; ``rng`` feeds ``rand`` nodes."""
        ...

    @abc.abstractmethod
    def show(self, units: UnitTable = DEFAULT_UNITS) -> str:
        """LaTeX-like rendering of the formula."""
        ...

    def __str__(self) -> str:
        return self.show()


# --- Leaves ---


@dataclass(frozen=True)
class Constant(Expression):
    magnitude: Magnitude

    def value(self, bindings, rng=None):
        return self.magnitude

    def show(self, units=DEFAULT_UNITS):
        return self.magnitude.display(units)


@dataclass(frozen=True)
class Variable(Expression):
    name: str

    def value(self, bindings, rng=None):
        return bindings.lookup(self.name).value(bindings, rng)

    def show(self, units=DEFAULT_UNITS):
        return self.name


# --- Arithmetic ---


@dataclass(frozen=True)
class Add(Expression):
    items: tuple[Expression, ...]

    def value(self, bindings, rng=None):
        result = Magnitude(0.0, UNKNOWN)
        for item in self.items:
            mag = item.value(bindings, rng)
            unit = compatible_unit(result, mag)
            if unit is None:
                raise UnitMismatch(
                    f"Cannot add [{mag.unit}] to [{result.unit}] in {self.show()}"
                )
            result = Magnitude(result.value + mag.value, unit)
        return result

    def show(self, units=DEFAULT_UNITS):
        parts = [self.items[0].show(units)]
        for item in self.items[1:]:
            if isinstance(item, Neg):
                # the negated summand carries its own sign
                parts.append(" - " + _factor(item.operand, units))
            else:
                parts.append(" + " + item.show(units))
        return "".join(parts)


@dataclass(frozen=True)
class Neg(Expression):
    operand: Expression

    def value(self, bindings, rng=None):
        mag = self.operand.value(bindings, rng)
        return Magnitude(-mag.value, mag.unit)

    def show(self, units=DEFAULT_UNITS):
        return "-" + _factor(self.operand, units)


@dataclass(frozen=True)
class Prod(Expression):
    items: tuple[Expression, ...]

    def value(self, bindings, rng=None):
        result = 1.0
        for item in self.items:
            result *= item.value(bindings, rng).value
        return Magnitude(result, UNKNOWN)

    def show(self, units=DEFAULT_UNITS):
        return " \\cdot ".join(_factor(item, units) for item in self.items)


@dataclass(frozen=True)
class Div(Expression):
    numerator: Expression
    denominator: Expression

    def value(self, bindings, rng=None):
        num = self.numerator.value(bindings, rng)
        den = self.denominator.value(bindings, rng)
        if den.value == 0:
            raise EvaluationError(f"Division by zero in {self.show()}")
        return Magnitude(num.value / den.value, UNKNOWN)

    def show(self, units=DEFAULT_UNITS):
        return f"\\frac{{{self.numerator.show(units)}}}{{{self.denominator.show(units)}}}"


@dataclass(frozen=True)
class Unit(Expression):
    """Assigns ``unit`` to an unknown-unit value, or checks that it already has it."""
    operand: Expression
    unit: str

    def value(self, bindings, rng=None):
        mag = self.operand.value(bindings, rng)
        unit = compatible_unit(mag, Magnitude(mag.value, self.unit))
        if unit is None:
            raise UnitMismatch(
                f"Expression {self.operand.show()} has unit [{mag.unit}], expected [{self.unit}]"
            )
        return Magnitude(mag.value, unit)

    def show(self, units=DEFAULT_UNITS):
        return self.operand.show(units)


@dataclass(frozen=True)
class Sqrt(Expression):
    operand: Expression

    def value(self, bindings, rng=None):
        mag = self.operand.value(bindings, rng)
        if mag.value < 0:
            raise EvaluationError(f"Square root of negative value in {self.show()}")
        return Magnitude(math.sqrt(mag.value), UNKNOWN)

    def show(self, units=DEFAULT_UNITS):
        return f"\\sqrt{{{self.operand.show(units)}}}"


@dataclass(frozen=True)
class Rand(Expression):
    low: Expression
    high: Expression

    def value(self, bindings, rng=None):
        low = self.low.value(bindings, rng)
        high = self.high.value(bindings, rng)
        unit = compatible_unit(low, high)
        if unit is None:
            raise UnitMismatch(
                f"Random bounds have different units [{low.unit}] and [{high.unit}]"
            )
        source = rng if rng is not None else random
        return Magnitude(low.value + (high.value - low.value) * source.random(), unit)

    def show(self, units=DEFAULT_UNITS):
        return f"\\mathrm{{rand}}({self.low.show(units)}, {self.high.show(units)})"


# --- Logic ---


def _truth(expr: Expression, bindings: Bindings, rng: random.Random | None) -> bool:
    mag = expr.value(bindings, rng)
    if not mag.is_boolean:
        raise UnitMismatch(f"Expected a boolean, {expr.show()} has unit [{mag.unit}]")
    return bool(mag.value)


@dataclass(frozen=True)
class And(Expression):
    items: tuple[Expression, ...]

    def value(self, bindings, rng=None):
        return boolean(all(_truth(item, bindings, rng) for item in self.items))

    def show(self, units=DEFAULT_UNITS):
        return " \\land ".join(_logic_operand(item, units) for item in self.items)


@dataclass(frozen=True)
class Or(Expression):
    items: tuple[Expression, ...]

    def value(self, bindings, rng=None):
        return boolean(any(_truth(item, bindings, rng) for item in self.items))

    def show(self, units=DEFAULT_UNITS):
        return " \\lor ".join(_logic_operand(item, units) for item in self.items)


@dataclass(frozen=True)
class Not(Expression):
    operand: Expression

    def value(self, bindings, rng=None):
        return boolean(not _truth(self.operand, bindings, rng))

    def show(self, units=DEFAULT_UNITS):
        return "\\lnot " + _logic_operand(self.operand, units)


@dataclass(frozen=True)
class Relation(Expression):
    """Chain ``a OP b OP c ...`` holding when every adjacent pair does."""
    items: tuple[Expression, ...]

    symbol: ClassVar[str] = ""
    token: ClassVar[str] = ""

    @staticmethod
    @abc.abstractmethod
    def holds(left: float, right: float, tolerance: float) -> bool:
        ...

    def value(self, bindings, rng=None):
        left = self.items[0].value(bindings, rng)
        for item in self.items[1:]:
            right = item.value(bindings, rng)
            if compatible_unit(left, right) is None:
                raise UnitMismatch(
                    f"Cannot compare [{left.unit}] with [{right.unit}] in {self.show()}"
                )
            if not self.holds(left.value, right.value, bindings.tolerance):
                return FALSE
            left = right
        return TRUE

    def show(self, units=DEFAULT_UNITS):
        return f" {self.symbol} ".join(item.show(units) for item in self.items)


@dataclass(frozen=True)
class Eq(Relation):
    symbol: ClassVar[str] = "="
    token: ClassVar[str] = "=="

    @staticmethod
    def holds(left, right, tolerance):
        return abs(left - right) <= tolerance


@dataclass(frozen=True)
class Neq(Relation):
    symbol: ClassVar[str] = "\\neq"
    token: ClassVar[str] = "!="

    @staticmethod
    def holds(left, right, tolerance):
        return abs(left - right) > tolerance


@dataclass(frozen=True)
class Lt(Relation):
    symbol: ClassVar[str] = "<"
    token: ClassVar[str] = "<"

    @staticmethod
    def holds(left, right, tolerance):
        return left < right


@dataclass(frozen=True)
class Leq(Relation):
    symbol: ClassVar[str] = "\\leq"
    token: ClassVar[str] = "<="

    @staticmethod
    def holds(left, right, tolerance):
        return left <= right


@dataclass(frozen=True)
class Gt(Relation):
    symbol: ClassVar[str] = ">"
    token: ClassVar[str] = ">"

    @staticmethod
    def holds(left, right, tolerance):
        return left > right


@dataclass(frozen=True)
class Geq(Relation):
    symbol: ClassVar[str] = "\\geq"
    token: ClassVar[str] = ">="

    @staticmethod
    def holds(left, right, tolerance):
        return left >= right


RELATIONS: tuple[type[Relation], ...] = (Eq, Neq, Lt, Leq, Gt, Geq)


# --- Display helpers ---


def _factor(expr: Expression, units: UnitTable) -> str:
    if isinstance(expr, (Add, Neg)):
        return f"\\left({expr.show(units)}\\right)"
    return expr.show(units)


def _logic_operand(expr: Expression, units: UnitTable) -> str:
    if isinstance(expr, (And, Or, Relation)):
        return f"\\left({expr.show(units)}\\right)"
    return expr.show(units)


# --- Combinators ---


def _group(cls: type, items: tuple[Expression, ...]) -> Expression:
    if len(items) == 1:
        return items[0]
    return cls(items)


def _members(cls: type, expr: Expression) -> tuple[Expression, ...]:
    if type(expr) is cls:
        return expr.items
    return (expr,)


def _split_sign(expr: Expression) -> tuple[bool, Expression]:
    if isinstance(expr, Neg):
        return True, expr.operand
    return False, expr


def _signed(negative: bool, expr: Expression) -> Expression:
    return neg(expr) if negative else expr


def add(a: Expression, b: Expression) -> Expression:
    return _group(Add, _members(Add, a) + _members(Add, b))


def neg(a: Expression) -> Expression:
    if isinstance(a, Add):
        return Add(tuple(neg(item) for item in a.items))
    if isinstance(a, Neg):
        return a.operand
    return Neg(a)


def sub(a: Expression, b: Expression) -> Expression:
    return add(a, neg(b))


def prod(a: Expression, b: Expression) -> Expression:
    neg_a, a = _split_sign(a)
    neg_b, b = _split_sign(b)
    product = _group(Prod, _members(Prod, a) + _members(Prod, b))
    return _signed(neg_a != neg_b, product)


def _optional_prod(a: Expression | None, b: Expression | None) -> Expression:
    if a is None:
        return b
    if b is None:
        return a
    return prod(a, b)


def div(a: Expression, b: Expression) -> Expression:
    neg_a, a = _split_sign(a)
    neg_b, b = _split_sign(b)

    num1, den1 = (a.numerator, a.denominator) if isinstance(a, Div) else (a, None)
    num2, den2 = (b.numerator, b.denominator) if isinstance(b, Div) else (b, None)

    neg_num, num = _split_sign(_optional_prod(num1, den2))
    neg_den, den = _split_sign(_optional_prod(den1, num2))

    return _signed(neg_a ^ neg_b ^ neg_num ^ neg_den, Div(num, den))


def with_unit(value: Expression, unit_name: Expression) -> Expression:
    if not isinstance(unit_name, Variable):
        raise StructuralError(f"Unit name must be a plain name, got {unit_name!r}")
    return Unit(value, unit_name.name)


def without_unit(value: Expression) -> Expression:
    return Unit(value, "")


def sqrt(a: Expression) -> Expression:
    return Sqrt(a)


def rand(low: Expression, high: Expression) -> Expression:
    return Rand(low, high)


def and_(a: Expression, b: Expression) -> Expression:
    return _group(And, _members(And, a) + _members(And, b))


def or_(a: Expression, b: Expression) -> Expression:
    return _group(Or, _members(Or, a) + _members(Or, b))


def not_(a: Expression) -> Expression:
    return Not(a)


def relation(cls: type[Relation]) -> Callable[[Expression, Expression], Expression]:
    """Binary combinator extending an existing chain of the same relation."""
    def combine(a: Expression, b: Expression) -> Expression:
        return cls(_members(cls, a) + _members(cls, b))
    return combine


def flatten(expr: Expression) -> Expression:
    """Rebuild ``expr`` through the combinators, normalizing hand-made trees."""
    if isinstance(expr, (Constant, Variable)):
        return expr
    if isinstance(expr, Add):
        return reduce(add, (flatten(item) for item in expr.items))
    if isinstance(expr, Neg):
        return neg(flatten(expr.operand))
    if isinstance(expr, Prod):
        return reduce(prod, (flatten(item) for item in expr.items))
    if isinstance(expr, Div):
        return div(flatten(expr.numerator), flatten(expr.denominator))
    if isinstance(expr, Unit):
        return Unit(flatten(expr.operand), expr.unit)
    if isinstance(expr, Sqrt):
        return Sqrt(flatten(expr.operand))
    if isinstance(expr, Rand):
        return Rand(flatten(expr.low), flatten(expr.high))
    if isinstance(expr, And):
        return reduce(and_, (flatten(item) for item in expr.items))
    if isinstance(expr, Or):
        return reduce(or_, (flatten(item) for item in expr.items))
    if isinstance(expr, Not):
        return Not(flatten(expr.operand))
    if isinstance(expr, Relation):
        return reduce(relation(type(expr)), (flatten(item) for item in expr.items))
    raise StructuralError(f"Unknown expression node {expr!r}")
