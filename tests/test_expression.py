"""Tests for expression trees: normalizing combinators, evaluation and display."""

import random

import pytest

from twineproblems.algebra import expression as ex
from twineproblems.algebra.bindings import Bindings
from twineproblems.algebra.expression import (
    Add,
    Constant,
    Div,
    Eq,
    Gt,
    Lt,
    Neg,
    Prod,
    Rand,
    Unit,
    Variable,
)
from twineproblems.algebra.magnitude import FALSE, TRUE, Magnitude
from twineproblems.algebra.units import UNKNOWN
from twineproblems.errors import EvaluationError, StructuralError, UnboundReference, UnitMismatch

a, b, c = Variable("a"), Variable("b"), Variable("c")


def const(value: float, unit: str = UNKNOWN) -> Constant:
    return Constant(Magnitude(value, unit))


class TestCombinators:
    def test_add_is_flat(self):
        assert ex.add(ex.add(a, b), c) == Add((a, b, c))
        assert ex.add(a, ex.add(b, c)) == Add((a, b, c))

    def test_double_negation_cancels(self):
        assert ex.neg(ex.neg(a)) == a
        assert ex.neg(ex.neg(ex.add(a, b))) == ex.add(a, b)

    def test_negation_distributes_over_sum(self):
        assert ex.neg(ex.add(a, ex.neg(b))) == Add((Neg(a), b))

    def test_product_sign_is_pulled_out(self):
        assert ex.prod(ex.neg(a), ex.neg(b)) == Prod((a, b))
        assert ex.prod(ex.neg(a), b) == Neg(Prod((a, b)))

    def test_division_of_quotients(self):
        assert ex.div(ex.div(a, b), c) == Div(a, Prod((b, c)))
        assert ex.div(a, ex.div(b, c)) == Div(Prod((a, c)), b)

    def test_division_sign(self):
        assert ex.div(ex.neg(a), b) == Neg(Div(a, b))
        assert ex.div(ex.neg(a), ex.neg(b)) == Div(a, b)

    def test_relation_chain_extends_same_relation_only(self):
        chain = ex.relation(Lt)(ex.relation(Lt)(a, b), c)
        assert chain == Lt((a, b, c))
        mixed = ex.relation(Lt)(ex.relation(Gt)(a, b), c)
        assert mixed == Lt((Gt((a, b)), c))

    def test_with_unit_needs_a_name(self):
        assert ex.with_unit(a, Variable("V")) == Unit(a, "V")
        with pytest.raises(StructuralError):
            ex.with_unit(a, const(1.0))


class TestFlatten:
    def test_nested_sums(self):
        tree = Add((Add((a, b)), c))
        assert ex.flatten(tree) == Add((a, b, c))

    def test_idempotent(self):
        tree = Prod((Neg(Neg(a)), Div(Div(a, b), Neg(c)), Add((Add((a,)), b))))
        once = ex.flatten(tree)
        assert ex.flatten(once) == once

    def test_leaves_untouched(self):
        assert ex.flatten(a) is a


class TestValue:
    def test_add_units(self):
        assert ex.add(const(1.0, "V"), const(2.0)).value(Bindings()) == Magnitude(3.0, "V")

    def test_add_unit_mismatch(self):
        with pytest.raises(UnitMismatch):
            ex.add(const(1.0, "V"), const(1.0, "A")).value(Bindings())

    def test_quotient_times_denominator(self):
        bindings = Bindings({"a": const(6.0), "b": const(0.3)})
        expr = ex.prod(ex.div(a, b), b)
        assert expr.value(bindings).value == pytest.approx(6.0)

    def test_product_has_unknown_unit(self):
        assert ex.prod(const(2.0, "A"), const(3.0, "ohm")).value(Bindings()) == Magnitude(6.0, UNKNOWN)

    def test_division_by_zero(self):
        with pytest.raises(EvaluationError):
            ex.div(const(1.0), const(0.0)).value(Bindings())

    def test_sqrt_of_negative(self):
        with pytest.raises(EvaluationError):
            ex.sqrt(const(-4.0)).value(Bindings())

    def test_unit_assignment_and_check(self):
        assert Unit(const(2.0), "V").value(Bindings()) == Magnitude(2.0, "V")
        assert Unit(const(2.0, "V"), "V").value(Bindings()) == Magnitude(2.0, "V")
        with pytest.raises(UnitMismatch):
            Unit(const(2.0, "A"), "V").value(Bindings())

    def test_unbound_variable(self):
        with pytest.raises(UnboundReference):
            a.value(Bindings())

    def test_rand_is_within_bounds_and_reproducible(self):
        expr = Rand(const(1.0, "V"), const(2.0, "V"))
        first = expr.value(Bindings(), random.Random(7))
        second = expr.value(Bindings(), random.Random(7))
        assert first == second
        assert 1.0 <= first.value <= 2.0
        assert first.unit == "V"

    def test_rand_bounds_must_agree(self):
        with pytest.raises(UnitMismatch):
            Rand(const(1.0, "V"), const(2.0, "A")).value(Bindings())

    def test_equality_uses_tolerance(self):
        assert Eq((const(1.0), const(1.000001))).value(Bindings()) == TRUE
        assert Eq((const(1.0), const(1.1))).value(Bindings()) == FALSE
        assert Eq((const(1.0), const(1.1))).value(Bindings(tolerance=0.5)) == TRUE

    def test_relation_chain(self):
        assert Lt((const(1.0), const(2.0), const(3.0))).value(Bindings()) == TRUE
        assert Lt((const(1.0), const(3.0), const(2.0))).value(Bindings()) == FALSE

    def test_logic_needs_booleans(self):
        assert ex.and_(Constant(TRUE), Constant(FALSE)).value(Bindings()) == FALSE
        assert ex.or_(Constant(TRUE), Constant(FALSE)).value(Bindings()) == TRUE
        assert ex.not_(Constant(FALSE)).value(Bindings()) == TRUE
        with pytest.raises(UnitMismatch):
            ex.and_(Constant(TRUE), const(1.0)).value(Bindings())


class TestShow:
    def test_subtraction(self):
        assert ex.sub(a, b).show() == "a - b"

    def test_sum_inside_product_is_parenthesized(self):
        assert ex.prod(ex.add(a, b), c).show() == "\\left(a + b\\right) \\cdot c"

    def test_fraction(self):
        assert ex.div(a, b).show() == "\\frac{a}{b}"

    def test_constants_use_units(self):
        assert ex.prod(const(0.002, "A"), c).show() == "2\\,\\mathrm{mA} \\cdot c"

    def test_unit_node_is_transparent(self):
        assert Unit(ex.prod(a, b), "V").show() == "a \\cdot b"
