"""Unit-carrying formulas: magnitudes, expression trees and the postfix stack machine."""

from twineproblems.algebra.bindings import Bindings
from twineproblems.algebra.expression import Expression, flatten
from twineproblems.algebra.machine import StackMachine, evaluate, parse_expression
from twineproblems.algebra.magnitude import FALSE, TRUE, Magnitude, compatible_unit
from twineproblems.algebra.units import DEFAULT_UNITS, UNKNOWN, UnitTable

__all__ = [
    "Bindings",
    "DEFAULT_UNITS",
    "Expression",
    "FALSE",
    "Magnitude",
    "StackMachine",
    "TRUE",
    "UNKNOWN",
    "UnitTable",
    "compatible_unit",
    "evaluate",
    "flatten",
    "parse_expression",
]
