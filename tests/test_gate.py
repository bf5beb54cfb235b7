"""Tests for gate zones and formula interpolation."""

import pytest

from twineproblems.algebra.bindings import Bindings
from twineproblems.algebra.expression import Constant
from twineproblems.errors import BindingConflict, StructuralError, UnboundReference
from twineproblems.passages.gate import BuildContext, Gate, build_gate, interpolate_line


class TestZones:
    def test_default_zone_is_text(self, bindings, context):
        gate = build_gate("Hello there", bindings, context)
        assert gate == Gate(text="Hello there")

    def test_markers_switch_zone(self, bindings, context):
        gate = build_gate("___ Option\n... Follow up\nmore\n--- A note", bindings, context)
        assert gate.text == "Option"
        assert gate.follow == "Follow up\nmore"
        assert gate.note == "A note"

    def test_verbatim_line_skips_interpolation(self, bindings, context):
        gate = build_gate("... shown\n!{{. x}} literally", bindings, context)
        assert gate.follow == "shown\n{{. x}} literally"

    def test_empty_gate(self):
        assert Gate.empty().is_empty
        assert not Gate(note="n").is_empty


class TestInterpolation:
    def test_value_mode_binds(self, bindings, context):
        gate = build_gate("I = {{. I = 2mA}} flows", bindings, context)
        assert gate.text == "I = \\( I = 2\\,\\mathrm{mA} \\) flows"
        assert "I" in gate.bindings
        assert "I" not in bindings

    def test_display_line(self, bindings, context):
        line = interpolate_line("{{. V = 2 V :}}", bindings, context)
        assert line == "\\[ V = 2\\,\\mathrm{V} \\]"

    def test_formula_mode_does_not_evaluate(self, bindings, context):
        assert interpolate_line("see {{, a b +}}", bindings, context) == "see \\( a + b \\)"

    def test_formula_and_value(self, bindings, context):
        line = interpolate_line("so {{; x = 2 3 +}}", bindings, context)
        assert line == "so \\( x = 2 + 3 = 5 \\)"

    def test_raw_number(self, bindings, context):
        assert interpolate_line("n {{! 1.5}}", bindings, context) == "n 1.5"
        assert interpolate_line("n {{! y = 2}}", bindings, context) == "n y=2.0"

    def test_silent_mode(self, bindings, context):
        assert interpolate_line("a{{_ x = 4}}b", bindings, context) == "ab"
        assert "x" in bindings

    def test_escapes(self, bindings, context):
        assert interpolate_line("\\{\\{not\\}\\} \\\\", bindings, context) == "{{not}} \\"

    def test_several_on_one_line(self, bindings, context):
        line = interpolate_line("{{. a = 1}} and {{. b = a 1 +}}", bindings, context)
        assert line == "\\( a = 1 \\) and \\( b = 2 \\)"

    def test_uses_macros(self, bindings):
        context = BuildContext(macros={"twice": "2 *"})
        assert interpolate_line("{{. 3 twice}} apples", bindings, context) == "\\( 6 \\) apples"

    def test_random_value_is_bound_once(self, bindings, context):
        gate = build_gate("{{_ r = 1 10 rand}}", bindings, context)
        bound = gate.bindings.get("r")
        assert isinstance(bound, Constant)
        assert 1.0 <= bound.magnitude.value <= 10.0


class TestInterpolationErrors:
    def test_unknown_mode(self, bindings, context):
        with pytest.raises(StructuralError, match="mode"):
            interpolate_line("{{? 1}}", bindings, context)

    def test_unbound_variable_reports_location(self, bindings, context):
        with pytest.raises(UnboundReference) as exc_info:
            interpolate_line("value {{. y}}", bindings, context)
        assert "{{. y}}" in str(exc_info.value)

    def test_conflicting_binding(self, context):
        bindings = Bindings()
        interpolate_line("{{_ x = 1}}", bindings, context)
        with pytest.raises(BindingConflict):
            interpolate_line("{{_ x = 2}}", bindings, context)
