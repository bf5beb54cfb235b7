"""Gates: the leaf blocks of narrative text.

A gate source is split in zones by line prefixes:

    ___ text shown as the option that leads here
    ... follow-up text shown in the main story once chosen
    --- note shown on a side page right after choosing
    !   verbatim line, copied to the current zone without interpolation

Lines are interpolated with ``{{<mode> [name =] <formula>}}`` where mode is
``.`` (value), ``,`` (formula), ``;`` (formula = value), ``!`` (raw number)
or ``_`` (evaluate silently). Use ``\\{``, ``\\}`` and ``\\\\`` for literal
braces and backslashes.
"""

import logging
import random
import re
from dataclasses import dataclass, field
from typing import Mapping

from twineproblems.algebra.bindings import DEFAULT_TOLERANCE, Bindings
from twineproblems.algebra.expression import Constant
from twineproblems.algebra.machine import DEFAULT_MAX_MACRO_DEPTH, parse_expression
from twineproblems.algebra.units import DEFAULT_UNITS, UnitTable
from twineproblems.errors import CompileError, StructuralError

logger = logging.getLogger(__name__)

TEXT = "text"
FOLLOW = "follow"
NOTE = "note"

ZONE_MARKERS = (("___", TEXT), ("...", FOLLOW), ("---", NOTE))
VERBATIM = "!"

INTERPOLATION_RE = re.compile(
    r"""\{\{
    (?P<mode>.)\s*
    (?:(?P<name>[^\s=]+?)\s*=(?!=)\s*)?
    (?P<expr>.+?)
    \s*\}\}""",
    re.VERBOSE,
)

DISPLAY_LINE_RE = re.compile(r"^[^0-9A-Za-z]*\{\{(.*)\}\}[^0-9A-Za-z]*$")

# escaped characters are swapped for sentinels while matching
_ESCAPES = (("\\\\", "\x00"), ("\\{", "\x01"), ("\\}", "\x02"))
_UNESCAPES = (("\x01", "{"), ("\x02", "}"), ("\x00", "\\"))

MODES_NEEDING_VALUE = frozenset({".", ";", "!", "_"})


@dataclass
class BuildContext:
    """Everything gate interpolation needs besides the bindings."""
    macros: Mapping[str, str] = field(default_factory=dict)
    units: UnitTable = DEFAULT_UNITS
    rng: random.Random = field(default_factory=random.Random)
    max_macro_depth: int = DEFAULT_MAX_MACRO_DEPTH
    tolerance: float = DEFAULT_TOLERANCE


@dataclass(frozen=True)
class Gate:
    text: str = ""
    follow: str = ""
    note: str = ""
    bindings: Bindings = field(default_factory=Bindings, compare=False)

    @classmethod
    def empty(cls, bindings: Bindings | None = None) -> "Gate":
        return cls(bindings=bindings.copy() if bindings is not None else Bindings())

    @property
    def is_empty(self) -> bool:
        return not (self.text or self.follow or self.note)


def build_gate(source: str, bindings: Bindings, context: BuildContext) -> Gate:
    """Interpolate ``source`` zone by zone; the gate keeps the updated bindings."""
    working = bindings.copy()
    zones: dict[str, list[str]] = {TEXT: [], FOLLOW: [], NOTE: []}
    zone = TEXT

    for line in source.split("\n"):
        if line.startswith(VERBATIM):
            zones[zone].append(line[len(VERBATIM):])
            continue

        for marker, target in ZONE_MARKERS:
            if line.startswith(marker):
                zone = target
                line = line[len(marker):].lstrip()
                break

        zones[zone].append(interpolate_line(line, working, context))

    return Gate(
        text="\n".join(zones[TEXT]).strip(),
        follow="\n".join(zones[FOLLOW]).strip(),
        note="\n".join(zones[NOTE]).strip(),
        bindings=working,
    )


def interpolate_line(line: str, bindings: Bindings, context: BuildContext) -> str:
    """Replace every ``{{...}}`` of ``line``, binding names into ``bindings``."""
    encoded = _encode(line)
    start_math, end_math = _math_markers(_is_display_line(encoded))

    output: list[str] = []
    cursor = 0
    for match in INTERPOLATION_RE.finditer(encoded):
        output.append(_decode(encoded[cursor:match.start()]))
        try:
            output.append(_render_interpolation(match, bindings, context, start_math, end_math))
        except CompileError as exc:
            raise exc.at(f"'{_decode(match.group(0))}'")
        cursor = match.end()
    output.append(_decode(encoded[cursor:]))

    return "".join(output)


def _render_interpolation(
    match: re.Match,
    bindings: Bindings,
    context: BuildContext,
    start_math: str,
    end_math: str,
) -> str:
    mode = match.group("mode")
    name = _decode(match.group("name") or "")
    expr_text = _decode(match.group("expr"))

    if mode not in MODES_NEEDING_VALUE and mode != ",":
        raise StructuralError(f"Unknown interpolation mode '{mode}'")

    expr = parse_expression(
        expr_text, context.macros, units=context.units, max_macro_depth=context.max_macro_depth,
        tolerance=context.tolerance,
    )

    magnitude = None
    if name or mode in MODES_NEEDING_VALUE:
        magnitude = expr.value(bindings, context.rng)
    if name:
        bindings.bind(name, Constant(magnitude), context.rng)
        logger.debug("%s = %s", name, magnitude)

    label = f"{name} = " if name else ""
    if mode == ".":
        return f"{start_math}{label}{magnitude.display(context.units)}{end_math}"
    if mode == ",":
        return f"{start_math}{label}{expr.show(context.units)}{end_math}"
    if mode == ";":
        shown = expr.show(context.units)
        return f"{start_math}{label}{shown} = {magnitude.display(context.units)}{end_math}"
    if mode == "!":
        raw = f"{name}=" if name else ""
        return f"{raw}{magnitude.value}"
    return ""


def _is_display_line(encoded: str) -> bool:
    match = DISPLAY_LINE_RE.match(encoded)
    return match is not None and "}}" not in match.group(1)


def _math_markers(display: bool) -> tuple[str, str]:
    if display:
        return "\\[ ", " \\]"
    return "\\( ", " \\)"


def _encode(text: str) -> str:
    for escaped, sentinel in _ESCAPES:
        text = text.replace(escaped, sentinel)
    return text


def _decode(text: str) -> str:
    for sentinel, plain in _UNESCAPES:
        text = text.replace(sentinel, plain)
    return text
