"""Combinator trees as authored, built from the YAML ``passages`` node."""

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from twineproblems.algebra.bindings import Bindings
from twineproblems.algebra.machine import parse_expression
from twineproblems.errors import CompileError, StructuralError, UnitMismatch
from twineproblems.models import Combinator, CondSpec, PassSpec
from twineproblems.passages.gate import BuildContext, Gate, build_gate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Passage:
    """One step of the story: its good gate plus wrong options around it."""
    previous_bad: tuple[Gate, ...]
    text: Gate
    post_bad: tuple[Gate, ...]


class PassageElem:
    """Base class of the authored combinator tree."""


@dataclass(frozen=True)
class Leaf(PassageElem):
    passage: Passage


@dataclass(frozen=True)
class Sequence(PassageElem):
    items: tuple[PassageElem, ...]


@dataclass(frozen=True)
class Alternative(PassageElem):
    items: tuple[PassageElem, ...]


@dataclass(frozen=True)
class Concurrent(PassageElem):
    items: tuple[PassageElem, ...]


def leading_gates(elem: PassageElem) -> list[Gate]:
    """Text gates a reader could meet first when entering ``elem``."""
    if isinstance(elem, Leaf):
        return [elem.passage.text]
    if isinstance(elem, Sequence):
        return leading_gates(elem.items[0]) if elem.items else []
    if isinstance(elem, (Alternative, Concurrent)):
        gates: list[Gate] = []
        for item in elem.items:
            gates.extend(leading_gates(item))
        return gates
    raise StructuralError(f"Unknown passage element {elem!r}")


def build_element(
    node: Any,
    bindings: Bindings,
    context: BuildContext,
    where: str = "passages",
) -> tuple[PassageElem, Bindings]:
    """Build the element for ``node`` and return the bindings that flow past it.

    Sequences thread bindings from item to item. Alternatives and concurrent
    groups give every branch its own copy; after a concurrent group the
    bindings of all branches are merged, since every branch is eventually
    taken.
    """
    if isinstance(node, list):
        return _build_sequence(node, bindings, context, where)

    if not isinstance(node, dict):
        raise StructuralError(f"Expected a combinator, got {node!r}").at(where)

    if set(node) == {"cond", "cont"}:
        return _build_cond(node, bindings, context, where)

    if len(node) != 1:
        raise StructuralError(
            f"A combinator has exactly one key, got {sorted(map(str, node))}"
        ).at(where)

    key = next(iter(node))
    try:
        combinator = Combinator(key)
    except ValueError:
        raise StructuralError(f"Unknown combinator '{key}'").at(where) from None

    body = node[key]
    inner = f"{where}.{combinator.value}"
    if combinator is Combinator.PASS:
        return _build_pass(body, bindings, context, inner)
    if combinator is Combinator.SEQ:
        return _build_sequence(_items(body, inner), bindings, context, inner)
    if combinator is Combinator.ALT:
        return _build_alternative(_items(body, inner), bindings, context, inner)
    if combinator is Combinator.CON:
        return _build_concurrent(_items(body, inner), bindings, context, inner)
    raise StructuralError("'cond' needs a 'cont' combinator next to it").at(where)


def _validate(model: type[BaseModel], data: Any, where: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise StructuralError(f"Invalid {model.__name__}: {exc}").at(where) from None


def _items(body: Any, where: str) -> list:
    if not isinstance(body, list) or not body:
        raise StructuralError(f"Expected a non-empty list, got {body!r}").at(where)
    return body


def _build_pass(body: Any, bindings: Bindings, context: BuildContext, where: str):
    spec: PassSpec = _validate(PassSpec, {"text": body} if isinstance(body, str) else body, where)
    try:
        previous_bad = tuple(build_gate(src, bindings, context) for src in spec.pre_bad)
        text = build_gate(spec.text, bindings, context)
        post_bad = tuple(build_gate(src, text.bindings, context) for src in spec.post_bad)
    except CompileError as exc:
        raise exc.at(where)

    passage = Passage(previous_bad=previous_bad, text=text, post_bad=post_bad)
    return Leaf(passage), text.bindings


def _build_sequence(items: list, bindings: Bindings, context: BuildContext, where: str):
    if not items:
        raise StructuralError("Empty sequence").at(where)
    current = bindings
    elems: list[PassageElem] = []
    for i, child in enumerate(items):
        elem, current = build_element(child, current, context, f"{where}[{i}]")
        elems.append(elem)
    return Sequence(tuple(elems)), current


def _build_alternative(items: list, bindings: Bindings, context: BuildContext, where: str):
    elems = tuple(
        build_element(child, bindings.copy(), context, f"{where}[{i}]")[0]
        for i, child in enumerate(items)
    )
    return Alternative(elems), bindings


def _build_concurrent(items: list, bindings: Bindings, context: BuildContext, where: str):
    merged = bindings.copy()
    elems: list[PassageElem] = []
    for i, child in enumerate(items):
        elem, branch = build_element(child, bindings.copy(), context, f"{where}[{i}]")
        elems.append(elem)
        try:
            merged.merge(branch, context.rng)
        except CompileError as exc:
            raise exc.at(f"{where}[{i}]")
    return Concurrent(tuple(elems)), merged


def _build_cond(node: dict, bindings: Bindings, context: BuildContext, where: str):
    spec: CondSpec = _validate(CondSpec, node, where)
    try:
        expr = parse_expression(
            spec.cond, context.macros, units=context.units, max_macro_depth=context.max_macro_depth,
            tolerance=context.tolerance,
        )
        verdict = expr.value(bindings.copy(), context.rng)
        if not verdict.is_boolean:
            raise UnitMismatch(f"Condition '{spec.cond}' is not boolean (unit [{verdict.unit}])")
    except CompileError as exc:
        raise exc.at(f"{where}.cond")

    if verdict.value:
        logger.debug("Condition '%s' holds at %s", spec.cond, where)
        return build_element(spec.cont, bindings, context, f"{where}.cont")

    # the skipped body still shows up as wrong options
    logger.debug("Condition '%s' fails at %s", spec.cond, where)
    body, _ = build_element(spec.cont, bindings.copy(), context, f"{where}.cont")
    dead_end = Passage(previous_bad=tuple(leading_gates(body)), text=Gate.empty(bindings), post_bad=())
    return Leaf(dead_end), bindings
