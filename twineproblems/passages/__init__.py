"""Narrative structure: gates, authored combinator trees and their expansion."""

from twineproblems.passages.elements import (
    Alternative,
    Concurrent,
    Leaf,
    Passage,
    PassageElem,
    Sequence,
    build_element,
    leading_gates,
)
from twineproblems.passages.expansion import PassageTree, expand, expand_root, graft, linear_paths
from twineproblems.passages.gate import BuildContext, Gate, build_gate

__all__ = [
    "Alternative",
    "BuildContext",
    "Concurrent",
    "Gate",
    "Leaf",
    "Passage",
    "PassageElem",
    "PassageTree",
    "Sequence",
    "build_element",
    "build_gate",
    "expand",
    "expand_root",
    "graft",
    "leading_gates",
    "linear_paths",
]
