"""Expansion of combinator trees into choice trees.

Every root-to-leaf path of the resulting forest is one legal reading of the
exercise. A concurrent group of N branches expands into all N! interleaving
orders, so authors should keep such groups small.

Trees are immutable. Grafting rebuilds the path down to each open leaf and
shares the grafted continuation between branches, which is safe because no
tree is ever modified after construction.
"""

import logging
from dataclasses import dataclass

from twineproblems.errors import StructuralError
from twineproblems.passages.elements import Alternative, Concurrent, Leaf, Passage, PassageElem, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PassageTree:
    passage: Passage
    children: tuple["PassageTree", ...] = ()

    @property
    def is_ending(self) -> bool:
        return not self.children

    def count_nodes(self) -> int:
        return 1 + sum(child.count_nodes() for child in self.children)

    def count_endings(self) -> int:
        if self.is_ending:
            return 1
        return sum(child.count_endings() for child in self.children)


Forest = tuple[PassageTree, ...]


def expand(elem: PassageElem) -> list[PassageTree]:
    """Expand ``elem`` into the forest of its linear readings."""
    return list(_expand(elem))


def _expand(elem: PassageElem) -> Forest:
    if isinstance(elem, Leaf):
        return (PassageTree(elem.passage),)
    if isinstance(elem, Sequence):
        return _expand_sequence(elem.items)
    if isinstance(elem, Alternative):
        forest: Forest = ()
        for item in elem.items:
            forest += _expand(item)
        return forest
    if isinstance(elem, Concurrent):
        if not elem.items:
            raise StructuralError("Concurrent group without branches")
        return _expand_concurrent(elem.items, tuple(range(len(elem.items))), {})
    raise StructuralError(f"Unknown passage element {elem!r}")


def _expand_sequence(items: tuple[PassageElem, ...]) -> Forest:
    if not items:
        return ()
    forest = _expand(items[0])
    for item in items[1:]:
        forest = graft(forest, _expand(item))
    return forest


def _expand_concurrent(
    items: tuple[PassageElem, ...],
    remaining: tuple[int, ...],
    memo: dict[tuple[int, ...], Forest],
) -> Forest:
    """Every order of the branches in ``remaining``; memoized per subset."""
    if remaining in memo:
        return memo[remaining]

    if len(remaining) == 1:
        forest = _expand(items[remaining[0]])
    else:
        forest = ()
        for index in remaining:
            rest = tuple(i for i in remaining if i != index)
            forest += graft(_expand(items[index]), _expand_concurrent(items, rest, memo))

    memo[remaining] = forest
    return forest


def graft(forest: Forest | list[PassageTree], continuation: Forest | list[PassageTree]) -> Forest:
    """New forest where every open leaf of ``forest`` continues with ``continuation``."""
    continuation = tuple(continuation)
    return tuple(_graft_tree(tree, continuation) for tree in forest)


def _graft_tree(tree: PassageTree, continuation: Forest) -> PassageTree:
    if tree.is_ending:
        return PassageTree(tree.passage, continuation)
    return PassageTree(tree.passage, tuple(_graft_tree(child, continuation) for child in tree.children))


def linear_paths(forest: Forest | list[PassageTree]) -> list[tuple[Passage, ...]]:
    """All root-to-ending paths of ``forest``, in tree order."""
    paths: list[tuple[Passage, ...]] = []

    def walk(tree: PassageTree, prefix: tuple[Passage, ...]) -> None:
        path = prefix + (tree.passage,)
        if tree.is_ending:
            paths.append(path)
            return
        for child in tree.children:
            walk(child, path)

    for tree in forest:
        walk(tree, ())
    return paths


def expand_root(elem: PassageElem) -> PassageTree:
    """Expand the document root, which must start deterministically."""
    forest = expand(elem)
    if len(forest) != 1:
        raise StructuralError(
            f"The document expands to {len(forest)} starting passages; it must start with a "
            "single passage, not with an alternative or concurrent group"
        )
    tree = forest[0]
    logger.info(
        "Expanded passages into %d nodes with %d endings", tree.count_nodes(), tree.count_endings(),
    )
    return tree
