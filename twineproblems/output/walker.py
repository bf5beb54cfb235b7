"""Walk an expanded passage tree and drive a renderer.

Page ids follow the tree: the root is ``Start`` and child k of page ``X`` is
``X.k``. Side pages hang off their owner: ``X.k-note`` shows the note of a
good option before continuing to ``X.k``, ``X-badN`` explains the N-th wrong
option offered on ``X`` and sends the reader back to ``X``.
"""

import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

from twineproblems.config import RenderLabels
from twineproblems.output.base import Render
from twineproblems.passages.elements import Passage
from twineproblems.passages.expansion import PassageTree

if TYPE_CHECKING:
    from twineproblems.exercise import Exercise

logger = logging.getLogger(__name__)

START = "Start"


@dataclass
class Option:
    label: str
    target: str


@dataclass
class SidePage:
    page_id: str
    text: str
    link_label: str
    link_target: str


def render_exercise(
    exercise: "Exercise",
    renderer: Render,
    rng: random.Random,
    labels: RenderLabels | None = None,
) -> str:
    """Render the whole exercise; ``rng`` only decides option order."""
    labels = labels or RenderLabels()
    out: list[str] = [renderer.begin_exercise(exercise)]
    _render_node(exercise.tree, START, [], renderer, rng, labels, out)
    out.append(renderer.end_exercise(exercise))
    logger.info("Rendered '%s' with %s", exercise.title, type(renderer).__name__)
    return "".join(out)


def story_step(passage: Passage) -> list[str]:
    """Text a passage adds to the running story once it has been reached."""
    gate = passage.text
    return [part for part in (gate.text, gate.follow) if part]


def _render_node(
    tree: PassageTree,
    node_id: str,
    history: list[str],
    renderer: Render,
    rng: random.Random,
    labels: RenderLabels,
    out: list[str],
) -> None:
    story = history + story_step(tree.passage)

    out.append(renderer.begin_passage(node_id))
    out.append(renderer.text("\n\n".join(story)))

    if tree.is_ending:
        out.append(renderer.link(labels.restart, START))
        out.append(renderer.end_passage(node_id))
        return

    options, side_pages = _choices(tree, node_id, labels)
    rng.shuffle(options)

    out.append(renderer.begin_choices(labels.prompt))
    for n, option in enumerate(options, start=1):
        out.append(renderer.begin_option(option.target))
        out.append(renderer.text(option.label))
        out.append(renderer.link(labels.option.format(n=n), option.target))
        out.append(renderer.end_option(option.target))
    out.append(renderer.end_choices())
    out.append(renderer.end_passage(node_id))

    for page in side_pages:
        out.append(renderer.begin_passage(page.page_id))
        out.append(renderer.text(page.text))
        out.append(renderer.link(page.link_label, page.link_target))
        out.append(renderer.end_passage(page.page_id))

    for k, child in enumerate(tree.children, start=1):
        _render_node(child, f"{node_id}.{k}", story, renderer, rng, labels, out)


def _choices(
    tree: PassageTree,
    node_id: str,
    labels: RenderLabels,
) -> tuple[list[Option], list[SidePage]]:
    options: list[Option] = []
    side_pages: list[SidePage] = []
    wrong_gates = []

    for k, child in enumerate(tree.children, start=1):
        child_id = f"{node_id}.{k}"
        gate = child.passage.text
        target = child_id
        if gate.note:
            target = f"{child_id}-note"
            side_pages.append(SidePage(target, gate.note, labels.proceed, child_id))
        options.append(Option(gate.text or labels.proceed, target))
        wrong_gates.extend(child.passage.previous_bad)

    wrong_gates.extend(tree.passage.post_bad)

    for n, gate in enumerate(wrong_gates, start=1):
        page_id = f"{node_id}-bad{n}"
        explanation = "\n\n".join(part for part in (gate.follow, gate.note) if part) or labels.wrong
        side_pages.append(SidePage(page_id, explanation, labels.retry, node_id))
        options.append(Option(gate.text, page_id))

    return options, side_pages
