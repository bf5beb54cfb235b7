"""Exercise loading: from a YAML document to a single expanded passage tree."""

import logging
import random
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from twineproblems.algebra.bindings import Bindings
from twineproblems.config import Config
from twineproblems.errors import CompileError, StructuralError
from twineproblems.macros import MacroLibrary
from twineproblems.models import ExerciseDocument
from twineproblems.passages.elements import build_element
from twineproblems.passages.expansion import PassageTree, expand_root
from twineproblems.passages.gate import BuildContext

logger = logging.getLogger(__name__)


@dataclass
class Exercise:
    title: str
    tree: PassageTree
    ifid: str  # story identifier required by Twine
    source: Path | None = None

    def render(self, renderer, rng: random.Random | None = None, config: Config | None = None) -> str:
        from twineproblems.output.walker import render_exercise

        labels = (config or Config()).render.labels
        return render_exercise(self, renderer, rng or random.Random(), labels)


def compile_exercise(
    document: Any,
    config: Config | None = None,
    *,
    base_dir: Path | None = None,
    extra_paths: list[Path] | None = None,
    rng: random.Random | None = None,
) -> Exercise:
    """Compile an already parsed YAML document.

    Macro files are searched in ``base_dir``, the configured macro paths,
    ``extra_paths`` and finally the document's own ``paths`` entries.
    """
    config = config or Config()
    rng = rng or random.Random(config.seed)

    try:
        doc = ExerciseDocument.model_validate(document)
    except ValidationError as exc:
        raise StructuralError(f"Invalid exercise document: {exc}") from None

    macros = MacroLibrary()
    if base_dir is not None:
        macros.add_paths([base_dir])
    macros.add_paths(config.resolved_macro_paths)
    macros.add_paths(extra_paths or [])
    macros.add_paths([(base_dir or Path.cwd()) / p for p in doc.paths])
    macros.include(doc.macros)

    context = BuildContext(
        macros=macros,
        units=config.unit_table(),
        rng=rng,
        max_macro_depth=config.expression.max_macro_depth,
        tolerance=config.expression.tolerance,
    )
    bindings = Bindings(tolerance=config.expression.tolerance)

    root, final_bindings = build_element(doc.passages, bindings, context)
    tree = expand_root(root)
    logger.info("Compiled '%s' (%d variables bound)", doc.title, len(final_bindings))

    ifid = str(uuid.UUID(int=rng.getrandbits(128), version=4)).upper()
    return Exercise(title=doc.title, tree=tree, ifid=ifid)


def load_exercise(
    path: Path,
    config: Config | None = None,
    extra_paths: list[Path] | None = None,
    rng: random.Random | None = None,
) -> Exercise:
    """Read and compile the exercise YAML file at ``path``."""
    logger.info("Loading exercise %s", path)
    try:
        try:
            document = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise StructuralError(f"Invalid YAML: {exc}") from None

        exercise = compile_exercise(
            document, config, base_dir=path.parent, extra_paths=extra_paths, rng=rng,
        )
    except CompileError as exc:
        raise exc.at(str(path))

    exercise.source = path
    return exercise
