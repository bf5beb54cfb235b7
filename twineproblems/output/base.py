"""Base renderer interface."""

import abc
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from twineproblems.exercise import Exercise


class Render(abc.ABC):
    """Markup producer driven by the passage tree walk.

    The walk calls these hooks in tree order and concatenates what they
    return; renderers never see the tree itself.
    """

    extension: str = ".txt"

    def output_filename(self, output_dir: Path, input_path: Path) -> Path:
        return output_dir / input_path.with_suffix(self.extension).name

    @abc.abstractmethod
    def begin_exercise(self, exercise: "Exercise") -> str:
        ...

    def end_exercise(self, exercise: "Exercise") -> str:
        return ""

    @abc.abstractmethod
    def begin_passage(self, passage_id: str) -> str:
        ...

    def end_passage(self, passage_id: str) -> str:
        return ""

    @abc.abstractmethod
    def text(self, text: str) -> str:
        """Markup for narrative text containing ``\\( \\)`` / ``\\[ \\]`` math."""
        ...

    @abc.abstractmethod
    def link(self, label: str, target: str) -> str:
        ...

    @abc.abstractmethod
    def begin_choices(self, prompt: str) -> str:
        ...

    def end_choices(self) -> str:
        return ""

    def begin_option(self, target: str) -> str:
        return ""

    def end_option(self, target: str) -> str:
        return ""
