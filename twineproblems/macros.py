"""Macro files: YAML mappings of name to formula text.

A macro body is spliced into an expression wherever its name appears as a
token. Files are located by name through an ordered list of search paths.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Iterator

import yaml

from twineproblems.errors import StructuralError

logger = logging.getLogger(__name__)

MACRO_SUFFIXES = (".yaml", ".yml")


class MacroLibrary(Mapping):
    """Macro bodies by name plus the directories macro files are searched in."""

    def __init__(self, paths: list[Path] | None = None) -> None:
        self.paths: list[Path] = []
        self.files: list[Path] = []
        self._bodies: dict[str, str] = {}
        if paths:
            self.add_paths(paths)

    def __getitem__(self, name: str) -> str:
        return self._bodies[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._bodies)

    def __len__(self) -> int:
        return len(self._bodies)

    def add_paths(self, paths: list[Path] | list[str]) -> None:
        for p in paths:
            path = Path(p).expanduser()
            if path not in self.paths:
                self.paths.append(path)

    def define(self, name: str, body: str) -> None:
        previous = self._bodies.get(name)
        if previous is not None and previous != body:
            logger.warning("Macro %s redefined", name)
        self._bodies[name] = body

    def find(self, name: str) -> Path:
        """Locate a macro file by name, trying the YAML suffixes when missing."""
        candidates = [name]
        if not name.endswith(MACRO_SUFFIXES):
            candidates += [name + suffix for suffix in MACRO_SUFFIXES]

        direct = Path(name).expanduser()
        if direct.is_absolute() and direct.is_file():
            return direct

        for base in self.paths:
            for candidate in candidates:
                path = base / candidate
                if path.is_file():
                    return path

        searched = ", ".join(str(p) for p in self.paths) or "no search paths"
        raise StructuralError(f"Macro file '{name}' not found ({searched})")

    def include(self, names: list[str]) -> None:
        for name in names:
            self.load_file(self.find(name))

    def load_file(self, path: Path) -> None:
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise StructuralError(f"Invalid YAML in macro file {path}: {exc}") from None
        if not isinstance(raw, dict):
            raise StructuralError(f"Macro file {path} must contain a mapping of name to formula")

        for name, body in raw.items():
            if isinstance(body, bool) or not isinstance(body, (str, int, float)):
                raise StructuralError(f"Macro '{name}' in {path} must be formula text, got {body!r}")
            self.define(str(name), str(body))

        self.files.append(path)
        logger.info("Loaded %d macros from %s", len(raw), path)
