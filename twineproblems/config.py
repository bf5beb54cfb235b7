"""Configuration loading for the exercise compiler."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from twineproblems.algebra.units import DEFAULT_PREFIXES, DEFAULT_PRETTY, UnitTable


class UnitsConfig(BaseModel):
    prefixes: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_PREFIXES))
    pretty: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_PRETTY))


class ExpressionConfig(BaseModel):
    tolerance: float = 1e-5  # absolute, for rebinding checks and ==/!=
    max_macro_depth: int = 64


class RenderLabels(BaseModel):
    prompt: str = "Choose a correct option:"
    option: str = "Option {n}"
    proceed: str = "Continue"
    retry: str = "Try again"
    restart: str = "Start again"
    wrong: str = "That is not correct."


class RenderConfig(BaseModel):
    renderer: str = "twine"
    output_dir: str | None = None  # defaults to the input file's directory
    labels: RenderLabels = Field(default_factory=RenderLabels)


class Config(BaseModel):
    seed: int | None = None
    macro_paths: list[str] = Field(default_factory=list)
    units: UnitsConfig = Field(default_factory=UnitsConfig)
    expression: ExpressionConfig = Field(default_factory=ExpressionConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)

    def unit_table(self) -> UnitTable:
        return UnitTable(prefixes=dict(self.units.prefixes), pretty=dict(self.units.pretty))

    @property
    def resolved_macro_paths(self) -> list[Path]:
        return [Path(p).expanduser() for p in self.macro_paths]


def _default_config_path() -> Path:
    return Path.cwd() / "twineproblems.yaml"


def load_config(config_path: Path | None = None) -> Config:
    """Load config from YAML file. Falls back to defaults if file missing."""
    if config_path is None:
        config_path = _default_config_path()

    if config_path.exists():
        try:
            raw: dict[str, Any] = yaml.safe_load(config_path.read_text()) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in config file {config_path}: {exc}") from None
        if not isinstance(raw, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        return Config(**raw)

    return Config()
