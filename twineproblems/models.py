"""Pydantic models for the exercise authoring format."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Combinator(str, Enum):
    PASS = "pass"
    SEQ = "seq"
    ALT = "alt"
    CON = "con"
    COND = "cond"


def _as_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return value


class ExerciseDocument(BaseModel):
    """Top level of an exercise YAML file."""
    title: str
    passages: Any
    macros: list[str] = Field(default_factory=list)  # macro file names
    paths: list[str] = Field(default_factory=list)  # extra macro search dirs

    @field_validator("macros", "paths", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        return _as_list(value)


class PassSpec(BaseModel):
    """Body of a ``pass`` combinator."""
    model_config = ConfigDict(extra="forbid")

    text: str
    pre_bad: list[str] = Field(default_factory=list)
    post_bad: list[str] = Field(default_factory=list)

    @field_validator("pre_bad", "post_bad", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        return _as_list(value)


class CondSpec(BaseModel):
    """Conditional inclusion: ``{cond: <bool expr>, cont: <combinator>}``."""
    model_config = ConfigDict(extra="forbid")

    cond: str
    cont: Any

    @field_validator("cond", mode="before")
    @classmethod
    def _bool_literal(cls, value: Any) -> Any:
        # YAML turns a bare true/false into a bool
        if isinstance(value, bool):
            return "true" if value else "false"
        return value
