"""Shared test fixtures for twineproblems tests."""

import random
from pathlib import Path

import pytest
import yaml

from twineproblems.algebra.bindings import Bindings
from twineproblems.passages.gate import BuildContext

SAMPLES_DIR = Path(__file__).resolve().parent.parent / "samples"


@pytest.fixture()
def samples_dir():
    return SAMPLES_DIR


@pytest.fixture()
def rng():
    return random.Random(1234)


@pytest.fixture()
def context(rng):
    """Build context with default units, no macros and a seeded RNG."""
    return BuildContext(rng=rng)


@pytest.fixture()
def bindings():
    return Bindings()


@pytest.fixture()
def write_yaml(tmp_path):
    """Write a YAML document (or raw text) under tmp_path and return its path."""
    def _write(name: str, data) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        text = data if isinstance(data, str) else yaml.safe_dump(data, sort_keys=False)
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture()
def choice_document():
    """Intro, then one good option with a note and one wrong option."""
    return {
        "title": "Choices",
        "passages": [
            {"pass": "A current of {{. I = 2mA}} flows."},
            {"pass": {
                "text": "___ Right\n... Well done.\n--- Because it is.",
                "pre_bad": ["___ Wrong\n--- Nope."],
            }},
        ],
    }
