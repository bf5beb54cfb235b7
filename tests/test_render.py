"""Tests for the tree walk and the Twine / reveal.js renderers."""

import json
import random
import re
from pathlib import Path

import pytest

from twineproblems.config import Config, RenderConfig, RenderLabels
from twineproblems.exercise import compile_exercise
from twineproblems.output import RevealRender, TwineRender, get_renderer, render_exercise
from twineproblems.output.base import Render
from twineproblems.output.reveal import section_id
from twineproblems.output.walker import Option, _choices


class Recorder(Render):
    """Renderer that logs every hook call as one line."""

    def begin_exercise(self, exercise):
        return f"exercise {exercise.title}\n"

    def begin_passage(self, passage_id):
        return f"passage {passage_id}\n"

    def text(self, text):
        return f"text {text!r}\n"

    def link(self, label, target):
        return f"link {label} -> {target}\n"

    def begin_choices(self, prompt):
        return "choices\n"


def passage_ids(output: str) -> list[str]:
    return re.findall(r"^passage (\S+)$", output, re.MULTILINE)


@pytest.fixture()
def exercise(choice_document):
    return compile_exercise(choice_document, rng=random.Random(0))


class TestWalk:
    def test_pages(self, exercise):
        output = render_exercise(exercise, Recorder(), random.Random(0))
        assert passage_ids(output) == ["Start", "Start.1-note", "Start-bad1", "Start.1"]

    def test_note_and_explanation_pages(self, exercise):
        output = render_exercise(exercise, Recorder(), random.Random(0))
        assert "text 'Because it is.'\nlink Continue -> Start.1\n" in output
        assert "text 'Nope.'\nlink Try again -> Start\n" in output

    def test_history_accumulates(self, exercise):
        output = render_exercise(exercise, Recorder(), random.Random(0))
        last_page = output.split("passage Start.1\n")[1]
        assert "Right\\n\\nWell done." in last_page
        assert last_page.startswith("text 'A current of")
        assert "link Start again -> Start" in last_page

    def test_every_option_is_offered(self, exercise):
        output = render_exercise(exercise, Recorder(), random.Random(0))
        targets = re.findall(r"^link Option \d -> (\S+)$", output, re.MULTILINE)
        assert sorted(targets) == ["Start-bad1", "Start.1-note"]

    def test_empty_option_uses_continue_label(self):
        exercise = compile_exercise({"title": "T", "passages": [{"pass": "A"}, {"pass": "... B"}]})
        output = render_exercise(exercise, Recorder(), random.Random(0))
        assert "text 'Continue'\nlink Option 1 -> Start.1\n" in output

    def test_post_bad_options(self):
        document = {"title": "T", "passages": [
            {"pass": {"text": "A", "post_bad": ["X", "Y"]}},
            {"pass": "B"},
        ]}
        output = render_exercise(compile_exercise(document), Recorder(), random.Random(0))
        assert passage_ids(output) == ["Start", "Start-bad1", "Start-bad2", "Start.1"]
        assert output.count("text 'That is not correct.'") == 2

    def test_false_condition_offers_skipped_body_as_wrong(self):
        document = {"title": "T", "passages": [
            {"pass": "A"},
            {"cond": "false", "cont": {"pass": "Skipped"}},
            {"pass": "C"},
        ]}
        output = render_exercise(compile_exercise(document), Recorder(), random.Random(0))
        assert "text 'Skipped'\nlink Option" in output
        assert "Start-bad1" in passage_ids(output)

    def test_same_seed_same_output(self, exercise):
        first = render_exercise(exercise, TwineRender(), random.Random(42))
        second = render_exercise(exercise, TwineRender(), random.Random(42))
        assert first == second

    def test_labels_from_config(self, exercise):
        config = Config(render=RenderConfig(labels=RenderLabels(retry="Otra vez", option="Opción {n}")))
        output = exercise.render(Recorder(), random.Random(0), config)
        assert "link Otra vez -> Start" in output
        assert "link Opción 1 ->" in output

    def test_concurrent_pages(self):
        document = {"title": "T", "passages": [{"pass": "S"}, {"con": [{"pass": "A"}, {"pass": "B"}]}]}
        output = render_exercise(compile_exercise(document), Recorder(), random.Random(0))
        assert passage_ids(output) == ["Start", "Start.1", "Start.1.1", "Start.2", "Start.2.1"]

    def test_choices_pair_labels_with_targets(self, exercise):
        options, side_pages = _choices(exercise.tree, "Start", RenderLabels())
        assert options == [Option("Right", "Start.1-note"), Option("Wrong", "Start-bad1")]
        assert [page.page_id for page in side_pages] == ["Start.1-note", "Start-bad1"]


class TestTwine:
    def test_story_header(self, exercise):
        output = exercise.render(TwineRender(), random.Random(0))
        assert output.startswith(":: StoryTitle\nChoices\n\n:: StoryData\n")
        data = json.loads(output.split(":: StoryData\n")[1].split("\n\n")[0])
        assert data["ifid"] == exercise.ifid
        assert data["start"] == "Start"
        assert ":: UserScripts [script]" in output

    def test_passages_and_links(self, exercise):
        output = exercise.render(TwineRender(), random.Random(0))
        assert re.findall(r"^:: (Start\S*)$", output, re.MULTILINE) == [
            "Start", "Start.1-note", "Start-bad1", "Start.1",
        ]
        assert "[[Try again->Start]]" in output
        assert "[[Continue->Start.1]]" in output

    def test_math_is_verbatim(self):
        assert TwineRender().text("a \\( x \\) b \\[ y \\]") == 'a """\\( x \\)""" b """\\[ y \\]"""\n'

    def test_output_filename(self):
        assert TwineRender().output_filename(Path("out"), Path("in/ex.yaml")) == Path("out/ex.tw")


class TestReveal:
    def test_sections_and_links(self, exercise):
        output = exercise.render(RevealRender(), random.Random(0))
        assert output.startswith("<!doctype html>")
        assert "<title>Choices</title>" in output
        assert f'<section id="{section_id("Start.1")}">' in output
        assert f'href="#/{section_id("Start.1-note")}"' in output
        assert output.rstrip().endswith("</html>")

    def test_section_ids(self):
        assert section_id("Start") == section_id("Start")
        assert section_id("Start.1") != section_id("Start.2")
        assert re.fullmatch(r"section-[0-9a-f]{16}", section_id("Start"))

    def test_paragraphs(self):
        assert RevealRender().text("a\nb\n\nc") == "  <p>\n    a b\n  </p>\n  <p>\n    c\n  </p>\n"

    def test_html_is_escaped(self):
        assert "a &lt; b" in RevealRender().text("a < b")

    def test_output_filename(self):
        assert RevealRender().output_filename(Path("out"), Path("ex.yml")) == Path("out/ex.html")


class TestGetRenderer:
    def test_known(self):
        assert isinstance(get_renderer("twine"), TwineRender)
        assert isinstance(get_renderer("reveal"), RevealRender)

    def test_unknown(self):
        with pytest.raises(ValueError, match="latex"):
            get_renderer("latex")
