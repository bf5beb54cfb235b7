"""Twee 3 source for Twine 2 with the SugarCube story format and MathJax."""

import json
import re

from twineproblems.output.base import Render

STORY_FORMAT = "SugarCube"
STORY_FORMAT_VERSION = "2.36.1"

MATHJAX_SCRIPT = """\
/* Import the mathjax library. */
importScripts([
    "https://polyfill.io/v3/polyfill.min.js?features=es6",
    "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"
]).then(() => {
        $(document).on(':passageinit', () => window.location.reload(false) );
    })
    .catch(err => console.error(`MathJax load error: ${err}`));
"""

# SugarCube would otherwise read markup inside the TeX source
MATH_RE = re.compile(r"\\\(.+?\\\)|\\\[.+?\\\]", re.DOTALL)


class TwineRender(Render):
    extension = ".tw"

    def begin_exercise(self, exercise) -> str:
        story_data = {
            "ifid": exercise.ifid,
            "format": STORY_FORMAT,
            "format-version": STORY_FORMAT_VERSION,
            "start": "Start",
        }
        return (
            f":: StoryTitle\n{exercise.title}\n\n"
            f":: StoryData\n{json.dumps(story_data, indent=2)}\n\n"
            f":: UserScripts [script]\n{MATHJAX_SCRIPT}\n"
        )

    def begin_passage(self, passage_id: str) -> str:
        return f":: {passage_id}\n"

    def end_passage(self, passage_id: str) -> str:
        return "\n"

    def text(self, text: str) -> str:
        if not text:
            return ""
        return MATH_RE.sub(lambda m: f'"""{m.group(0)}"""', text) + "\n"

    def link(self, label: str, target: str) -> str:
        return f"\n[[{label}->{target}]]\n"

    def begin_choices(self, prompt: str) -> str:
        return f"\n{prompt}\n"

    def begin_option(self, target: str) -> str:
        return "\n"
