"""reveal.js slide deck: one section per passage, navigated through hash links."""

import hashlib

from twineproblems.output.base import Render

HEAD = """\
<!doctype html>
<html>
    <head>
        <meta charset="utf-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0, maximum-scale=1.0, user-scalable=no">

        <title>{title}</title>
        <script>var ifid = "{ifid}"</script>

        <link rel="stylesheet" href="dist/reset.css">
        <link rel="stylesheet" href="dist/reveal.css">
        <link rel="stylesheet" href="dist/theme/black.css">

        <style>
            .scrollable-slide {{
                height: 700px;
                overflow-y: auto !important;
            }}
            .reveal {{
                font-size: 20px;
            }}
            .reveal p {{
                text-align: justify;
            }}
        </style>
    </head>
    <body>
        <div class="reveal">
            <div class="slides">
"""

TAIL = """
            </div>
        </div>

        <script src="dist/reveal.js"></script>
        <script src="plugin/math/math.js"></script>
        <script>
            Reveal.initialize({
                hash: true,
                progress: false,
                controls: false,
                keyboard: false,
                transition: 'slide',
                math: {
                    mathjax: 'https://cdn.jsdelivr.net/gh/mathjax/mathjax@2/MathJax.js',
                    config: 'TeX-AMS_HTML-full',
                },
                plugins: [ RevealMath ]
            });

            // long passages scroll inside their slide
            function resetSlideScrolling(slide) {
                slide.classList.remove('scrollable-slide');
            }

            function handleSlideScrolling(slide) {
                if (slide.scrollHeight >= 700) {
                    slide.classList.add('scrollable-slide');
                }
            }

            Reveal.addEventListener('ready', function (event) {
                handleSlideScrolling(event.currentSlide);
            });

            Reveal.addEventListener('slidechanged', function (event) {
                if (event.previousSlide) {
                    resetSlideScrolling(event.previousSlide);
                }
                handleSlideScrolling(event.currentSlide);
            });
        </script>
    </body>
</html>
"""


def _esc(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


def section_id(passage_id: str) -> str:
    """Stable anchor for a passage; passage ids contain dots reveal.js can't route."""
    digest = hashlib.blake2b(passage_id.encode("utf-8"), digest_size=8).hexdigest()
    return f"section-{digest}"


class RevealRender(Render):
    extension = ".html"

    def begin_exercise(self, exercise) -> str:
        return HEAD.format(title=_esc(exercise.title), ifid=exercise.ifid)

    def end_exercise(self, exercise) -> str:
        return TAIL

    def begin_passage(self, passage_id: str) -> str:
        return f'\n<section id="{section_id(passage_id)}">\n'

    def end_passage(self, passage_id: str) -> str:
        return f"<!-- {passage_id} --></section>\n"

    def text(self, text: str) -> str:
        """Blank lines separate paragraphs; other line breaks become spaces."""
        out: list[str] = []
        paragraph: list[str] = []

        for line in text.split("\n"):
            line = line.strip()
            if line:
                paragraph.append(_esc(line))
            elif paragraph:
                out.append("  <p>\n    " + " ".join(paragraph) + "\n  </p>\n")
                paragraph = []
        if paragraph:
            out.append("  <p>\n    " + " ".join(paragraph) + "\n  </p>\n")

        return "".join(out)

    def link(self, label: str, target: str) -> str:
        return f'  <p><a href="#/{section_id(target)}">{_esc(label)}</a></p>\n'

    def begin_choices(self, prompt: str) -> str:
        return f"  <hr/>\n  <div>{_esc(prompt)}</div>\n"

    def end_choices(self) -> str:
        return "  <hr/>\n"

    def begin_option(self, target: str) -> str:
        return "  <div>\n"

    def end_option(self, target: str) -> str:
        return "  </div>\n"
