"""Renderers for compiled exercises."""

from twineproblems.output.base import Render
from twineproblems.output.reveal import RevealRender
from twineproblems.output.twine import TwineRender
from twineproblems.output.walker import START, render_exercise

RENDERERS: dict[str, type[Render]] = {
    "twine": TwineRender,
    "reveal": RevealRender,
}


def get_renderer(name: str) -> Render:
    try:
        return RENDERERS[name]()
    except KeyError:
        raise ValueError(f"Unknown renderer '{name}' (available: {', '.join(RENDERERS)})") from None


__all__ = ["RENDERERS", "START", "Render", "RevealRender", "TwineRender", "get_renderer", "render_exercise"]
