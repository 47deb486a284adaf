"""Channel renderers: terminal text, HTML fragments and diff views."""

from __future__ import annotations

from pretty_inspect.renderers.diff import DiffRenderer
from pretty_inspect.renderers.html import HtmlRenderer
from pretty_inspect.renderers.terminal import TerminalRenderer, strip_ansi
from pretty_inspect.renderers.theme import ThemeProfile, ThemeRegistry

__all__ = [
    "DiffRenderer",
    "HtmlRenderer",
    "TerminalRenderer",
    "ThemeProfile",
    "ThemeRegistry",
    "strip_ansi",
]
