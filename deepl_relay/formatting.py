"""Markdown and HTML conversion around HTML-aware translation."""

from __future__ import annotations

from typing import List, Sequence

from markdown_it import MarkdownIt
from markdownify import ASTERISK, ATX, markdownify


class MarkdownConverter:
    """Converts markdown texts to HTML and back, one text at a time."""

    def __init__(self) -> None:
        self._parser = MarkdownIt("commonmark").enable("table")

    def markdown_to_html(self, texts: Sequence[str]) -> List[str]:
        return [self._parser.render(text) for text in texts]

    def html_to_markdown(self, texts: Sequence[str]) -> List[str]:
        return [
            markdownify(
                text,
                heading_style=ATX,
                bullets="*",
                strong_em_symbol=ASTERISK,
            ).strip("\n")
            for text in texts
        ]
