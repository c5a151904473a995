"""markdown-it-py adapter producing the flat token stream."""

from __future__ import annotations

from functools import lru_cache

from markdown_it import MarkdownIt
from markdown_it.token import Token

from md2docx.config.defaults import DEFAULT_PARSER_PRESET


@lru_cache(maxsize=4)
def get_parser(preset: str = DEFAULT_PARSER_PRESET) -> MarkdownIt:
    return MarkdownIt(preset, options_update={"linkify": False})


def tokenize(text: str, preset: str = DEFAULT_PARSER_PRESET) -> list[Token]:
    """Tokenize ``text`` into markdown-it's flat block token stream."""
    return get_parser(preset).parse(text)
