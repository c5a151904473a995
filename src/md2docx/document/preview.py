"""Standalone HTML preview of a markdown document."""

from __future__ import annotations

import logging
from pathlib import Path

from jinja2 import Environment, StrictUndefined
from markdown_it import MarkdownIt

logger = logging.getLogger(__name__)

_jinja_env = Environment(
    autoescape=True,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)

_PAGE_TEMPLATE = _jinja_env.from_string(
    """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>{{ title }}</title>
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
            line-height: 1.6;
            padding: 20px;
            max-width: 800px;
            margin: 0 auto;
        }
        pre { background-color: #f5f5f5; padding: 15px; border-radius: 5px; overflow-x: auto; }
        table { border-collapse: collapse; width: 100%; margin: 15px 0; }
        th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
        th { background-color: #f5f5f5; }
        blockquote { border-left: 4px solid #ddd; padding-left: 15px; color: #666; margin: 15px 0; }
        code { background-color: #f5f5f5; padding: 2px 4px; border-radius: 3px; }
        img { max-width: 100%; }
    </style>
</head>
<body>
{{ body | safe }}
</body>
</html>
"""
)


def _preview_parser() -> MarkdownIt:
    return MarkdownIt("gfm-like", options_update={"linkify": False, "typographer": True})


def render_preview(markdown: str, title: str = "Markdown Preview") -> str:
    """Render ``markdown`` to a complete, self-styled HTML page."""
    body = _preview_parser().render(markdown)
    return _PAGE_TEMPLATE.render(title=title, body=body)


def write_preview(markdown: str, path: str | Path, title: str = "Markdown Preview") -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_preview(markdown, title=title), encoding="utf-8")
    logger.info("Wrote HTML preview to %s", path)
    return path
