"""Image reference discovery by regex scanning of inline text."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from md2docx.types import ImageRef

# ![alt](source "optional title"); data URIs may be line-wrapped
IMAGE_RE = re.compile(
    r'!\[([^\]]*)\]\(\s*(data:image/[^)"]*?|[^)\s]+)(?:\s+"([^"]*)")?\s*\)'
)


def find_image_refs(text: str) -> list[ImageRef]:
    """Return every image reference in ``text`` in order of appearance."""
    return [
        ImageRef(source=m.group(2).strip(), alt=m.group(1), title=m.group(3) or "")
        for m in IMAGE_RE.finditer(text)
    ]


def extract_image_refs(tokens: Iterable[Any]) -> list[ImageRef]:
    """Collect image references from the inline tokens of a token stream.

    Only inline content is scanned, so image syntax inside code fences is
    left alone.
    """
    refs: list[ImageRef] = []
    for token in tokens:
        if token.type == "inline" and token.content:
            refs.extend(find_image_refs(token.content))
    return refs


def strip_image_markup(text: str) -> str:
    """Remove image markup so it is not rendered as literal text."""
    return IMAGE_RE.sub("", text).strip()
