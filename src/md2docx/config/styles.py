"""Static style table consulted when rendering blocks to DOCX.

Sizes are in half-points (24 == 12pt) and colours are RGB hex strings,
matching the units python-docx ultimately writes into the document XML.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from md2docx.config.loader import load_yaml

logger = logging.getLogger(__name__)


class TextStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    font: str = "SimSun"
    size: int = 24
    color: str = "000000"
    bold: bool = False
    italic: bool = False


class DocumentInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    author: str = ""
    subject: str = ""
    keywords: str = ""


class TocOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    title: str = "Contents"
    max_level: int = Field(default=3, ge=1, le=6)


class PageMargins(BaseModel):
    model_config = ConfigDict(frozen=True)

    top: int = 1440  # twips, 1 inch
    right: int = 1440
    bottom: int = 1440
    left: int = 1440


class PageSetup(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = 12240  # 8.5 inches in twips
    height: int = 15840  # 11 inches in twips
    orientation: str = "portrait"
    margin: PageMargins = Field(default_factory=PageMargins)


class StyleTable(BaseModel):
    """Block kind → text style lookup, plus document-level settings."""

    model_config = ConfigDict(frozen=True)

    default: TextStyle = Field(default_factory=TextStyle)
    heading1: TextStyle = TextStyle(font="SimHei", size=36)
    heading2: TextStyle = TextStyle(font="SimHei", size=32)
    heading3: TextStyle = TextStyle(font="SimHei", size=28)
    heading4: TextStyle = TextStyle(font="SimHei", size=24)
    heading5: TextStyle = TextStyle(font="SimHei", size=24)
    heading6: TextStyle = TextStyle(font="SimHei", size=24)
    quote: TextStyle = TextStyle(color="666666", italic=True)
    code: TextStyle = TextStyle(font="Sarasa Mono SC", size=21)
    table: TextStyle = TextStyle(size=21)
    list_item: TextStyle = Field(default_factory=TextStyle)
    image_caption: TextStyle = TextStyle(size=21, color="666666", italic=True)
    task_checked: TextStyle = TextStyle(color="008000")
    task_unchecked: TextStyle = TextStyle(color="FF0000")
    placeholder: TextStyle = TextStyle(color="FF0000", bold=True)
    header: TextStyle = TextStyle(size=20, color="666666")
    footer: TextStyle = TextStyle(size=20, color="666666")
    header_text: str = ""
    footer_text: str = ""
    document: DocumentInfo = Field(default_factory=DocumentInfo)
    toc: TocOptions = Field(default_factory=TocOptions)
    page: PageSetup = Field(default_factory=PageSetup)

    def heading(self, level: int) -> TextStyle:
        level = min(max(level, 1), 6)
        return getattr(self, f"heading{level}")


DEFAULT_STYLES = StyleTable()


def load_styles(path: str | Path | None = None, **overrides: Any) -> StyleTable:
    """Return the default style table with a YAML file and overrides merged in.

    The YAML file may hold the style mapping at top level or under a
    ``styles:`` key. Nested mappings are merged key by key.
    """
    merged = DEFAULT_STYLES.model_dump()
    if path is not None:
        raw = load_yaml(path)
        user_styles = raw.get("styles", raw)
        if not isinstance(user_styles, dict):
            raise ValueError(f"Expected a styles mapping in {path}")
        merged = _deep_merge(merged, user_styles)
        logger.debug("Loaded style overrides from %s", path)
    if overrides:
        merged = _deep_merge(merged, overrides)
    return StyleTable.model_validate(merged)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
