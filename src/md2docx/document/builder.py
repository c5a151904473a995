"""Ordered, append-only sequence of block nodes."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from md2docx.config.defaults import DEFAULT_DISPLAY_MAX_WIDTH
from md2docx.document.inline import parse_inline
from md2docx.types import (
    BlockNode,
    CodeBlock,
    HeadingBlock,
    ImageBlock,
    ImageRef,
    InlineRun,
    ListBlock,
    ListItem,
    ParagraphBlock,
    ResolvedImage,
    TableBlock,
    TaskItemBlock,
)

logger = logging.getLogger(__name__)


class DocumentModelBuilder:
    """Collects block nodes in document order.

    Blocks are immutable once appended; the compiler does its own list
    accumulation and hands finished groups to :meth:`add_list`.
    """

    def __init__(self) -> None:
        self._blocks: list[BlockNode] = []

    @property
    def blocks(self) -> tuple[BlockNode, ...]:
        return tuple(self._blocks)

    def __len__(self) -> int:
        return len(self._blocks)

    def add_heading(self, text: str, level: int) -> HeadingBlock:
        block = HeadingBlock(level=min(max(level, 1), 6), runs=tuple(parse_inline(text)))
        return self._append(block)

    def add_paragraph(self, text: str, is_quote: bool = False) -> ParagraphBlock:
        block = ParagraphBlock(runs=tuple(parse_inline(text)), is_quote=is_quote)
        return self._append(block)

    def add_list(
        self,
        items: Iterable[tuple[str, int]],
        ordered: bool = False,
        level: int = 0,
    ) -> ListBlock:
        block = ListBlock(
            items=tuple(
                ListItem(text=text, level=item_level, runs=tuple(parse_inline(text)))
                for text, item_level in items
            ),
            ordered=ordered,
            level=level,
        )
        return self._append(block)

    def add_task_item(self, text: str, checked: bool, level: int = 0) -> TaskItemBlock:
        block = TaskItemBlock(
            text=text,
            checked=checked,
            level=level,
            runs=tuple(parse_inline(text)),
        )
        return self._append(block)

    def add_code_block(self, code: str, language: str = "") -> CodeBlock:
        return self._append(CodeBlock(code=code, language=language.strip()))

    def add_table(self, rows: Sequence[Sequence[str]]) -> TableBlock:
        return self._append(TableBlock(rows=[list(row) for row in rows]))

    def add_block(self, block: BlockNode) -> BlockNode:
        """Append a block built elsewhere (resolved images, placeholders)."""
        return self._append(block)

    def _append(self, block):
        self._blocks.append(block)
        logger.debug("Added %s block #%d", block.kind, len(self._blocks))
        return block


# ── Image blocks ──


def display_size(width: int, height: int, max_width: int = DEFAULT_DISPLAY_MAX_WIDTH) -> tuple[int, int]:
    """Cap the width at ``max_width``, scaling the height by the same ratio."""
    if width <= max_width:
        return width, height
    ratio = max_width / width
    return max_width, max(1, round(height * ratio))


def make_image_block(
    ref: ImageRef,
    image: ResolvedImage,
    display_max_width: int = DEFAULT_DISPLAY_MAX_WIDTH,
) -> ImageBlock:
    width, height = display_size(image.width, image.height, display_max_width)
    return ImageBlock(
        data=image.data,
        format=image.format,
        display_width=width,
        display_height=height,
        caption=ref.title,
        source=ref.source,
    )


def make_image_placeholder(ref: ImageRef) -> ParagraphBlock:
    """Visible stand-in for an image that could not be resolved."""
    return ParagraphBlock(
        runs=(
            InlineRun(text=f"[Failed to load image: {ref.label}]", bold=True, color="FF0000"),
        ),
        failed_source=ref.source,
    )
