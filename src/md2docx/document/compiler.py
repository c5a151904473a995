"""Token-stream compiler: rebuilds nested structure from flat markdown-it tokens.

markdown-it emits a flat, ordered sequence in which nesting is carried only by
paired ``*_open``/``*_close`` tokens. The compiler walks that sequence once,
keeping its scan state in a :class:`ScanState`, and drives a
:class:`DocumentModelBuilder`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from md2docx.document.builder import DocumentModelBuilder
from md2docx.errors.exceptions import TokenizerContractViolation
from md2docx.images.refs import IMAGE_RE, strip_image_markup
from md2docx.types import BlockNode

logger = logging.getLogger(__name__)

TASK_RE = re.compile(r"^\[([ xX])\]\s*(.*)$", re.DOTALL)

_LIST_OPENS = ("bullet_list_open", "ordered_list_open")
_LIST_CLOSES = ("bullet_list_close", "ordered_list_close")
_IGNORED = frozenset({"hr", "html_block", "thead_open", "thead_close", "tbody_open", "tbody_close"})


@dataclass
class ScanState:
    """Mutable state of one compile pass."""

    list_depth: int = 0
    list_items: list[tuple[str, int]] = field(default_factory=list)
    ordered: bool = False
    list_start: int = 0
    table_rows: list[list[str]] = field(default_factory=list)
    table_start: int = 0
    quote_depth: int = 0
    open_stack: list[tuple[str, int]] = field(default_factory=list)


@dataclass
class _Span:
    """Where a construct's text lives and where it closes."""

    inline: int | None
    close: int


class TokenStreamCompiler:
    """Compiles a token stream into block nodes.

    ``images`` are the resolved image blocks (or placeholders) in the same
    order as :func:`md2docx.images.refs.extract_image_refs` returned their
    references. Each is spliced in right after the block whose text held the
    reference; lists and tables receive theirs after the whole structure.
    """

    def __init__(self, builder: DocumentModelBuilder | None = None) -> None:
        self._builder = builder or DocumentModelBuilder()
        self._state = ScanState()
        self._tokens: Sequence[Any] = ()
        self._images_at: dict[int, list[BlockNode]] = {}

    @property
    def builder(self) -> DocumentModelBuilder:
        return self._builder

    def compile(
        self,
        tokens: Sequence[Any],
        images: Sequence[BlockNode] = (),
    ) -> tuple[BlockNode, ...]:
        self._tokens = tokens
        self._state = ScanState()
        self._images_at = self._assign_images(tokens, images)

        i = 0
        while i < len(tokens):
            i = self._step(i)

        if self._state.open_stack:
            token_type, index = self._state.open_stack[-1]
            raise TokenizerContractViolation(
                f"{token_type} at token {index} is never closed",
                index=index,
                token_type=token_type,
            )

        leftovers = [block for idx in sorted(self._images_at) for block in self._images_at[idx]]
        if leftovers:
            logger.debug("Appending %d unplaced image block(s) at the end", len(leftovers))
            for block in leftovers:
                self._builder.add_block(block)
            self._images_at.clear()

        logger.info("Compiled %d tokens into %d blocks", len(tokens), len(self._builder))
        return self._builder.blocks

    # ── Dispatch ──

    def _step(self, i: int) -> int:
        """Handle the token at ``i``; return the index of the next token to visit."""
        token = self._tokens[i]
        ttype = token.type
        state = self._state

        if ttype == "heading_open":
            return self._heading(i)
        if ttype == "paragraph_open":
            return self._paragraph(i)
        if ttype in _LIST_OPENS:
            self._push(i)
            if state.list_depth == 0:
                state.list_start = i
            state.list_depth += 1
            if not state.list_items:
                state.ordered = ttype == "ordered_list_open"
            return i + 1
        if ttype in _LIST_CLOSES:
            self._pop(i)
            state.list_depth -= 1
            if state.list_depth == 0:
                self._flush_list(i)
            return i + 1
        if ttype == "list_item_open":
            self._push(i)
            self._list_item(i)
            return i + 1
        if ttype == "list_item_close":
            self._pop(i)
            return i + 1
        if ttype == "table_open":
            self._push(i)
            state.table_rows = []
            state.table_start = i
            return i + 1
        if ttype == "tr_open":
            return self._table_row(i)
        if ttype == "table_close":
            self._pop(i)
            self._flush_table(i)
            return i + 1
        if ttype == "blockquote_open":
            self._push(i)
            state.quote_depth += 1
            return i + 1
        if ttype == "blockquote_close":
            self._pop(i)
            state.quote_depth -= 1
            return i + 1
        if ttype in ("fence", "code_block"):
            info = (token.info or "").strip()
            language = info.split()[0] if info else ""
            self._builder.add_code_block(token.content.rstrip("\n"), language)
            return i + 1
        if ttype in _IGNORED:
            return i + 1
        if ttype.endswith("_close"):
            raise TokenizerContractViolation(
                f"Unexpected {ttype} at token {i}",
                index=i,
                token_type=ttype,
            )

        logger.debug("Skipping unsupported token %s at %d", ttype, i)
        return i + 1

    # ── Constructs ──

    def _heading(self, i: int) -> int:
        token = self._tokens[i]
        span = self._span(i)
        if span.inline is None:
            raise TokenizerContractViolation(
                f"heading_open at token {i} has no inline text",
                index=i,
                token_type=token.type,
            )
        level = int(token.tag[1:]) if token.tag and token.tag[1:].isdigit() else 1
        text = strip_image_markup(self._tokens[span.inline].content)
        if text:
            self._builder.add_heading(text, level)
        self._claim(span.inline)
        return span.close + 1

    def _paragraph(self, i: int) -> int:
        span = self._span(i)
        state = self._state
        # Inside a list the paragraph is the item's own text
        if state.list_depth > 0:
            return span.close + 1
        if span.inline is not None:
            text = strip_image_markup(self._tokens[span.inline].content)
            if text:
                self._builder.add_paragraph(text, is_quote=state.quote_depth > 0)
            self._claim(span.inline)
        return span.close + 1

    def _list_item(self, i: int) -> None:
        state = self._state
        span = self._span(i)
        if span.inline is None:
            return
        text = strip_image_markup(self._tokens[span.inline].content)
        level = max(state.list_depth - 1, 0)

        match = TASK_RE.match(text)
        if match:
            checked = match.group(1).lower() == "x"
            self._builder.add_task_item(match.group(2).strip(), checked=checked, level=level)
            return
        if text:
            state.list_items.append((text, level))

    def _table_row(self, i: int) -> int:
        """Collect one row's cell texts and jump past its ``tr_close``."""
        row: list[str] = []
        j = i + 1
        tokens = self._tokens
        while j < len(tokens) and tokens[j].type != "tr_close":
            if tokens[j].type in ("th_open", "td_open"):
                span = self._span(j)
                cell = tokens[span.inline].content if span.inline is not None else ""
                row.append(strip_image_markup(cell))
                j = span.close + 1
                continue
            j += 1
        if j >= len(tokens):
            raise TokenizerContractViolation(
                f"tr_open at token {i} is never closed",
                index=i,
                token_type="tr_open",
            )
        self._state.table_rows.append(row)
        return j + 1

    def _flush_list(self, close: int) -> None:
        """Emit the buffered items grouped by level, shallowest first."""
        state = self._state
        items = state.list_items
        for level in sorted({lvl for _, lvl in items}):
            group = [(text, lvl) for text, lvl in items if lvl == level]
            self._builder.add_list(group, ordered=state.ordered, level=level)
        state.list_items = []
        state.ordered = False
        self._claim_range(state.list_start, close)

    def _flush_table(self, close: int) -> None:
        state = self._state
        if state.table_rows:
            self._builder.add_table(state.table_rows)
        state.table_rows = []
        self._claim_range(state.table_start, close)

    # ── Cursor helpers ──

    def _span(self, i: int) -> _Span:
        """Locate the first inline token of the construct opened at ``i`` and its close.

        The search never leaves the construct; a construct that runs off the
        end of the stream is a contract violation.
        """
        tokens = self._tokens
        opener = tokens[i]
        expected = opener.type[: -len("_open")] + "_close"
        depth = 1
        inline: int | None = None
        for j in range(i + 1, len(tokens)):
            token = tokens[j]
            depth += token.nesting
            if depth == 0:
                if token.type != expected:
                    raise TokenizerContractViolation(
                        f"{opener.type} at token {i} closed by {token.type} at {j}",
                        index=j,
                        token_type=token.type,
                    )
                return _Span(inline=inline, close=j)
            # Only the construct's own text, not that of nested children
            if inline is None and token.type == "inline" and depth <= 2:
                inline = j
        raise TokenizerContractViolation(
            f"{opener.type} at token {i} is never closed",
            index=i,
            token_type=opener.type,
        )

    def _push(self, i: int) -> None:
        self._state.open_stack.append((self._tokens[i].type, i))

    def _pop(self, i: int) -> None:
        ttype = self._tokens[i].type
        expected = ttype[: -len("_close")] + "_open"
        stack = self._state.open_stack
        if not stack or stack[-1][0] != expected:
            raise TokenizerContractViolation(
                f"{ttype} at token {i} without matching {expected}",
                index=i,
                token_type=ttype,
            )
        stack.pop()

    # ── Image splicing ──

    @staticmethod
    def _assign_images(
        tokens: Sequence[Any], images: Sequence[BlockNode]
    ) -> dict[int, list[BlockNode]]:
        """Map each inline token index to the image blocks its text referenced."""
        assigned: dict[int, list[BlockNode]] = {}
        cursor = 0
        for idx, token in enumerate(tokens):
            if cursor >= len(images):
                break
            if token.type != "inline" or not token.content:
                continue
            count = sum(1 for _ in IMAGE_RE.finditer(token.content))
            if count:
                assigned[idx] = list(images[cursor : cursor + count])
                cursor += count
        if cursor < len(images):
            assigned[len(tokens)] = list(images[cursor:])
        return assigned

    def _claim(self, inline: int | None) -> None:
        if inline is None:
            return
        for block in self._images_at.pop(inline, ()):
            self._builder.add_block(block)

    def _claim_range(self, start: int, stop: int) -> None:
        for idx in sorted(k for k in self._images_at if start <= k <= stop):
            for block in self._images_at.pop(idx):
                self._builder.add_block(block)


def compile_tokens(
    tokens: Sequence[Any], images: Sequence[BlockNode] = ()
) -> tuple[BlockNode, ...]:
    """Compile ``tokens`` with a fresh compiler and builder."""
    return TokenStreamCompiler().compile(tokens, images)
