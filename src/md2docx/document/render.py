"""python-docx adapter: block nodes + style table -> .docx bytes."""

from __future__ import annotations

import io
import logging
import secrets
import time
from collections.abc import Sequence
from pathlib import Path

from docx import Document
from docx.document import Document as DocxDocument
from docx.enum.section import WD_ORIENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Emu, Pt, RGBColor, Twips
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from md2docx.config.defaults import DEFAULT_TEMP_DIR
from md2docx.config.styles import DEFAULT_STYLES, StyleTable, TextStyle
from md2docx.document.inline import parse_inline
from md2docx.errors.exceptions import SerializationError
from md2docx.types import (
    BlockNode,
    CodeBlock,
    HeadingBlock,
    ImageBlock,
    InlineRun,
    ListBlock,
    ParagraphBlock,
    TableBlock,
    TaskItemBlock,
)
from md2docx.utils.image import extension_for

logger = logging.getLogger(__name__)

EMU_PER_PIXEL = 9525

LIST_BASE_INDENT = 720  # twips
LIST_LEVEL_INDENT = 360
QUOTE_INDENT = 720
CODE_INDENT = 360
CODE_SHADING = "F5F5F5"

CHECKED_MARK = "☑ "
UNCHECKED_MARK = "☐ "
BULLET_MARK = "• "

# Elements that must follow <w:shd> inside <w:pPr>
_SHD_SUCCESSORS = (
    "w:tabs", "w:suppressAutoHyphens", "w:kinsoku", "w:wordWrap",
    "w:overflowPunct", "w:topLinePunct", "w:autoSpaceDE", "w:autoSpaceDN",
    "w:bidi", "w:adjustRightInd", "w:snapToGrid", "w:spacing", "w:ind",
    "w:contextualSpacing", "w:mirrorIndents", "w:suppressOverlap", "w:jc",
    "w:textDirection", "w:textAlignment", "w:textboxTightWrap",
    "w:outlineLvl", "w:divId", "w:cnfStyle", "w:rPr", "w:sectPr",
    "w:pPrChange",
)


def _format_run(run: Run, style: TextStyle, inline: InlineRun | None = None, code: TextStyle | None = None) -> None:
    """Apply a table style, then the run's own emphasis, to ``run``.

    Code spans take font, size and color from ``code`` when it is given.
    """
    if inline is not None and inline.is_code and code is not None:
        style = code.model_copy(update={"bold": style.bold, "italic": style.italic})
    font_name = style.font
    run.font.name = font_name
    # East Asian glyphs look up a separate font slot
    run._element.get_or_add_rPr().get_or_add_rFonts().set(qn("w:eastAsia"), font_name)
    run.font.size = Pt(style.size / 2)
    color = inline.color if inline is not None and inline.color else style.color
    run.font.color.rgb = RGBColor.from_string(color.upper())
    run.font.bold = style.bold or (inline is not None and inline.bold)
    run.font.italic = style.italic or (inline is not None and inline.italic)


def _shade(paragraph: Paragraph, fill: str) -> None:
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), fill)
    paragraph._p.get_or_add_pPr().insert_element_before(shd, *_SHD_SUCCESSORS)


def _add_field(paragraph: Paragraph, instruction: str, placeholder: str) -> None:
    """Append a complex field (begin/instr/separate/result/end) to ``paragraph``."""

    def fld_char(kind: str):
        el = OxmlElement("w:fldChar")
        el.set(qn("w:fldCharType"), kind)
        return el

    run = paragraph.add_run()
    run._r.append(fld_char("begin"))
    instr = OxmlElement("w:instrText")
    instr.set(qn("xml:space"), "preserve")
    instr.text = instruction
    run = paragraph.add_run()
    run._r.append(instr)
    run = paragraph.add_run()
    run._r.append(fld_char("separate"))
    paragraph.add_run(placeholder)
    run = paragraph.add_run()
    run._r.append(fld_char("end"))


class DocxRenderer:
    """Serializes block nodes with python-docx.

    Images are handed to python-docx through a short-lived temp file that is
    always deleted, whether embedding succeeds or not.
    """

    def __init__(
        self,
        styles: StyleTable | None = None,
        temp_dir: str | Path | None = None,
    ) -> None:
        self._styles = styles or DEFAULT_STYLES
        self._temp_dir = Path(temp_dir) if temp_dir is not None else Path.cwd() / DEFAULT_TEMP_DIR

    @property
    def styles(self) -> StyleTable:
        return self._styles

    def render(self, blocks: Sequence[BlockNode]) -> bytes:
        """Build the document and return the .docx bytes.

        Raises:
            SerializationError: python-docx failed to build or save.
        """
        try:
            doc = Document()
            self._setup_document(doc)
            if self._styles.toc.enabled:
                self._add_toc(doc)
            for block in blocks:
                self._render_block(doc, block)
            buf = io.BytesIO()
            doc.save(buf)
        except SerializationError:
            raise
        except Exception as e:
            raise SerializationError(f"Failed to build document: {e}") from e
        logger.debug("Rendered %d blocks (%d bytes)", len(blocks), buf.tell())
        return buf.getvalue()

    # ── Document level ──

    def _setup_document(self, doc: DocxDocument) -> None:
        styles = self._styles
        info = styles.document
        props = doc.core_properties
        props.title = info.title or "Converted Document"
        props.author = info.author or "md2docx"
        props.subject = info.subject
        props.keywords = info.keywords
        props.comments = "Created by md2docx converter"

        normal = doc.styles["Normal"]
        normal.font.name = styles.default.font
        normal.font.size = Pt(styles.default.size / 2)

        page = styles.page
        section = doc.sections[0]
        width, height = page.width, page.height
        if page.orientation == "landscape":
            section.orientation = WD_ORIENT.LANDSCAPE
            width, height = max(width, height), min(width, height)
        section.page_width = Twips(width)
        section.page_height = Twips(height)
        section.top_margin = Twips(page.margin.top)
        section.right_margin = Twips(page.margin.right)
        section.bottom_margin = Twips(page.margin.bottom)
        section.left_margin = Twips(page.margin.left)

        if styles.header_text:
            para = section.header.paragraphs[0]
            para.alignment = WD_ALIGN_PARAGRAPH.CENTER
            _format_run(para.add_run(styles.header_text), styles.header)
        if styles.footer_text:
            para = section.footer.paragraphs[0]
            para.alignment = WD_ALIGN_PARAGRAPH.CENTER
            _format_run(para.add_run(styles.footer_text), styles.footer)

    def _add_toc(self, doc: DocxDocument) -> None:
        toc = self._styles.toc
        title = doc.add_paragraph()
        title.paragraph_format.space_before = Twips(300)
        title.paragraph_format.space_after = Twips(300)
        run = title.add_run(toc.title)
        run.font.size = Pt(16)
        run.font.bold = True

        _add_field(
            doc.add_paragraph(),
            f'TOC \\o "1-{toc.max_level}" \\h \\z \\u',
            "Right-click to update the table of contents.",
        )
        doc.add_paragraph().paragraph_format.space_after = Twips(800)

    # ── Blocks ──

    def _render_block(self, doc: DocxDocument, block: BlockNode) -> None:
        if isinstance(block, HeadingBlock):
            self._heading(doc, block)
        elif isinstance(block, ParagraphBlock):
            self._paragraph(doc, block)
        elif isinstance(block, ListBlock):
            self._list(doc, block)
        elif isinstance(block, TaskItemBlock):
            self._task_item(doc, block)
        elif isinstance(block, CodeBlock):
            self._code(doc, block)
        elif isinstance(block, TableBlock):
            self._table(doc, block)
        elif isinstance(block, ImageBlock):
            self._image(doc, block)
        else:
            raise SerializationError(f"Unknown block kind: {getattr(block, 'kind', block)!r}")

    def _add_runs(self, paragraph: Paragraph, runs: Sequence[InlineRun], style: TextStyle) -> None:
        code = self._styles.code
        for inline in runs:
            _format_run(paragraph.add_run(inline.text), style, inline, code)

    def _heading(self, doc: DocxDocument, block: HeadingBlock) -> None:
        para = doc.add_heading(level=block.level)
        para.paragraph_format.space_before = Twips(240)
        para.paragraph_format.space_after = Twips(120)
        self._add_runs(para, block.runs, self._styles.heading(block.level))

    def _paragraph(self, doc: DocxDocument, block: ParagraphBlock) -> None:
        styles = self._styles
        para = doc.add_paragraph()
        if block.failed_source is not None:
            para.alignment = WD_ALIGN_PARAGRAPH.CENTER
            self._add_runs(para, block.runs, styles.placeholder)
            return
        if block.is_quote:
            para.paragraph_format.left_indent = Twips(QUOTE_INDENT)
            self._add_runs(para, block.runs, styles.quote)
            return
        para.paragraph_format.space_after = Twips(200)
        self._add_runs(para, block.runs, styles.default)

    def _list(self, doc: DocxDocument, block: ListBlock) -> None:
        style = self._styles.list_item
        for number, item in enumerate(block.items, start=1):
            para = doc.add_paragraph()
            para.paragraph_format.left_indent = Twips(LIST_BASE_INDENT + item.level * LIST_LEVEL_INDENT)
            para.paragraph_format.space_after = Twips(100)
            marker = f"{number}. " if block.ordered else BULLET_MARK
            _format_run(para.add_run(marker), style)
            self._add_runs(para, item.runs, style)

    def _task_item(self, doc: DocxDocument, block: TaskItemBlock) -> None:
        styles = self._styles
        mark_style = styles.task_checked if block.checked else styles.task_unchecked
        para = doc.add_paragraph()
        para.paragraph_format.left_indent = Twips(LIST_BASE_INDENT + block.level * LIST_LEVEL_INDENT)
        para.paragraph_format.space_after = Twips(100)
        _format_run(para.add_run(CHECKED_MARK if block.checked else UNCHECKED_MARK), mark_style)
        self._add_runs(para, block.runs, styles.list_item)

    def _code(self, doc: DocxDocument, block: CodeBlock) -> None:
        para = doc.add_paragraph()
        _shade(para, CODE_SHADING)
        para.paragraph_format.left_indent = Twips(CODE_INDENT)
        para.paragraph_format.space_before = Twips(200)
        para.paragraph_format.space_after = Twips(200)
        lines = block.code.split("\n")
        for n, line in enumerate(lines):
            run = para.add_run(line)
            _format_run(run, self._styles.code)
            if n < len(lines) - 1:
                run.add_break()

    def _table(self, doc: DocxDocument, block: TableBlock) -> None:
        rows = block.rows
        if not rows:
            return
        n_cols = max(len(row) for row in rows)
        if n_cols == 0:
            return
        style = self._styles.table
        header_style = style.model_copy(update={"bold": True})

        table = doc.add_table(rows=len(rows), cols=n_cols)
        table.style = "Table Grid"
        for r, row in enumerate(rows):
            for c in range(n_cols):
                text = row[c] if c < len(row) else ""
                para = table.cell(r, c).paragraphs[0]
                para.alignment = WD_ALIGN_PARAGRAPH.CENTER
                self._add_runs(para, parse_inline(text), header_style if r == 0 else style)
        doc.add_paragraph()

    def _image(self, doc: DocxDocument, block: ImageBlock) -> None:
        para = doc.add_paragraph()
        para.alignment = WD_ALIGN_PARAGRAPH.CENTER
        para.paragraph_format.space_before = Twips(200)
        para.paragraph_format.space_after = Twips(200)

        temp_path = self._write_temp(block.data, extension_for(block.format))
        try:
            para.add_run().add_picture(
                str(temp_path),
                width=Emu(block.display_width * EMU_PER_PIXEL),
                height=Emu(block.display_height * EMU_PER_PIXEL),
            )
        finally:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Failed to delete temp image %s: %s", temp_path, e)

        if block.caption:
            caption = doc.add_paragraph()
            caption.alignment = WD_ALIGN_PARAGRAPH.CENTER
            caption.paragraph_format.space_after = Twips(300)
            _format_run(caption.add_run(block.caption), self._styles.image_caption)

    def _write_temp(self, data: bytes, ext: str) -> Path:
        self._temp_dir.mkdir(parents=True, exist_ok=True)
        path = self._temp_dir / f"{int(time.time() * 1000)}-{secrets.token_hex(4)}{ext}"
        path.write_bytes(data)
        return path
