"""Tests for the token-stream compiler."""

from types import SimpleNamespace

import pytest

from md2docx.document.compiler import TokenStreamCompiler, compile_tokens
from md2docx.document.tokenize import tokenize
from md2docx.errors.exceptions import TokenizerContractViolation
from md2docx.types import (
    CodeBlock,
    HeadingBlock,
    ImageBlock,
    ListBlock,
    ParagraphBlock,
    TableBlock,
    TaskItemBlock,
)


def _compile(md, images=()):
    return compile_tokens(tokenize(md), images)


def _text(block):
    return "".join(r.text for r in block.runs)


def _image(source="x.png"):
    return ImageBlock(data=b"img", format="png", display_width=10, display_height=10, source=source)


def tok(type_, nesting=0, content="", tag="", info=""):
    return SimpleNamespace(type=type_, nesting=nesting, content=content, tag=tag, info=info)


class TestHeadingsAndParagraphs:
    def test_heading(self):
        blocks = _compile("## Sub **bold**\n")
        assert isinstance(blocks[0], HeadingBlock)
        assert blocks[0].level == 2
        assert _text(blocks[0]) == "Sub bold"
        assert blocks[0].runs[-1].bold

    def test_paragraph(self):
        blocks = _compile("Hello *world*\n")
        assert len(blocks) == 1
        assert isinstance(blocks[0], ParagraphBlock)
        assert blocks[0].runs[1].italic
        assert blocks[0].is_quote is False

    def test_blockquote(self):
        blocks = _compile("> quoted text\n\nafter\n")
        assert blocks[0].is_quote is True
        assert _text(blocks[0]) == "quoted text"
        assert blocks[1].is_quote is False

    def test_hr_ignored(self):
        blocks = _compile("one\n\n---\n\ntwo\n")
        assert [_text(b) for b in blocks] == ["one", "two"]


class TestLists:
    def test_level_grouping(self):
        """Items at levels [0,1,0,1] become one list per level."""
        md = "- a\n  - b\n- c\n  - d\n"
        blocks = _compile(md)
        assert len(blocks) == 2
        assert all(isinstance(b, ListBlock) for b in blocks)
        assert blocks[0].level == 0
        assert [i.text for i in blocks[0].items] == ["a", "c"]
        assert blocks[1].level == 1
        assert [i.text for i in blocks[1].items] == ["b", "d"]

    def test_ordered(self):
        blocks = _compile("1. one\n2. two\n")
        assert blocks[0].ordered is True
        assert [i.text for i in blocks[0].items] == ["one", "two"]

    def test_bullet(self):
        assert _compile("- x\n")[0].ordered is False

    def test_item_paragraphs_not_duplicated(self):
        md = "- first\n\n  more text\n- second\n"
        blocks = _compile(md)
        assert len(blocks) == 1
        assert [i.text for i in blocks[0].items] == ["first", "second"]

    def test_separate_lists(self):
        blocks = _compile("- a\n\npara\n\n1. b\n")
        assert [b.kind for b in blocks] == ["list", "paragraph", "list"]
        assert blocks[2].ordered is True


class TestTaskItems:
    def test_checked_and_unchecked(self):
        blocks = _compile("- [x] Done\n- [ ] Todo\n")
        assert len(blocks) == 2
        assert isinstance(blocks[0], TaskItemBlock)
        assert blocks[0].checked is True
        assert blocks[0].text == "Done"
        assert blocks[1].checked is False
        assert blocks[1].text == "Todo"

    def test_uppercase_marker(self):
        assert _compile("- [X] Shipped\n")[0].checked is True

    def test_bypasses_list_accumulation(self):
        blocks = _compile("- plain\n- [x] task\n")
        assert isinstance(blocks[0], TaskItemBlock)
        assert isinstance(blocks[1], ListBlock)
        assert [i.text for i in blocks[1].items] == ["plain"]

    def test_nested_task_level(self):
        blocks = _compile("- parent\n  - [ ] child\n")
        task = next(b for b in blocks if isinstance(b, TaskItemBlock))
        assert task.level == 1


class TestTables:
    def test_rows_extracted(self):
        md = "| H1 | H2 |\n| --- | --- |\n| A | B |\n"
        blocks = _compile(md)
        assert len(blocks) == 1
        assert isinstance(blocks[0], TableBlock)
        assert blocks[0].rows == [["H1", "H2"], ["A", "B"]]

    def test_empty_cells(self):
        md = "| H1 | H2 |\n| --- | --- |\n| A |  |\n"
        assert _compile(md)[0].rows == [["H1", "H2"], ["A", ""]]


class TestCode:
    def test_fence(self):
        blocks = _compile("```python\nprint(1)\n```\n")
        assert isinstance(blocks[0], CodeBlock)
        assert blocks[0].code == "print(1)"
        assert blocks[0].language == "python"

    def test_indented_code(self):
        blocks = _compile("    x = 1\n")
        assert isinstance(blocks[0], CodeBlock)
        assert blocks[0].code == "x = 1"
        assert blocks[0].language == ""

    def test_body_not_parsed(self):
        blocks = _compile("```\n# not a heading\n- not a list\n```\n")
        assert len(blocks) == 1
        assert "# not a heading" in blocks[0].code


class TestImageSplicing:
    def test_image_after_containing_paragraph(self):
        img = _image("a.png")
        blocks = _compile("Look ![a](a.png)\n\n# Next\n", [img])
        assert [b.kind for b in blocks] == ["paragraph", "image", "heading"]
        assert _text(blocks[0]) == "Look"

    def test_image_only_paragraph_dropped(self):
        img = _image()
        blocks = _compile("![a](a.png)\n", [img])
        assert blocks == (img,)

    def test_list_images_after_whole_list(self):
        img = _image()
        blocks = _compile("- one ![a](a.png)\n- two\n\nend\n", [img])
        assert [b.kind for b in blocks] == ["list", "image", "paragraph"]

    def test_table_images_after_table(self):
        img = _image()
        md = "| H |\n| --- |\n| ![a](a.png) |\n"
        blocks = _compile(md, [img])
        assert [b.kind for b in blocks] == ["table", "image"]
        assert blocks[0].rows == [["H"], [""]]

    def test_placeholder_spliced_like_image(self):
        placeholder = ParagraphBlock(failed_source="bad.png")
        blocks = _compile("![x](bad.png)\n\nafter\n", [placeholder])
        assert blocks[0] is placeholder

    def test_order_preserved(self):
        first, second = _image("1.png"), _image("2.png")
        blocks = _compile("![a](1.png)\n\ntext\n\n![b](2.png)\n", [first, second])
        assert blocks[0] is first
        assert blocks[2] is second

    def test_unclaimed_images_appended(self):
        extra = _image("extra.png")
        blocks = _compile("no images here\n", [extra])
        assert blocks[-1] is extra


class TestContractViolations:
    def test_close_without_open(self):
        with pytest.raises(TokenizerContractViolation) as exc_info:
            compile_tokens([tok("paragraph_close", -1)])
        assert exc_info.value.index == 0

    def test_missing_close(self):
        tokens = [tok("heading_open", 1, tag="h1"), tok("inline", content="Title")]
        with pytest.raises(TokenizerContractViolation):
            compile_tokens(tokens)

    def test_heading_without_text(self):
        tokens = [tok("heading_open", 1, tag="h1"), tok("heading_close", -1, tag="h1")]
        with pytest.raises(TokenizerContractViolation, match="no inline text"):
            compile_tokens(tokens)

    def test_mismatched_close(self):
        tokens = [
            tok("paragraph_open", 1),
            tok("inline", content="x"),
            tok("heading_close", -1),
        ]
        with pytest.raises(TokenizerContractViolation) as exc_info:
            compile_tokens(tokens)
        assert exc_info.value.index == 2

    def test_unclosed_list(self):
        tokens = [
            tok("bullet_list_open", 1),
            tok("list_item_open", 1),
            tok("paragraph_open", 1),
            tok("inline", content="x"),
            tok("paragraph_close", -1),
            tok("list_item_close", -1),
        ]
        with pytest.raises(TokenizerContractViolation, match="never closed"):
            compile_tokens(tokens)

    def test_hand_built_stream(self):
        tokens = [
            tok("heading_open", 1, tag="h3"),
            tok("inline", content="Built"),
            tok("heading_close", -1, tag="h3"),
        ]
        blocks = TokenStreamCompiler().compile(tokens)
        assert blocks[0].level == 3
