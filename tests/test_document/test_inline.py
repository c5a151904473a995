"""Tests for inline emphasis scanning."""

from md2docx.document.inline import parse_inline


class TestParseInline:
    def test_bold_italic_code(self):
        runs = parse_inline("**bold** and *italic* and `code`")
        assert [r.text for r in runs] == ["bold", " and ", "italic", " and ", "code"]
        assert runs[0].bold and not runs[0].italic
        assert not runs[1].bold and not runs[1].italic and not runs[1].is_code
        assert runs[2].italic and not runs[2].bold
        assert runs[4].is_code

    def test_plain(self):
        runs = parse_inline("just text")
        assert len(runs) == 1
        assert runs[0].text == "just text"
        assert not (runs[0].bold or runs[0].italic or runs[0].is_code)

    def test_underscore_markers(self):
        runs = parse_inline("__strong__ _em_")
        assert runs[0].bold and runs[0].text == "strong"
        assert runs[2].italic and runs[2].text == "em"

    def test_markers_literal_inside_code(self):
        runs = parse_inline("`snake_case_name`")
        assert len(runs) == 1
        assert runs[0].text == "snake_case_name"
        assert runs[0].is_code

    def test_unterminated_marker_stays_on(self):
        runs = parse_inline("a **b")
        assert runs[-1].text == "b"
        assert runs[-1].bold

    def test_toggles_do_not_nest(self):
        runs = parse_inline("***x***")
        assert runs[0].text == "x"
        assert runs[0].bold and runs[0].italic

    def test_empty(self):
        assert parse_inline("") == []
