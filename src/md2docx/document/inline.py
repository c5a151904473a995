"""Single-pass inline emphasis scanner."""

from __future__ import annotations

from md2docx.types import InlineRun

_EMPHASIS = "*_"


def parse_inline(text: str) -> list[InlineRun]:
    """Split ``text`` into runs of uniform bold/italic/code state.

    - a backtick toggles code; markers inside a code span are literal
    - a doubled ``*``/``_`` toggles bold and consumes both characters
    - a single ``*``/``_`` toggles italic

    Toggles do not nest; an unterminated marker simply leaves its state on
    until the end of the text.
    """
    runs: list[InlineRun] = []
    buf: list[str] = []
    bold = italic = code = False

    def flush() -> None:
        if buf:
            runs.append(InlineRun(text="".join(buf), bold=bold, italic=italic, is_code=code))
            buf.clear()

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "`":
            flush()
            code = not code
        elif code:
            buf.append(ch)
        elif ch in _EMPHASIS and i + 1 < n and text[i + 1] == ch:
            flush()
            bold = not bold
            i += 1
        elif ch in _EMPHASIS:
            flush()
            italic = not italic
        else:
            buf.append(ch)
        i += 1

    flush()
    return runs
