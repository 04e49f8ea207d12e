import re

from devlb.styles import (
    ACTIVE_INDICATOR,
    ACTIVE_STYLE,
    HEADER_STYLE,
    IDLE_INDICATOR,
    Style,
)

ANSI = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text):
    return ANSI.sub("", text)


def test_plain_style_leaves_text_unchanged():
    assert Style().render("hello") == "hello"


def test_styled_text_keeps_visible_content():
    rendered = Style(bold=True, underline=True, foreground="82").render("some text")
    assert strip_ansi(rendered) == "some text"


def test_bold_wraps_with_reset():
    rendered = Style(bold=True).render("x")
    assert rendered.startswith("\x1b[1m")
    assert rendered.endswith("\x1b[0m")


def test_foreground_uses_256_palette():
    assert "38;5;82" in ACTIVE_STYLE.render("x")


def test_horizontal_padding_adds_columns():
    stripped = strip_ansi(Style(padding=(0, 1)).render("ab"))
    assert len(stripped) == len("ab") + 2
    assert stripped.strip() == "ab"


def test_vertical_padding_adds_lines():
    rendered = Style(padding=(1, 0)).render("ab")
    assert len(rendered.split("\n")) == 3


def test_each_line_styled_separately():
    text = "one\ntwo\nthree"
    rendered = Style(foreground="196").render(text)
    lines = rendered.split("\n")
    assert len(lines) == 3
    assert [strip_ansi(line) for line in lines] == ["one", "two", "three"]
    assert all(line != strip_ansi(line) for line in lines)


def test_padded_lines_have_equal_width():
    rendered = Style(padding=(0, 2)).render("a\nlonger")
    widths = {len(strip_ansi(line)) for line in rendered.split("\n")}
    assert len(widths) == 1


def test_header_style_contains_title():
    assert "devlb dashboard" in strip_ansi(HEADER_STYLE.render(" devlb dashboard "))


def test_indicators_show_symbols():
    assert ACTIVE_STYLE.render("●") == ACTIVE_INDICATOR
    assert strip_ansi(ACTIVE_INDICATOR) == "●"
    assert strip_ansi(IDLE_INDICATOR) == "○"